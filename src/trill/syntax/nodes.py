"""Template syntax tree.

Immutable frozen dataclasses produced by the parser and consumed by the
code generator. Every node records the 1-based template line and column
where it started so generated code can be mapped back to the source.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Node:
    lineno: int
    col_offset: int


@dataclass(frozen=True, slots=True)
class Text(Node):
    """Literal markup, written as is."""

    value: str


@dataclass(frozen=True, slots=True)
class Output(Node):
    """``{{ expr }}``: written through the language's escape function."""

    expr: str


@dataclass(frozen=True, slots=True)
class If(Node):
    """``elif_`` holds ``(test, lineno, body)`` per branch."""

    test: str
    body: tuple[Node, ...]
    elif_: tuple[tuple[str, int, tuple[Node, ...]], ...] = ()
    else_: tuple[Node, ...] = ()
    else_lineno: int = 0


@dataclass(frozen=True, slots=True)
class For(Node):
    """``{% for target in iter %}``; ``else_`` runs when nothing was iterated."""

    target: str
    iter: str
    body: tuple[Node, ...]
    else_: tuple[Node, ...] = ()


@dataclass(frozen=True, slots=True)
class Set(Node):
    target: str
    value: str


@dataclass(frozen=True, slots=True)
class Model(Node):
    """``{% model dotted.Name %}``: the declared model type."""

    type_name: str


@dataclass(frozen=True, slots=True)
class Layout(Node):
    """``{% layout expr %}``: evaluated at render time."""

    expr: str


@dataclass(frozen=True, slots=True)
class Section(Node):
    name: str
    body: tuple[Node, ...]


@dataclass(frozen=True, slots=True)
class Body(Node):
    """``{% body %}``: the child view's rendered body."""


@dataclass(frozen=True, slots=True)
class Yield(Node):
    """``{% yield name [optional] %}``: a child section."""

    name: str
    required: bool = True


@dataclass(frozen=True, slots=True)
class Import(Node):
    module: str
    alias: str | None = None


@dataclass(frozen=True, slots=True)
class Document:
    """Root of a parsed template."""

    body: tuple[Node, ...]
    model: Model | None = None
    imports: tuple[Import, ...] = ()
