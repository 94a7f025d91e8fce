"""Code generation — template syntax tree to Python source.

Each template becomes one ``View`` subclass named after its compilation
unit id. The generated ``execute()`` method writes through two locals
cached once per call::

    class TrillView_3f2a...(_TrillBase):
        template_name = 'home/index.html'
        model_type = _model_TrillView_3f2a...
        declares_model = True

        def execute(self):
            _write = self.write            # escaped by the language
            _literal = self.write_literal  # markup, written as is
            model = self.model
            ...
            _literal('<h1>')
            _write(model.title)

Sections compile to nested functions handed to ``self.define_section()``.

Every generated line is tagged with the template line it came from, so
backend errors (which report generated lines) map back to the template.
Source is generated as text rather than ``ast`` nodes so the exact code
that was compiled can be listed on the error page.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from trill.syntax.languages import TemplateLanguage
from trill.syntax.nodes import (
    Body,
    Document,
    For,
    If,
    Layout,
    Node,
    Output,
    Section,
    Set,
    Text,
    Yield,
)

if TYPE_CHECKING:
    from trill.diagnostics import Diagnostic
    from trill.identity import ViewIdentity


def new_unit_id() -> str:
    """Unique, identifier-safe name for one compile attempt."""
    return f"TrillView_{uuid.uuid4().hex}"


@dataclass(frozen=True, slots=True)
class GeneratedCode:
    """One compilation unit: the generated source for a single template.

    ``line_map[i]`` is the template line for generated line ``i + 1``
    (0 where the generated line has no template counterpart).
    ``bindings`` are names pre-bound in the module namespace before the
    source executes.
    """

    id: str
    language: TemplateLanguage
    model_type: type
    source: str
    line_map: tuple[int, ...]
    identity: ViewIdentity
    template_source: str
    diagnostics: tuple[Diagnostic, ...] = ()
    imports: tuple[str, ...] = ()
    bindings: Mapping[str, Any] = field(default_factory=dict)

    @property
    def class_name(self) -> str:
        return self.id

    def template_line(self, generated_line: int) -> int:
        """Map a 1-based generated line to the nearest template line."""
        index = min(generated_line, len(self.line_map)) - 1
        while index >= 0:
            if self.line_map[index]:
                return self.line_map[index]
            index -= 1
        return 1


class CodeBuilder:
    """Accumulate indented source lines, each tagged with a template line."""

    INDENT_STEP = 4

    def __init__(self) -> None:
        self._lines: list[tuple[str, int]] = []
        self._indent = 0

    def add_line(self, text: str, lineno: int = 0) -> None:
        """Add a line of code; embedded newlines continue on later lines."""
        first, *rest = text.split("\n")
        self._lines.append((" " * self._indent + first, lineno))
        for offset, part in enumerate(rest, start=1):
            self._lines.append((part, lineno + offset if lineno else 0))

    def indent(self) -> None:
        self._indent += self.INDENT_STEP

    def dedent(self) -> None:
        self._indent -= self.INDENT_STEP

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def source(self) -> str:
        return "\n".join(line for line, _ in self._lines) + "\n"

    @property
    def line_map(self) -> tuple[int, ...]:
        return tuple(lineno for _, lineno in self._lines)


class CodeGenerator:
    """Generate the Python source for one template.

    Args:
        language: The template language (escape policy, base class).
        unit_id: Unique id; becomes the generated class name.
        identity: The template being compiled.
        model_type: The resolved model type.
        namespaces: Modules imported at the top of the generated module.
        model_import: ``(module, name)`` to import the model type by name.
    """

    def __init__(
        self,
        language: TemplateLanguage,
        unit_id: str,
        identity: ViewIdentity,
        model_type: type,
        *,
        namespaces: Sequence[str] = (),
        model_import: tuple[str, str] | None = None,
    ) -> None:
        self._language = language
        self._unit_id = unit_id
        self._identity = identity
        self._model_type = model_type
        self._namespaces = tuple(namespaces)
        self._model_import = model_import
        self._code = CodeBuilder()
        self._counter = 0
        self._dispatch: dict[type[Node], Callable[[Any], None]] = {
            Text: self._compile_text,
            Output: self._compile_output,
            If: self._compile_if,
            For: self._compile_for,
            Set: self._compile_set,
            Layout: self._compile_layout,
            Section: self._compile_section,
            Body: self._compile_body,
            Yield: self._compile_yield,
        }

    def generate(
        self,
        document: Document,
        template_source: str,
        diagnostics: Sequence[Diagnostic] = (),
    ) -> GeneratedCode:
        code = self._code
        imports = self._compile_header(document)

        binding = f"_model_{self._unit_id}"
        code.add_line(f"class {self._unit_id}(_TrillBase):")
        code.indent()
        code.add_line(f"template_name = {self._identity.full_name!r}")
        code.add_line(f"model_type = {binding}")
        code.add_line(f"declares_model = {document.model is not None!r}")
        code.add_line("")
        code.add_line("def execute(self):")
        code.indent()
        code.add_line("_write = self.write")
        code.add_line("_literal = self.write_literal")
        code.add_line("view = self")
        code.add_line("model = self.model")
        code.add_line("context = self.context")
        code.add_line("partial = self.partial")
        code.add_line("has_section = self.is_section_defined")
        self._compile_block(document.body)
        code.dedent()
        code.dedent()

        return GeneratedCode(
            id=self._unit_id,
            language=self._language,
            model_type=self._model_type,
            source=code.source,
            line_map=code.line_map,
            identity=self._identity,
            template_source=template_source,
            diagnostics=tuple(diagnostics),
            imports=imports,
            bindings={binding: self._model_type},
        )

    # -- module header -----------------------------------------------------

    def _compile_header(self, document: Document) -> tuple[str, ...]:
        code = self._code
        code.add_line(f"# Generated by trill from {self._identity.full_name} ({self._language.name})")
        code.add_line(f"from trill.views import {self._language.base_class} as _TrillBase")
        code.add_line("from trill.views import raw")

        imported: list[str] = []
        for namespace in self._namespaces:
            code.add_line(f"import {namespace}")
            imported.append(namespace)
        if self._model_import is not None:
            module, name = self._model_import
            code.add_line(f"from {module} import {name}")
            imported.append(module)
        for node in document.imports:
            if node.alias:
                code.add_line(f"import {node.module} as {node.alias}", node.lineno)
            else:
                code.add_line(f"import {node.module}", node.lineno)
            imported.append(node.module)
        code.add_line("")
        code.add_line("")
        return tuple(dict.fromkeys(imported))

    # -- statements --------------------------------------------------------

    def _compile_block(self, nodes: Sequence[Node]) -> None:
        before = len(self._code)
        for node in nodes:
            self._dispatch[type(node)](node)
        if len(self._code) == before:
            self._code.add_line("pass")

    def _next_name(self, prefix: str) -> str:
        self._counter += 1
        return f"_{prefix}_{self._counter}"

    def _compile_text(self, node: Text) -> None:
        self._code.add_line(f"_literal({node.value!r})", node.lineno)

    def _compile_output(self, node: Output) -> None:
        self._code.add_line(f"_write({node.expr})", node.lineno)

    def _compile_if(self, node: If) -> None:
        code = self._code
        code.add_line(f"if ({node.test}):", node.lineno)
        code.indent()
        self._compile_block(node.body)
        code.dedent()
        for test, lineno, body in node.elif_:
            code.add_line(f"elif ({test}):", lineno)
            code.indent()
            self._compile_block(body)
            code.dedent()
        if node.else_:
            code.add_line("else:", node.else_lineno or node.lineno)
            code.indent()
            self._compile_block(node.else_)
            code.dedent()

    def _compile_for(self, node: For) -> None:
        code = self._code
        flag = self._next_name("iterated") if node.else_ else None
        if flag:
            code.add_line(f"{flag} = False", node.lineno)
        code.add_line(f"for {node.target} in ({node.iter}):", node.lineno)
        code.indent()
        if flag:
            code.add_line(f"{flag} = True", node.lineno)
        self._compile_block(node.body)
        code.dedent()
        if flag:
            code.add_line(f"if not {flag}:", node.lineno)
            code.indent()
            self._compile_block(node.else_)
            code.dedent()

    def _compile_set(self, node: Set) -> None:
        self._code.add_line(f"{node.target} = ({node.value})", node.lineno)

    def _compile_layout(self, node: Layout) -> None:
        self._code.add_line(f"self.layout = ({node.expr})", node.lineno)

    def _compile_section(self, node: Section) -> None:
        code = self._code
        func = self._next_name(f"section_{node.name}")
        code.add_line(f"def {func}():", node.lineno)
        code.indent()
        self._compile_block(node.body)
        code.dedent()
        code.add_line(f"self.define_section({node.name!r}, {func})", node.lineno)

    def _compile_body(self, node: Body) -> None:
        self._code.add_line("_write(self.render_body())", node.lineno)

    def _compile_yield(self, node: Yield) -> None:
        self._code.add_line(
            f"_write(self.render_section({node.name!r}, required={node.required!r}))",
            node.lineno,
        )


def generate(
    document: Document,
    *,
    language: TemplateLanguage,
    identity: ViewIdentity,
    model_type: type,
    template_source: str,
    diagnostics: Sequence[Diagnostic] = (),
    namespaces: Sequence[str] = (),
    model_import: tuple[str, str] | None = None,
    unit_id: str | None = None,
) -> GeneratedCode:
    """Generate a compilation unit for a parsed template."""
    generator = CodeGenerator(
        language,
        unit_id or new_unit_id(),
        identity,
        model_type,
        namespaces=namespaces,
        model_import=model_import,
    )
    return generator.generate(document, template_source, diagnostics)
