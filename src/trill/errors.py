"""Trill exception hierarchy.

Shared across the compiler, cache, and engine so every module raises and
catches the same types.

Two families:

- *Structural* errors (``UnresolvedModelTypeError``, ``LayoutNotFoundError``,
  ``LayoutCycleError``, ``SectionNotDefinedError``) propagate to the caller.
  They point at a configuration or template-wiring problem the operator
  must fix.
- *Compile* errors (``CompilationError``, ``LoadedTypeMismatchError``) are
  contained by the compiler and turned into an error view, so one broken
  template never takes down a request.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trill.diagnostics import Diagnostic


class TrillError(Exception):
    """Base for all trill-specific errors."""


class ConfigurationError(TrillError):
    """Raised when engine configuration is invalid.

    Typically raised while wiring the engine, e.g. for a template whose
    extension no language handles.
    """


class UnresolvedModelTypeError(TrillError):
    """A template declares a model type that cannot be found.

    Carries the searched name, the known application modules, and the
    candidate qualified names that were compared against it.
    """

    def __init__(
        self,
        name: str,
        known_modules: Sequence[str] = (),
        candidates: Sequence[str] = (),
    ) -> None:
        self.name = name
        self.known_modules = tuple(known_modules)
        self.candidates = tuple(candidates)
        modules = "\n\t".join(self.known_modules) or "(none)"
        super().__init__(
            f"Unable to discover a type for model by the name of {name!r}.\n\n"
            "Try using a fully qualified name and make sure its module is listed "
            "in ViewConfig.application_modules.\n\n"
            f"Known modules:\n\t{modules}\n\n"
            f"Types searched: {len(self.candidates)}"
        )


class CompilationError(TrillError):
    """One or more error diagnostics were produced while compiling a template.

    Never escapes ``ViewEngine.render()``: the compiler catches it and
    returns an error view whose body is the diagnostic document.
    """

    def __init__(self, message: str, diagnostics: Sequence[Diagnostic] = ()) -> None:
        self.diagnostics = tuple(diagnostics)
        super().__init__(message)


class LoadedTypeMismatchError(CompilationError):
    """The compiled module does not expose the expected view class."""


class LayoutNotFoundError(TrillError):
    """A view names a layout that the locator cannot find."""

    def __init__(self, layout: str) -> None:
        self.layout = layout
        super().__init__(f"Unable to locate layout: {layout}")


class LayoutCycleError(TrillError):
    """The layout chain exceeded the configured maximum depth.

    Almost always a layout that (directly or indirectly) names itself.
    """

    def __init__(self, chain: Sequence[str], max_depth: int) -> None:
        self.chain = tuple(chain)
        self.max_depth = max_depth
        super().__init__(
            f"Layout chain exceeded {max_depth} levels: " + " -> ".join(self.chain)
        )


class SectionNotDefinedError(TrillError):
    """A layout requires a section that the child view did not define."""

    def __init__(self, section: str, template: str | None = None) -> None:
        self.section = section
        self.template = template
        where = f" (required by {template})" if template else ""
        super().__init__(f"Section {section!r} is not defined{where}")


class ViewNotFoundError(TrillError):
    """A partial or named view could not be located."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unable to locate view: {name}")
