"""Template compiler — template source to a view factory.

Pipeline for one template::

    source ──parse──▶ Document ──resolve model──▶ generate ──▶ GeneratedCode
                                                                   │
                                    compile lock ──▶ backend.compile()
                                                                   │
                              module ──lookup + check──▶ View subclass (factory)

Every outcome is a ``CompilationResult``. Diagnostics never escape as
exceptions: a failed compile returns an error factory whose view renders
the diagnostic document. ``UnresolvedModelTypeError`` is the exception to
that rule, since there is nothing meaningful to compile against.

Backend invocations are serialized through one lock shared by every
compiler that is not handed its own, because compilation backends are
rarely safe to call concurrently. Cache hits never touch it.
"""

from __future__ import annotations

import functools
import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from types import ModuleType
from typing import TYPE_CHECKING

from trill.backend import CompilationBackend, PythonBackend
from trill.config import ViewConfig
from trill.diagnostics import (
    Diagnostic,
    errors_only,
    format_diagnostic,
    render_compilation_error,
    render_load_error,
)
from trill.errors import LoadedTypeMismatchError
from trill.registry import TypeRegistry, resolve_model_type
from trill.syntax import GeneratedCode, generate, language_for_extension, parse
from trill.views import ErrorView, View

if TYPE_CHECKING:
    from trill.identity import ViewIdentity

logger = logging.getLogger("trill.compiler")

ViewFactory = Callable[[], View]

COMPILE_LOCK = threading.Lock()


@dataclass(frozen=True, slots=True)
class CompilationResult:
    """The outcome of compiling one template.

    Attributes:
        identity: The template that was compiled.
        factory: Zero-argument constructor for fresh view instances. For a
            failed compile it builds an ``ErrorView``.
        errors: Formatted error messages; empty on success.
        unit: The generated code, when generation got that far.
    """

    identity: ViewIdentity
    factory: ViewFactory
    errors: tuple[str, ...] = ()
    unit: GeneratedCode | None = None

    @property
    def succeeded(self) -> bool:
        return not self.errors


class TemplateCompiler:
    """Compile templates through a pluggable backend.

    Args:
        config: Engine configuration (namespaces, dependencies, modules).
        backend: Compilation backend; defaults to ``PythonBackend``.
        registry: Known application types for model lookup; defaults to
            one built from ``config.application_modules``.
        lock: Mutual exclusion around backend calls; defaults to the
            process-wide ``COMPILE_LOCK``.
    """

    def __init__(
        self,
        config: ViewConfig | None = None,
        *,
        backend: CompilationBackend | None = None,
        registry: TypeRegistry | None = None,
        lock: threading.Lock | None = None,
    ) -> None:
        self.config = config or ViewConfig()
        self.backend = backend or PythonBackend(self.config.work_dir)
        self.registry = registry or TypeRegistry(
            (*self.config.application_modules, *self.config.extra_dependencies)
        )
        self.lock = lock or COMPILE_LOCK

    # -- single template ---------------------------------------------------

    def compile(
        self,
        identity: ViewIdentity,
        *,
        passed_model_type: type | None = None,
        referencing_module: str | None = None,
    ) -> CompilationResult:
        """Compile one template.

        Args:
            identity: The template to compile.
            passed_model_type: Model type from the caller's context, used
                when the template declares none.
            referencing_module: Module of the code that requested the
                render; added to the dependency set.

        Raises:
            UnresolvedModelTypeError: The declared model type is unknown.
        """
        unit = self.generate(identity, passed_model_type=passed_model_type)

        generator_errors = errors_only(unit.diagnostics)
        if generator_errors:
            return self._failed(unit, generator_errors)

        dependencies = self.dependencies_for(unit, referencing_module)
        logger.debug("Compiling %s as %s", identity.full_name, unit.id)
        with self.lock:
            result = self.backend.compile(dependencies, [unit])

        diagnostics = [d for d in result.diagnostics if d.unit_id in (None, unit.id)]
        self._log_warnings(unit, diagnostics)
        errors = errors_only(diagnostics)
        if errors:
            return self._failed(unit, errors)
        return self._load(unit, result.module)

    def generate(
        self,
        identity: ViewIdentity,
        *,
        passed_model_type: type | None = None,
    ) -> GeneratedCode:
        """Parse a template, resolve its model type and generate its unit."""
        language = language_for_extension(identity.extension)
        source = identity.read_text()
        parsed = parse(source)

        declared = parsed.document.model.type_name if parsed.document.model else None
        model_type = resolve_model_type(declared, passed_model_type, self.registry)

        model_import = None
        if self.config.auto_include_model_namespace:
            model_import = _importable_name(model_type)

        return generate(
            parsed.document,
            language=language,
            identity=identity,
            model_type=model_type,
            template_source=source,
            diagnostics=parsed.diagnostics,
            namespaces=self.config.default_namespaces,
            model_import=model_import,
        )

    def dependencies_for(
        self,
        unit: GeneratedCode,
        referencing_module: str | None = None,
    ) -> tuple[str, ...]:
        """Every module the unit's compile depends on, de-duplicated and sorted."""
        dependencies = set(unit.language.runtime_modules)
        dependencies.add("trill.views")
        model_module = unit.model_type.__module__
        if model_module and model_module != "builtins":
            dependencies.add(model_module)
        if referencing_module and referencing_module != "builtins":
            dependencies.add(referencing_module)
        dependencies.update(self.config.extra_dependencies)
        return tuple(sorted(dependencies))

    # -- bulk mode ---------------------------------------------------------

    def compile_batch(self, identities: Iterable[ViewIdentity]) -> Iterator[CompilationResult]:
        """Compile many templates with one backend call per language.

        Yields exactly one result per identity. A template that fails (in
        generation, in the backend, or at class lookup) only fails itself.

        Raises:
            UnresolvedModelTypeError: A template declares an unknown model type.
        """
        groups: dict[str, list[GeneratedCode]] = defaultdict(list)
        for identity in identities:
            unit = self.generate(identity)
            groups[unit.language.name].append(unit)

        for language, units in groups.items():
            ready: list[GeneratedCode] = []
            for unit in units:
                generator_errors = errors_only(unit.diagnostics)
                if generator_errors:
                    yield self._failed(unit, generator_errors)
                else:
                    ready.append(unit)
            if not ready:
                continue

            dependencies: set[str] = set()
            for unit in ready:
                dependencies.update(self.dependencies_for(unit))

            logger.debug("Compiling %d %s template(s) in one batch", len(ready), language)
            with self.lock:
                result = self.backend.compile(tuple(sorted(dependencies)), ready)

            shared: list[Diagnostic] = []
            by_unit: dict[str, list[Diagnostic]] = defaultdict(list)
            for diagnostic in result.diagnostics:
                if diagnostic.unit_id is None:
                    shared.append(diagnostic)
                else:
                    by_unit[diagnostic.unit_id].append(diagnostic)

            failed = 0
            for unit in ready:
                diagnostics = [*shared, *by_unit[unit.id]]
                self._log_warnings(unit, diagnostics)
                errors = errors_only(diagnostics)
                if errors:
                    failed += 1
                    yield self._failed(unit, errors)
                else:
                    compiled = self._load(unit, result.module)
                    failed += 0 if compiled.succeeded else 1
                    yield compiled
            logger.info(
                "Compiled %d %s template(s), %d failed",
                len(ready),
                language,
                failed,
            )

    # -- results -----------------------------------------------------------

    def _failed(self, unit: GeneratedCode, errors: Sequence[Diagnostic]) -> CompilationResult:
        logger.warning(
            "Template %s failed to compile with %d error(s)",
            unit.identity.full_name,
            len(errors),
        )
        document = render_compilation_error(
            unit.identity,
            unit.template_source,
            errors,
            unit.source,
        )
        return CompilationResult(
            identity=unit.identity,
            factory=functools.partial(ErrorView, document),
            errors=tuple(format_diagnostic(d) for d in errors),
            unit=unit,
        )

    def _load(self, unit: GeneratedCode, module: ModuleType | None) -> CompilationResult:
        try:
            view_class = _find_view_class(unit, module)
        except LoadedTypeMismatchError as exc:
            logger.warning("Template %s: %s", unit.identity.full_name, exc)
            return CompilationResult(
                identity=unit.identity,
                factory=functools.partial(
                    ErrorView,
                    render_load_error(unit.identity, str(exc), unit.template_source, unit.source),
                ),
                errors=(str(exc),),
                unit=unit,
            )
        return CompilationResult(identity=unit.identity, factory=view_class, unit=unit)

    @staticmethod
    def _log_warnings(unit: GeneratedCode, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            if not diagnostic.is_error:
                logger.warning("%s: %s", unit.identity.full_name, format_diagnostic(diagnostic))


def _find_view_class(unit: GeneratedCode, module: ModuleType | None) -> type[View]:
    if module is None:
        msg = "Error loading template module"
        raise LoadedTypeMismatchError(msg)
    view_class = getattr(module, unit.class_name, None)
    if view_class is None:
        msg = f"Could not find type {unit.class_name} in module {module.__name__}"
        raise LoadedTypeMismatchError(msg)
    if not (isinstance(view_class, type) and issubclass(view_class, View)):
        msg = f"{unit.class_name} in module {module.__name__} does not derive from trill.views.View"
        raise LoadedTypeMismatchError(msg)
    return view_class


def _importable_name(model_type: type) -> tuple[str, str] | None:
    """``(module, name)`` if the model type can be imported by name."""
    module = model_type.__module__
    qualname = model_type.__qualname__
    if not module or module == "builtins" or "." in qualname or "<" in qualname:
        return None
    return module, qualname
