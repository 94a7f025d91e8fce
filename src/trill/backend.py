"""Compilation backends — turn generated code units into a loadable module.

The compiler talks to backends only through ``CompilationBackend``, so
dependency assembly, caching and error mapping can be exercised with any
backend (tests use counting and deliberately broken doubles).

``PythonBackend`` is the default: it compiles each unit with the builtin
``compile()`` and executes each unit into its own fresh module, so imports
and names bound by one template never reach another. The returned module
exposes every view class under its generated name. The combined source is
written to the work directory under a unique name that is never reused,
and that path is the code objects' filename so tracebacks through
generated views show the generated source.

Backend diagnostic codes:

    TRL101  syntax error in generated source
    TRL102  exception while executing the generated module body
    TRL201  dependency cannot be imported
    TRL301  compiler warning (not an error)
"""

from __future__ import annotations

import importlib
import logging
import tempfile
import threading
import traceback
import types
import uuid
import warnings
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from trill.diagnostics import Diagnostic, Severity
from trill.syntax.codegen import GeneratedCode

logger = logging.getLogger("trill.backend")


@dataclass(frozen=True, slots=True)
class BackendResult:
    """Outcome of one backend invocation.

    ``module`` is ``None`` when nothing could be compiled at all.
    Diagnostics carry the ``unit_id`` of the unit they belong to.
    """

    module: types.ModuleType | None
    diagnostics: tuple[Diagnostic, ...] = ()
    artifact: Path | None = None


class CompilationBackend(Protocol):
    def compile(
        self,
        dependencies: Sequence[str],
        units: Sequence[GeneratedCode],
    ) -> BackendResult: ...


class PythonBackend:
    """Compile generated views with the running interpreter.

    Args:
        work_dir: Directory for generated artifacts. ``None`` creates a
            private temporary directory on first use.
    """

    def __init__(self, work_dir: str | Path | None = None) -> None:
        self._work_dir = Path(work_dir) if work_dir is not None else None
        self._lock = threading.Lock()

    @property
    def work_dir(self) -> Path:
        if self._work_dir is None:
            with self._lock:
                if self._work_dir is None:
                    self._work_dir = Path(tempfile.mkdtemp(prefix="trill-"))
        self._work_dir.mkdir(parents=True, exist_ok=True)
        return self._work_dir

    def compile(
        self,
        dependencies: Sequence[str],
        units: Sequence[GeneratedCode],
    ) -> BackendResult:
        if not units:
            return BackendResult(module=None)

        missing = self._check_dependencies(dependencies, units)
        if missing:
            return BackendResult(module=None, diagnostics=tuple(missing))

        token = uuid.uuid4().hex
        language = units[0].language.name
        artifact = self.work_dir / f"TrillViews_{language}_{token}.py"

        offsets: list[int] = []
        combined: list[str] = []
        line_count = 0
        for unit in units:
            offsets.append(line_count)
            combined.append(unit.source)
            line_count += unit.source.count("\n")
        # Written before executing so tracebacks can show generated lines.
        artifact.write_text("".join(combined), encoding="utf-8")

        module = types.ModuleType(f"trill_views_{language}_{token}")
        module.__file__ = str(artifact)
        diagnostics: list[Diagnostic] = []
        for unit, offset in zip(units, offsets, strict=True):
            unit_module = types.ModuleType(f"{module.__name__}.{unit.id}")
            unit_module.__file__ = str(artifact)
            diagnostics.extend(self._compile_unit(unit, offset, artifact, unit_module))
            view_class = getattr(unit_module, unit.class_name, None)
            if view_class is not None:
                setattr(module, unit.class_name, view_class)

        logger.debug(
            "Compiled %d %s unit(s) into %s (%d diagnostics)",
            len(units),
            language,
            artifact.name,
            len(diagnostics),
        )
        return BackendResult(module=module, diagnostics=tuple(diagnostics), artifact=artifact)

    def _check_dependencies(
        self,
        dependencies: Sequence[str],
        units: Sequence[GeneratedCode],
    ) -> list[Diagnostic]:
        missing: list[Diagnostic] = []
        for dependency in dependencies:
            try:
                importlib.import_module(dependency)
            except ImportError as exc:
                for unit in units:
                    missing.append(
                        Diagnostic(
                            line=1,
                            column=1,
                            code="TRL201",
                            message=f"Unable to import dependency {dependency!r}: {exc}",
                            unit_id=unit.id,
                        )
                    )
        return missing

    def _compile_unit(
        self,
        unit: GeneratedCode,
        offset: int,
        artifact: Path,
        module: types.ModuleType,
    ) -> list[Diagnostic]:
        diagnostics: list[Diagnostic] = []
        # Pad with blank lines so code object line numbers match the artifact.
        padded = "\n" * offset + unit.source
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                code = compile(padded, str(artifact), "exec")
            except SyntaxError as exc:
                generated_line = (exc.lineno or offset + 1) - offset
                diagnostics.append(
                    Diagnostic(
                        line=unit.template_line(generated_line),
                        column=exc.offset or 1,
                        code="TRL101",
                        message=exc.msg,
                        unit_id=unit.id,
                    )
                )
                return diagnostics

        for warning in caught:
            generated_line = (getattr(warning, "lineno", 0) or offset + 1) - offset
            diagnostics.append(
                Diagnostic(
                    line=unit.template_line(generated_line),
                    column=1,
                    code="TRL301",
                    message=str(warning.message),
                    severity=Severity.WARNING,
                    unit_id=unit.id,
                )
            )

        namespace = module.__dict__
        namespace.update(unit.bindings)
        try:
            exec(code, namespace)  # noqa: S102
        except Exception as exc:
            generated_line = self._failing_line(exc, str(artifact)) - offset
            diagnostics.append(
                Diagnostic(
                    line=unit.template_line(max(generated_line, 1)),
                    column=1,
                    code="TRL102",
                    message=f"{type(exc).__name__}: {exc}",
                    unit_id=unit.id,
                )
            )
        return diagnostics

    @staticmethod
    def _failing_line(exc: BaseException, filename: str) -> int:
        """Line of the innermost traceback frame inside the artifact."""
        lineno = 1
        for frame in traceback.extract_tb(exc.__traceback__):
            if frame.filename == filename and frame.lineno is not None:
                lineno = frame.lineno
        return lineno
