"""Shared fixtures for the trill test suite."""

from collections.abc import Sequence
from pathlib import Path

import pytest

from trill.backend import BackendResult, PythonBackend
from trill.compiler import TemplateCompiler
from trill.config import ViewConfig
from trill.engine import ViewEngine
from trill.locator import MemoryViewLocator
from trill.syntax.codegen import GeneratedCode


class CountingBackend:
    """Wraps a real backend and records every invocation."""

    def __init__(self, inner: PythonBackend) -> None:
        self.inner = inner
        self.calls: list[tuple[tuple[str, ...], tuple[GeneratedCode, ...]]] = []

    def compile(self, dependencies: Sequence[str], units: Sequence[GeneratedCode]) -> BackendResult:
        self.calls.append((tuple(dependencies), tuple(units)))
        return self.inner.compile(dependencies, units)


@pytest.fixture
def config(tmp_path: Path) -> ViewConfig:
    return ViewConfig(work_dir=tmp_path / "views")


@pytest.fixture
def backend(config: ViewConfig) -> CountingBackend:
    return CountingBackend(PythonBackend(config.work_dir))


@pytest.fixture
def compiler(config: ViewConfig, backend: CountingBackend) -> TemplateCompiler:
    return TemplateCompiler(config, backend=backend)


@pytest.fixture
def locator() -> MemoryViewLocator:
    return MemoryViewLocator()


@pytest.fixture
def engine(config: ViewConfig, compiler: TemplateCompiler, locator: MemoryViewLocator) -> ViewEngine:
    return ViewEngine(config, compiler=compiler, locator=locator)
