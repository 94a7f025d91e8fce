"""Model type lookup for ``{% model %}`` declarations.

Resolves the textual type name a template declares to a concrete class:

1. Exact fully qualified name through the import system
2. Fully qualified name among the classes of known application modules
3. Simple (unqualified) name among the same classes
4. No declaration at all → the type passed by the caller, else ``object``

A declaration that matches nothing raises ``UnresolvedModelTypeError``.
Silently binding to the wrong type would corrupt code generation, so there
is no fallback for a name that was written but not found.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import sys
import threading
from collections.abc import Iterable
from types import ModuleType

from trill.errors import UnresolvedModelTypeError

logger = logging.getLogger("trill.registry")


def qualified_name(cls: type) -> str:
    """``module.QualName`` for a class (``builtins`` classes keep their bare name)."""
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def load_type(name: str) -> type | None:
    """Load a class by fully qualified dotted name, or return ``None``.

    Tries the longest importable module prefix first, then walks the
    remaining parts as attributes (so nested classes resolve too).
    """
    parts = name.split(".")
    if not all(part.isidentifier() for part in parts):
        return None

    if len(parts) == 1:
        import builtins

        candidate = getattr(builtins, name, None)
        return candidate if isinstance(candidate, type) else None

    for split in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:split])
        try:
            obj: object = importlib.import_module(module_name)
        except ImportError:
            continue
        for attr in parts[split:]:
            obj = getattr(obj, attr, None)
            if obj is None:
                break
        if isinstance(obj, type):
            return obj
    return None


class TypeRegistry:
    """Classes loaded from the application's known modules.

    Modules are imported and scanned on first use. A package also
    contributes the classes of its submodules that are already imported.
    Modules that fail to import are skipped.

    Thread-safe: the scan runs once under a lock.
    """

    def __init__(self, modules: Iterable[str | ModuleType] = ()) -> None:
        self._modules = tuple(modules)
        self._types: tuple[type, ...] | None = None
        self._lock = threading.Lock()

    @property
    def module_names(self) -> tuple[str, ...]:
        return tuple(m if isinstance(m, str) else m.__name__ for m in self._modules)

    @property
    def types(self) -> tuple[type, ...]:
        if self._types is None:
            with self._lock:
                if self._types is None:
                    self._types = self._scan()
        return self._types

    def _scan(self) -> tuple[type, ...]:
        found: dict[str, type] = {}
        for module in self._load_modules():
            for _, member in inspect.getmembers(module, inspect.isclass):
                found.setdefault(qualified_name(member), member)
        logger.debug("Scanned %d types from %d modules", len(found), len(self._modules))
        return tuple(found.values())

    def _load_modules(self) -> list[ModuleType]:
        loaded: list[ModuleType] = []
        for entry in self._modules:
            if isinstance(entry, ModuleType):
                module = entry
            else:
                try:
                    module = importlib.import_module(entry)
                except ImportError:
                    logger.debug("Skipping unimportable module %s", entry, exc_info=True)
                    continue
            loaded.append(module)
            if hasattr(module, "__path__"):
                prefix = module.__name__ + "."
                loaded.extend(
                    sub
                    for sub_name, sub in sorted(sys.modules.items())
                    if sub_name.startswith(prefix) and sub is not None
                )
        return loaded

    def find_by_qualified_name(self, name: str) -> type | None:
        for cls in self.types:
            if qualified_name(cls) == name:
                return cls
        return None

    def find_by_simple_name(self, name: str) -> type | None:
        for cls in self.types:
            if cls.__name__ == name:
                return cls
        return None


def resolve_model_type(
    declared: str | None,
    passed: type | None = None,
    registry: TypeRegistry | None = None,
) -> type:
    """Resolve a template's model declaration to a class.

    Args:
        declared: The name written in ``{% model ... %}``, if any.
        passed: A model type supplied by the caller's context.
        registry: Known application types, searched after the import system.

    Raises:
        UnresolvedModelTypeError: ``declared`` is set but matches nothing.
    """
    if declared is None or not declared.strip():
        return passed if passed is not None else object

    name = declared.strip()

    cls = load_type(name)
    if cls is not None:
        return cls

    if registry is not None:
        cls = registry.find_by_qualified_name(name)
        if cls is not None:
            return cls
        cls = registry.find_by_simple_name(name)
        if cls is not None:
            return cls

    raise UnresolvedModelTypeError(
        name,
        known_modules=registry.module_names if registry is not None else (),
        candidates=[qualified_name(t) for t in registry.types] if registry is not None else (),
    )
