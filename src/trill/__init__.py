"""Trill — compiled view templates with layouts and sections.

Templates are compiled to Python view classes, cached per template, and
rendered through any chain of layouts they name.

Basic usage::

    from trill import MemoryViewLocator, ViewEngine

    locator = MemoryViewLocator({
        "index.html": "{% layout 'shared/layout' %}<h1>{{ model.title }}</h1>",
        "shared/layout.html": "<main>{% body %}</main>",
    })
    engine = ViewEngine(locator=locator)
    html = engine.render_to_string(locator.identity("index.html"), {"title": "Hi"})

Warm the cache ahead of the first request::

    for result in engine.cache.compile_all(locator, [engine]):
        print(result.identity.full_name, result.succeeded)
"""

__version__ = "0.1.0-dev"
__all__ = [
    "CompilationBackend",
    "CompilationResult",
    "ConfigurationError",
    "DefaultRenderContext",
    "Diagnostic",
    "FileSystemViewLocator",
    "LayoutCycleError",
    "LayoutNotFoundError",
    "MemoryViewLocator",
    "PythonBackend",
    "RenderContext",
    "SectionNotDefinedError",
    "TemplateCompiler",
    "TrillError",
    "TypeRegistry",
    "UnresolvedModelTypeError",
    "View",
    "ViewCache",
    "ViewConfig",
    "ViewEngine",
    "ViewIdentity",
    "ViewNotFoundError",
    "is_stale",
    "raw",
]

# public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "CompilationBackend": "trill.backend",
    "PythonBackend": "trill.backend",
    "ViewCache": "trill.cache",
    "CompilationResult": "trill.compiler",
    "TemplateCompiler": "trill.compiler",
    "ViewConfig": "trill.config",
    "Diagnostic": "trill.diagnostics",
    "DefaultRenderContext": "trill.engine",
    "RenderContext": "trill.engine",
    "ViewEngine": "trill.engine",
    "ConfigurationError": "trill.errors",
    "LayoutCycleError": "trill.errors",
    "LayoutNotFoundError": "trill.errors",
    "SectionNotDefinedError": "trill.errors",
    "TrillError": "trill.errors",
    "UnresolvedModelTypeError": "trill.errors",
    "ViewNotFoundError": "trill.errors",
    "ViewIdentity": "trill.identity",
    "is_stale": "trill.identity",
    "FileSystemViewLocator": "trill.locator",
    "MemoryViewLocator": "trill.locator",
    "TypeRegistry": "trill.registry",
    "View": "trill.views",
    "raw": "trill.views",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import trill`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
