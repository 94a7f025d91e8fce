"""View engine configuration.

One frozen ``ViewConfig`` is shared by the compiler, the cache and the
engine. Derive variants with ``dataclasses.replace()``.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ViewConfig:
    """View engine configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ViewConfig(
            application_modules=("myapp.models",),
            runtime_view_updates=True,
        )
    """

    # Code generation
    default_namespaces: tuple[str, ...] = ()  # Modules imported into every generated view
    extra_dependencies: tuple[str, ...] = ()  # Modules every compile must be able to import
    auto_include_model_namespace: bool = True

    # Model type lookup
    application_modules: tuple[str, ...] = ()  # Modules scanned for model types by name

    # Caching
    runtime_view_updates: bool = False  # Recompile when a template changes on disk
    cache_failed_compiles: bool = False

    # Layouts
    view_start_name: str = "_viewstart"
    max_layout_depth: int = 32

    # Artifacts (None = per-process temporary directory)
    work_dir: str | Path | None = None

    # Output
    encoding: str = "utf-8"
