"""View engine — render a template through its chain of layouts.

Rendering is two-pass per level. A view executes first and produces its
body, its named sections and (optionally) the name of its layout. The
layout then executes with that body and those sections injected, and may
itself name a further layout::

    index.html ──body, sections──▶ shared/section.html ──body──▶ shared/base.html
                                                                     │
                                                                 root body

Only the view being rendered directly may fall back to the implicit
view-start template for its layout; layouts above it must name their own.
Partial renders never consult a layout, and neither does an error view:
its diagnostic document is already a complete page.

Compiled factories come from the render context's ``ViewCache``; a miss
compiles through the engine's ``TemplateCompiler``.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Protocol

import anyio.to_thread

from trill.cache import ViewCache
from trill.compiler import CompilationResult, TemplateCompiler
from trill.config import ViewConfig
from trill.errors import ConfigurationError, LayoutCycleError, LayoutNotFoundError, ViewNotFoundError
from trill.identity import ViewIdentity
from trill.locator import ViewLocator
from trill.syntax import LANGUAGES
from trill.views import ErrorView, View

logger = logging.getLogger("trill.engine")


class RenderContext(Protocol):
    """Per-render collaborators handed to the engine and to every view."""

    @property
    def view_cache(self) -> ViewCache: ...

    @property
    def values(self) -> Mapping[str, Any]: ...

    def locate_view(self, name: str, model: Any) -> ViewIdentity | None: ...


@dataclass(frozen=True, slots=True)
class DefaultRenderContext:
    """Render context over a locator and a cache.

    ``values`` is exposed to templates as ``context``.
    """

    locator: ViewLocator
    view_cache: ViewCache
    values: Mapping[str, Any] = field(default_factory=dict)

    def locate_view(self, name: str, model: Any) -> ViewIdentity | None:
        return self.locator.locate(name, model)


class ViewEngine:
    """Compile, cache and render views with layouts and sections.

    Args:
        config: Engine configuration.
        cache: Compiled view cache; one is created when omitted.
        compiler: Template compiler; one is created from ``config`` when
            omitted.
        locator: Default locator for render contexts built by the engine.
    """

    def __init__(
        self,
        config: ViewConfig | None = None,
        *,
        cache: ViewCache | None = None,
        compiler: TemplateCompiler | None = None,
        locator: ViewLocator | None = None,
    ) -> None:
        self.config = config or ViewConfig()
        self.cache = cache if cache is not None else ViewCache(self.config)
        self.compiler = compiler or TemplateCompiler(self.config)
        self.locator = locator

    @property
    def extensions(self) -> tuple[str, ...]:
        """Template extensions this engine can compile."""
        return tuple(ext for language in LANGUAGES for ext in language.extensions)

    def create_render_context(self, values: Mapping[str, Any] | None = None) -> DefaultRenderContext:
        if self.locator is None:
            msg = "ViewEngine has no locator; pass one or supply a render context"
            raise ConfigurationError(msg)
        return DefaultRenderContext(self.locator, self.cache, dict(values or {}))

    # -- rendering ---------------------------------------------------------

    def render(
        self,
        identity: ViewIdentity,
        model: Any = None,
        render_context: RenderContext | None = None,
        *,
        is_partial: bool = False,
    ) -> Callable[[BinaryIO], None]:
        """Return a writer that renders the view into a binary sink.

        Nothing is compiled or executed until the writer is called.
        """

        def write(sink: BinaryIO) -> None:
            body = self.render_to_string(identity, model, render_context, is_partial=is_partial)
            sink.write(body.encode(self.config.encoding))

        return write

    def render_to_string(
        self,
        identity: ViewIdentity,
        model: Any = None,
        render_context: RenderContext | None = None,
        *,
        is_partial: bool = False,
    ) -> str:
        """Render a view and every layout above it; return the root body.

        Raises:
            UnresolvedModelTypeError: A template declares an unknown model.
            LayoutNotFoundError: A named layout cannot be located.
            LayoutCycleError: The chain exceeds ``config.max_layout_depth``.
            SectionNotDefinedError: A layout requires a missing section.
        """
        context = render_context if render_context is not None else self.create_render_context()

        view = self._execute(identity, model, context)
        if is_partial or isinstance(view, ErrorView):
            layout = None
        elif view.has_layout:
            layout = view.layout
        else:
            layout = self._view_start_layout(model, context)

        chain = [identity.full_name]
        while layout:
            if len(chain) > self.config.max_layout_depth:
                raise LayoutCycleError([*chain, layout], self.config.max_layout_depth)
            layout_identity = context.locate_view(layout, model)
            if layout_identity is None:
                raise LayoutNotFoundError(layout)
            logger.debug("%s uses layout %s", chain[-1], layout_identity.full_name)
            chain.append(layout_identity.full_name)
            view = self._execute(
                layout_identity,
                model,
                context,
                body=view.body,
                sections=view.section_contents,
            )
            layout = view.layout if view.has_layout else None

        return view.body

    async def render_async(
        self,
        identity: ViewIdentity,
        model: Any = None,
        render_context: RenderContext | None = None,
        *,
        is_partial: bool = False,
    ) -> str:
        """``render_to_string`` on a worker thread, for async callers."""
        return await anyio.to_thread.run_sync(
            functools.partial(
                self.render_to_string,
                identity,
                model,
                render_context,
                is_partial=is_partial,
            )
        )

    def render_partial(
        self,
        name: str,
        model: Any = None,
        render_context: RenderContext | None = None,
    ) -> str:
        """Locate ``name`` and render it as a fragment, without layouts."""
        context = render_context if render_context is not None else self.create_render_context()
        identity = context.locate_view(name, model)
        if identity is None:
            raise ViewNotFoundError(name)
        return self.render_to_string(identity, model, context, is_partial=True)

    # -- bulk compilation --------------------------------------------------

    def compile_views(self, identities: Iterable[ViewIdentity]) -> Iterator[CompilationResult]:
        """Compile many templates at once (used by ``ViewCache.compile_all``)."""
        return self.compiler.compile_batch(identities)

    # -- internals ---------------------------------------------------------

    def _execute(
        self,
        identity: ViewIdentity,
        model: Any,
        context: RenderContext,
        *,
        body: str | None = None,
        sections: Mapping[str, str] | None = None,
    ) -> View:
        factory = context.view_cache.get_or_add(
            identity,
            functools.partial(self._compile, model=model),
        )
        view = factory()
        view.initialize(self, context, model)
        view.execute_view(body, sections)
        return view

    def _compile(self, identity: ViewIdentity, model: Any) -> CompilationResult:
        return self.compiler.compile(
            identity,
            passed_model_type=_passed_model_type(model),
            referencing_module=type(model).__module__ if model is not None else None,
        )

    def _view_start_layout(self, model: Any, context: RenderContext) -> str | None:
        identity = context.locate_view(self.config.view_start_name, model)
        if identity is None or identity.extension.lower() not in self.extensions:
            return None
        view_start = self._execute(identity, model, context)
        return view_start.layout if view_start.has_layout else None


def _passed_model_type(model: Any) -> type | None:
    """Model type implied by the render call; mappings stay untyped."""
    if model is None or isinstance(model, Mapping):
        return None
    return type(model)

