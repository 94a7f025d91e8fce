"""View runtime — the base classes generated views derive from.

A view instance is constructed by its compiled factory, initialized with the
engine, render context and model, executed exactly once, and discarded
after the engine has read its body, sections and layout. Instances are
never shared between renders; the generated classes keep no mutable state
at class level, so one factory serves any number of concurrent requests.
"""

from __future__ import annotations

import html
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from trill.errors import SectionNotDefinedError

if TYPE_CHECKING:
    from trill.engine import RenderContext, ViewEngine


class Raw(str):
    """Text that is already safe to write without escaping."""

    __slots__ = ()


def raw(value: object) -> Raw:
    """Mark a value as pre-escaped markup."""
    if value is None:
        return Raw("")
    return Raw(value)


def escape_html(value: object) -> str:
    if isinstance(value, Raw):
        return value
    return html.escape(str(value), quote=True)


class DynamicModel:
    """Attribute access over a mapping model.

    Gives ``object``-typed templates ``model.name`` over a plain dict, the
    way a typed template reads attributes from its model class. Nested
    mappings are wrapped on access.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data = data

    def __getattr__(self, name: str) -> Any:
        try:
            value = self._data[name]
        except KeyError:
            raise AttributeError(f"Model has no field {name!r}") from None
        return DynamicModel(value) if isinstance(value, Mapping) else value

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"DynamicModel({self._data!r})"


class View:
    """Base for every compiled view.

    Generated subclasses override ``execute()`` and set ``template_name``
    and ``model_type``. Layout templates receive the child's body and
    sections through ``execute_view()`` and read them back with
    ``render_body()`` and ``render_section()``.
    """

    template_name: ClassVar[str] = "<view>"
    model_type: ClassVar[type] = object
    declares_model: ClassVar[bool] = False

    def __init__(self) -> None:
        self.body = ""
        self.section_contents: dict[str, str] = {}
        self.layout: str | None = None
        self.model: Any = None
        self.context: Mapping[str, Any] = {}
        self.engine: ViewEngine | None = None
        self.render_context: RenderContext | None = None
        self._original_model: Any = None
        self._buffer: list[str] = []
        self._child_body: str | None = None
        self._child_sections: dict[str, str] = {}
        self._executed = False

    @property
    def has_layout(self) -> bool:
        return bool(self.layout and str(self.layout).strip())

    def initialize(
        self,
        engine: ViewEngine | None,
        render_context: RenderContext | None,
        model: Any,
    ) -> None:
        self.engine = engine
        self.render_context = render_context
        self.context = render_context.values if render_context is not None else {}
        self._original_model = model
        self.model = self.bind_model(model)

    def bind_model(self, model: Any) -> Any:
        """Wrap mappings in ``DynamicModel`` unless a model type was declared.

        Templates without ``{% model %}`` wrap any mapping they are given,
        whatever model type they were first compiled against.
        """
        if isinstance(model, Mapping) and (self.model_type is object or not self.declares_model):
            return DynamicModel(model)
        return model

    def execute_view(
        self,
        body: str | None = None,
        sections: Mapping[str, str] | None = None,
    ) -> None:
        """Run the template once, capturing its body and sections.

        Args:
            body: The child view's rendered body (layouts only).
            sections: The child view's sections (layouts only).
        """
        if self._executed:
            msg = "View instances are executed exactly once"
            raise RuntimeError(msg)
        self._executed = True
        self._child_body = body
        self._child_sections = dict(sections or {})
        self.execute()
        self.body = "".join(self._buffer)

    def execute(self) -> None:
        """Write the template's output. Implemented by generated views."""

    # -- output ------------------------------------------------------------

    def escape(self, value: object) -> str:
        return str(value)

    def write(self, value: object) -> None:
        if value is not None:
            self._buffer.append(self.escape(value))

    def write_literal(self, value: object) -> None:
        if value is not None:
            self._buffer.append(str(value))

    # -- sections and layouts ----------------------------------------------

    def define_section(self, name: str, render: Callable[[], None]) -> None:
        """Capture the output of ``render`` as section ``name``."""
        outer = self._buffer
        self._buffer = []
        try:
            render()
            self.section_contents[name] = "".join(self._buffer)
        finally:
            self._buffer = outer

    def render_body(self) -> Raw:
        return Raw(self._child_body or "")

    def render_section(self, name: str, required: bool = True) -> Raw:
        if name in self._child_sections:
            return Raw(self._child_sections[name])
        if required:
            raise SectionNotDefinedError(name, self.template_name)
        return Raw("")

    def is_section_defined(self, name: str) -> bool:
        return name in self._child_sections

    def partial(self, name: str, model: Any = None) -> Raw:
        """Render another view as a fragment (never wrapped in a layout)."""
        if self.engine is None or self.render_context is None:
            msg = f"{self.template_name} was not initialized with an engine"
            raise RuntimeError(msg)
        partial_model = self._original_model if model is None else model
        return Raw(self.engine.render_partial(name, partial_model, self.render_context))


class HtmlView(View):
    """View whose ``{{ output }}`` is HTML-escaped."""

    def escape(self, value: object) -> str:
        return escape_html(value)


class TextView(View):
    """View whose ``{{ output }}`` is written as plain text."""


class ErrorView(View):
    """Renders a compile diagnostic document as its body.

    Produced by error factories so a broken template flows through the
    rendering pipeline like any other view. Never has a layout.
    """

    template_name = "<error>"

    def __init__(self, document: str) -> None:
        super().__init__()
        self.document = document

    def execute(self) -> None:
        self.write_literal(self.document)
