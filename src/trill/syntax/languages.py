"""Template languages.

A language decides how ``{{ output }}`` is written (HTML-escaped or plain),
which view base class generated code derives from, and which modules a
compile of that language always depends on. Templates pick their language
by file extension; batch compiles group templates by language.
"""

from __future__ import annotations

from dataclasses import dataclass

from trill.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class TemplateLanguage:
    name: str
    extensions: tuple[str, ...]
    base_class: str  # attribute of trill.views
    runtime_modules: tuple[str, ...]


HTML = TemplateLanguage(
    name="html",
    extensions=("html", "htm"),
    base_class="HtmlView",
    runtime_modules=("html", "trill.views"),
)

TEXT = TemplateLanguage(
    name="text",
    extensions=("txt",),
    base_class="TextView",
    runtime_modules=("trill.views",),
)

LANGUAGES: tuple[TemplateLanguage, ...] = (HTML, TEXT)


def language_for_extension(extension: str) -> TemplateLanguage:
    """Find the language for a template extension (case-insensitive)."""
    ext = extension.lower().lstrip(".")
    for language in LANGUAGES:
        if ext in language.extensions:
            return language
    known = ", ".join(e for lang in LANGUAGES for e in lang.extensions)
    raise ConfigurationError(f"No template language handles .{ext} files (known: {known})")
