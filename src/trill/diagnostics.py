"""Compile diagnostics and the self-contained compile error page.

Renders the error document without depending on any template machinery.
Uses plain f-strings and string concatenation so that a broken template
system cannot prevent error reporting.

The page renders:
- The template's full name
- Every error diagnostic as ``[CODE] Line: L Column: C - message`` with an
  in-page link to the offending line
- The template source with each erroring line highlighted and anchored
- The full generated Python source, numbered, for advanced debugging

The document is the body of an error view. It is never raised.
"""

from __future__ import annotations

import html
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trill.identity import ViewIdentity


class Severity(Enum):
    """Severity of a compile diagnostic."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A single message produced by the parser, generator, or backend.

    ``line`` and ``column`` are 1-based positions in the *template* source
    (backend positions are mapped back through the unit's line map).
    ``unit_id`` names the compilation unit in batch compiles.
    """

    line: int
    column: int
    code: str
    message: str
    severity: Severity = Severity.ERROR
    unit_id: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


def errors_only(diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
    """Drop warnings, keeping the diagnostics that fail a compile."""
    return [d for d in diagnostics if d.is_error]


def format_diagnostic(diagnostic: Diagnostic) -> str:
    """Plain-text one-liner for logs, CLI output, and result error lists."""
    return (
        f"[{diagnostic.code}] Line: {diagnostic.line} "
        f"Column: {diagnostic.column} - {diagnostic.message}"
    )


# ---------------------------------------------------------------------------
# CSS
# ---------------------------------------------------------------------------

_CSS = """\
* { margin: 0; padding: 0; box-sizing: border-box; }
body {
    font-family: ui-monospace, 'Cascadia Code', 'Source Code Pro', Menlo, Consolas,
                 'DejaVu Sans Mono', monospace;
    background: #1a1b26; color: #a9b1d6; line-height: 1.6;
    padding: 2rem; font-size: 14px;
}
.error-page { max-width: 960px; margin: 0 auto; }
h1 { color: #f7768e; font-size: 1.4rem; margin-bottom: 0.5rem; }
h2 { color: #7aa2f7; font-size: 1.1rem; margin: 1.5rem 0 0.5rem; border-bottom: 1px solid #2f3549; padding-bottom: 0.3rem; }
.template-name { color: #e0af68; font-size: 1rem; margin-bottom: 1rem; }
.diagnostic { padding: 0.15rem 0; font-size: 0.85rem; }
.diagnostic .code { color: #bb9af7; }
.diagnostic a { color: #7dcfff; text-decoration: none; margin-left: 0.5rem; }
.diagnostic a:hover { text-decoration: underline; }
.source { padding: 0; margin: 0; overflow-x: auto; border: 1px solid #2f3549; border-radius: 6px; }
.source-line { display: flex; padding: 0 0.8rem; font-size: 0.82rem; }
.source-line .lineno { color: #565f89; min-width: 3.5rem; text-align: right; padding-right: 1rem; user-select: none; flex-shrink: 0; }
.source-line .code { white-space: pre; }
.source-line.error-line { background: rgba(247, 118, 142, 0.15); }
.source-line.error-line .lineno { color: #f7768e; }
"""


# ---------------------------------------------------------------------------
# HTML builders
# ---------------------------------------------------------------------------


def _esc(text: str) -> str:
    """HTML-escape a string."""
    return html.escape(str(text), quote=True)


def _render_diagnostics(diagnostics: Sequence[Diagnostic]) -> str:
    parts: list[str] = []
    for d in diagnostics:
        parts.append(
            f'<div class="diagnostic">'
            f'<span class="code">[{_esc(d.code)}]</span> '
            f"Line: {d.line} Column: {d.column} - {_esc(d.message)}"
            f'<a class="line-link" href="#L{d.line}">show</a>'
            f"</div>"
        )
    return "".join(parts)


def _render_template_lines(source: str, error_lines: set[int]) -> str:
    """Render template source; erroring lines are highlighted and anchored."""
    parts: list[str] = []
    for lineno, code in enumerate(source.splitlines(), start=1):
        if lineno in error_lines:
            parts.append(
                f'<div class="source-line error-line" id="L{lineno}">'
                f'<span class="lineno">{lineno}</span>'
                f'<span class="code">{_esc(code)}</span>'
                f"</div>"
            )
        else:
            parts.append(
                f'<div class="source-line">'
                f'<span class="lineno">{lineno}</span>'
                f'<span class="code">{_esc(code)}</span>'
                f"</div>"
            )
    return "".join(parts)


def _render_generated_source(generated_source: str) -> str:
    lines = generated_source.splitlines()
    listing = "\n".join(
        f"Line {lineno}:\t{_esc(code)}" for lineno, code in enumerate(lines, start=1)
    )
    return f"<pre><code>{listing}</code></pre>"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_compilation_error(
    identity: ViewIdentity,
    source: str,
    diagnostics: Sequence[Diagnostic],
    generated_source: str = "",
    *,
    heading: str = "Error compiling template",
) -> str:
    """Render the diagnostic document for a failed compile.

    Args:
        identity: The template that failed to compile.
        source: The template source as read for the compile.
        diagnostics: Diagnostics for this template; warnings are ignored.
        generated_source: The generated Python source, if any was produced.
        heading: Page heading and title prefix.

    Returns:
        A complete HTML document.
    """
    errors = errors_only(diagnostics)
    error_lines = {d.line for d in errors}

    sections: list[str] = []
    sections.append(f"<h1>{_esc(heading)}</h1>")
    sections.append(f'<div class="template-name">{_esc(identity.full_name)}</div>')

    sections.append("<h2>Errors</h2>")
    sections.append(_render_diagnostics(errors))

    sections.append("<h2>Details</h2>")
    sections.append(f'<div class="source">{_render_template_lines(source, error_lines)}</div>')

    if generated_source:
        sections.append("<h2>Compilation Source</h2>")
        sections.append(_render_generated_source(generated_source))

    body_html = "\n".join(sections)

    return (
        f"<!DOCTYPE html>"
        f'<html lang="en"><head>'
        f"<meta charset=\"utf-8\">"
        f"<title>{_esc(heading)}: {_esc(identity.full_name)}</title>"
        f"<style>{_CSS}</style>"
        f"</head><body>"
        f'<div class="error-page">{body_html}</div>'
        f"</body></html>"
    )


def render_load_error(
    identity: ViewIdentity,
    message: str,
    source: str = "",
    generated_source: str = "",
) -> str:
    """Render the document for a compile whose module could not be used.

    The message is reported as a ``TRL401`` diagnostic against line 1, with
    the same source and generated-code listings as a compile failure.
    """
    diagnostic = Diagnostic(line=1, column=1, code="TRL401", message=message)
    return render_compilation_error(
        identity,
        source,
        [diagnostic],
        generated_source,
        heading="Error loading template",
    )
