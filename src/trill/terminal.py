"""Terminal formatting for ``trill check`` warm-up reports.

Respects TTY detection: no ANSI codes when piped or redirected.

Example output (with color)::

    ── trill check ─────────────────────────────────────────────

      4 templates · 2 languages

      ✓  index.html
      ✗  broken.html
         [TRL010] Line: 3 Column: 4 - invalid expression: 'model.'

      ✗  1 failed · 3 compiled

    ─────────────────────────────────────────────────────────────

"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trill.compiler import CompilationResult

_W = 65


# ---------------------------------------------------------------------------
# ANSI helpers
# ---------------------------------------------------------------------------


def _use_color(stream: object | None = None) -> bool:
    """True if the output stream supports ANSI color."""
    s = stream or sys.stdout
    isatty = getattr(s, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except ValueError:
        # Closed stream.
        return False


class _Palette:
    """ANSI escape sequences, or empty strings when color is disabled."""

    __slots__ = ("bold", "cyan", "dim", "green", "red", "reset", "yellow")

    def __init__(self, *, enabled: bool) -> None:
        codes = {
            "reset": "\033[0m",
            "bold": "\033[1m",
            "dim": "\033[2m",
            "red": "\033[31m",
            "green": "\033[32m",
            "yellow": "\033[33m",
            "cyan": "\033[36m",
        }
        for name, code in codes.items():
            setattr(self, name, code if enabled else "")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def _format_result(result: CompilationResult, c: _Palette) -> list[str]:
    if result.succeeded:
        return [f"  {c.green}✓{c.reset}  {result.identity.full_name}"]
    lines = [f"  {c.red}{c.bold}✗{c.reset}  {c.bold}{result.identity.full_name}{c.reset}"]
    for error in result.errors:
        lines.append(f"     {c.dim}{error}{c.reset}")
    lines.append("")
    return lines


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def format_compile_report(
    results: Sequence[CompilationResult],
    *,
    root: str | None = None,
    color: bool | None = None,
) -> str:
    """Format warm-up results for terminal display.

    Args:
        results: One result per compiled template.
        root: Template directory, shown under the title.
        color: Force color on/off. ``None`` auto-detects from stdout.

    Returns:
        Multi-line string ready for ``sys.stdout.write()``.
    """
    c = _Palette(enabled=color if color is not None else _use_color())
    lines: list[str] = []

    title_text = "trill check"
    pad = _W - len(title_text) - 4
    lines.append(
        f"  {c.dim}──{c.reset} {c.bold}{title_text}{c.reset} "
        f"{c.dim}{chr(0x2500) * max(pad, 1)}{c.reset}"
    )
    lines.append("")

    languages = {r.unit.language.name for r in results if r.unit is not None}
    count = len(results)
    stats = f"{c.bold}{count}{c.reset} {c.dim}template{'s' if count != 1 else ''}{c.reset}"
    if languages:
        stats += (
            f" {c.dim}·{c.reset} {c.bold}{len(languages)}{c.reset} "
            f"{c.dim}language{'s' if len(languages) != 1 else ''}{c.reset}"
        )
    if root:
        stats += f" {c.dim}in{c.reset} {c.cyan}{root}{c.reset}"
    lines.append(f"  {stats}")
    lines.append("")

    ordered = sorted(results, key=lambda r: (r.succeeded, r.identity.full_name))
    for result in ordered:
        lines.extend(_format_result(result, c))

    failed = sum(1 for r in results if not r.succeeded)
    compiled = len(results) - failed
    if not results:
        lines.append(f"  {c.yellow}▲{c.reset}  {c.yellow}No templates found{c.reset}")
    elif failed:
        if lines[-1] != "":
            lines.append("")
        lines.append(
            f"  {c.red}{c.bold}✗{c.reset}  {c.red}{failed} failed{c.reset}"
            f" {c.dim}·{c.reset} {compiled} compiled"
        )
    else:
        lines.append("")
        lines.append(
            f"  {c.green}{c.bold}✓{c.reset}  "
            f"{c.green}{_plural(compiled, 'template')} compiled{c.reset}"
        )

    lines.append("")
    lines.append(f"  {c.dim}{chr(0x2500) * _W}{c.reset}")
    lines.append("")
    return "\n".join(lines)
