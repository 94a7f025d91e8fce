"""Tests for trill.terminal — warm-up report formatting."""

import io

from trill.compiler import CompilationResult
from trill.identity import ViewIdentity
from trill.terminal import _use_color, format_compile_report


def _result(full_name: str, errors: tuple[str, ...] = ()) -> CompilationResult:
    location, _, file_name = full_name.rpartition("/")
    name, _, extension = file_name.rpartition(".")
    identity = ViewIdentity(location, name, extension, contents=lambda: io.StringIO(""))
    return CompilationResult(identity=identity, factory=lambda: None, errors=errors)


class TestFormatCompileReport:
    def test_all_clear(self) -> None:
        report = format_compile_report([_result("a.html"), _result("b.html")], color=False)
        assert "trill check" in report
        assert "2 templates" in report
        assert "✓  a.html" in report
        assert "2 templates compiled" in report

    def test_failures_listed_first_with_errors(self) -> None:
        report = format_compile_report(
            [_result("a.html"), _result("z.html", ("[TRL001] Line: 1 Column: 1 - Unknown tag 'x'",))],
            color=False,
        )
        assert report.index("z.html") < report.index("a.html")
        assert "[TRL001] Line: 1 Column: 1 - Unknown tag 'x'" in report
        assert "1 failed · 1 compiled" in report

    def test_empty(self) -> None:
        assert "No templates found" in format_compile_report([], color=False)

    def test_root_shown(self) -> None:
        assert "templates/" in format_compile_report([_result("a.html")], root="templates/", color=False)

    def test_color(self) -> None:
        assert "\033[" in format_compile_report([_result("a.html")], color=True)
        assert "\033[" not in format_compile_report([_result("a.html")], color=False)

    def test_singular(self) -> None:
        assert "1 template compiled" in format_compile_report([_result("a.html")], color=False)


class TestUseColor:
    def test_non_tty(self) -> None:
        assert _use_color(io.StringIO()) is False

    def test_tty(self) -> None:
        class FakeTTY(io.StringIO):
            def isatty(self) -> bool:
                return True

        assert _use_color(FakeTTY()) is True
