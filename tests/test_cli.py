"""Tests for trill.cli — ``trill check`` and argument parsing."""

from pathlib import Path

import pytest

from trill.cli import main


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    root = tmp_path / "templates"
    (root / "shared").mkdir(parents=True)
    (root / "index.html").write_text("{% layout 'shared/layout' %}<p>{{ model }}</p>", encoding="utf-8")
    (root / "shared" / "layout.html").write_text("<main>{% body %}</main>", encoding="utf-8")
    (root / "welcome.txt").write_text("Hi {{ model }}", encoding="utf-8")
    return root


class TestCLIHelp:
    def test_help_exits_zero(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0

    def test_check_help_exits_zero(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "--help"])
        assert exc_info.value.code == 0


class TestCLIMissingArgs:
    def test_check_missing_templates(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check"])
        assert exc_info.value.code == 2


class TestCLINoCommand:
    def test_no_command_exits_zero(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "trill" in capsys.readouterr().out


class TestTrillCheck:
    def test_all_templates_compile(self, template_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(["check", str(template_dir), "--no-color"])

        out = capsys.readouterr().out
        assert "trill check" in out
        assert "3 templates" in out
        assert "index.html" in out
        assert "shared/layout.html" in out
        assert "welcome.txt" in out
        assert "3 templates compiled" in out
        assert "\033[" not in out

    def test_failure_exits_one(self, template_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (template_dir / "broken.html").write_text("ok\n{{ model. }}", encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            main(["check", str(template_dir), "--no-color"])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "broken.html" in out
        assert "[TRL010] Line: 2" in out
        assert "1 failed" in out

    def test_missing_directory(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", str(tmp_path / "nope")])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_unresolved_model(self, template_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        (template_dir / "typed.html").write_text("{% model Ghost %}", encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            main(["check", str(template_dir)])

        assert exc_info.value.code == 1
        assert "Ghost" in capsys.readouterr().err

    def test_module_and_path_options(
        self, template_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        package = tmp_path / "lib"
        package.mkdir()
        (package / "trill_cli_models.py").write_text("class Invoice:\n    number = 7\n", encoding="utf-8")
        (template_dir / "invoice.html").write_text("{% model Invoice %}{{ model.number }}", encoding="utf-8")
        monkeypatch.setattr("sys.path", list(__import__("sys").path))

        main(["check", str(template_dir), "--path", str(package), "--module", "trill_cli_models", "--no-color"])

        assert "4 templates compiled" in capsys.readouterr().out

    def test_missing_dependency_fails_templates(
        self, template_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", str(template_dir), "--dependency", "no_such_module_xyz", "--no-color"])
        assert exc_info.value.code == 1
        assert "[TRL201]" in capsys.readouterr().out
