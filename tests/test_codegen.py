"""Tests for trill.syntax.codegen — generated source and line mapping."""

import ast
import io

from trill.identity import ViewIdentity
from trill.syntax.codegen import CodeBuilder, GeneratedCode, generate, new_unit_id
from trill.syntax.languages import HTML, TEXT
from trill.syntax.parser import parse


def _identity(name: str = "index", extension: str = "html") -> ViewIdentity:
    return ViewIdentity("", name, extension, contents=lambda: io.StringIO(""))


def _generate(source: str, **kwargs) -> GeneratedCode:
    parsed = parse(source)
    kwargs.setdefault("language", HTML)
    kwargs.setdefault("model_type", object)
    return generate(
        parsed.document,
        identity=_identity(),
        template_source=source,
        diagnostics=parsed.diagnostics,
        **kwargs,
    )


class TestCodeBuilder:
    def test_indentation(self) -> None:
        code = CodeBuilder()
        code.add_line("if x:", 1)
        code.indent()
        code.add_line("y()", 2)
        code.dedent()
        assert code.source == "if x:\n    y()\n"
        assert code.line_map == (1, 2)

    def test_embedded_newlines_continue_mapping(self) -> None:
        code = CodeBuilder()
        code.add_line("f(a,\nb)", 4)
        assert len(code) == 2
        assert code.line_map == (4, 5)

    def test_unmapped_lines(self) -> None:
        code = CodeBuilder()
        code.add_line("import x")
        assert code.line_map == (0,)


class TestUnitIds:
    def test_unique_and_identifier_safe(self) -> None:
        ids = {new_unit_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(i.isidentifier() and i.startswith("TrillView_") for i in ids)


class TestGenerate:
    def test_source_is_valid_python(self) -> None:
        unit = _generate(
            "{% model collections.OrderedDict %}"
            "{% layout 'base' %}"
            "{% section title %}T{% end %}"
            "{% for x in model %}{{ x }}{% else %}none{% end %}"
            "{% if model %}y{% elif context %}z{% else %}w{% end %}"
            "{% set n = 1 %}{% body %}{% yield extra optional %}"
        )
        ast.parse(unit.source)

    def test_class_named_after_unit(self) -> None:
        unit = _generate("hi", unit_id="TrillView_fixed")
        assert unit.class_name == "TrillView_fixed"
        assert "class TrillView_fixed(_TrillBase):" in unit.source

    def test_language_base_class(self) -> None:
        assert "import HtmlView as _TrillBase" in _generate("x").source
        assert "import TextView as _TrillBase" in _generate("x", language=TEXT).source

    def test_model_type_is_bound_not_imported(self) -> None:
        unit = _generate("x", unit_id="TrillView_b")
        assert unit.bindings == {"_model_TrillView_b": object}
        assert "model_type = _model_TrillView_b" in unit.source

    def test_declares_model_flag(self) -> None:
        assert "declares_model = False" in _generate("x").source
        assert "declares_model = True" in _generate("{% model collections.OrderedDict %}x").source

    def test_model_import(self) -> None:
        unit = _generate("x", model_import=("collections", "OrderedDict"))
        assert "from collections import OrderedDict" in unit.source
        assert "collections" in unit.imports

    def test_namespaces_and_template_imports(self) -> None:
        unit = _generate("{% import json as j %}", namespaces=("math",))
        assert "import math" in unit.source
        assert "import json as j" in unit.source
        assert unit.imports == ("math", "json")

    def test_empty_template_gets_pass(self) -> None:
        ast.parse(_generate("").source)

    def test_empty_section_gets_pass(self) -> None:
        ast.parse(_generate("{% section s %}{% end %}").source)

    def test_diagnostics_carried(self) -> None:
        unit = _generate("{% nope %}")
        assert [d.code for d in unit.diagnostics] == ["TRL001"]


class TestLineMap:
    def test_output_line_maps_to_template_line(self) -> None:
        unit = _generate("a\nb\n{{ model.x }}")
        generated = next(
            index
            for index, line in enumerate(unit.source.splitlines(), start=1)
            if "_write(model.x)" in line
        )
        assert unit.template_line(generated) == 3

    def test_header_lines_map_to_first_line(self) -> None:
        unit = _generate("hello")
        assert unit.template_line(1) == 1

    def test_lines_past_end_clamp(self) -> None:
        unit = _generate("a\n{{ b }}")
        assert unit.template_line(10_000) == 2

    def test_branches_map_to_their_own_lines(self) -> None:
        unit = _generate("{% if model.a %}\nA\n{% elif model.b %}\nB\n{% else %}\nC\n{% end %}")
        lines = unit.source.splitlines()
        elif_line = next(i for i, line in enumerate(lines, start=1) if line.strip().startswith("elif"))
        else_line = next(i for i, line in enumerate(lines, start=1) if line.strip() == "else:")
        assert unit.template_line(elif_line) == 3
        assert unit.template_line(else_line) == 5
