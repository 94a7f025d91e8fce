"""Tests for trill.syntax.parser — tokenizer, tree building, diagnostics."""

import pytest

from trill.syntax.nodes import Body, For, If, Layout, Output, Section, Set, Text, Yield
from trill.syntax.parser import parse, tokenize


def _codes(source: str) -> list[str]:
    return [d.code for d in parse(source).diagnostics]


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


class TestTokenize:
    def test_kinds(self) -> None:
        tokens = tokenize("a{{ x }}b{% if y %}{# note #}")
        assert [t.kind for t in tokens] == ["text", "output", "text", "tag", "comment"]
        assert tokens[1].value == "x"
        assert tokens[3].value == "if y"

    def test_positions_are_one_based(self) -> None:
        tokens = tokenize("ab\ncd{{ x }}")
        output = tokens[-1]
        assert (output.lineno, output.col_offset) == (2, 3)

    def test_multiline_tag_advances_lines(self) -> None:
        tokens = tokenize("{#\n\n#}{{ x }}")
        assert tokens[-1].lineno == 3


# ---------------------------------------------------------------------------
# Tree
# ---------------------------------------------------------------------------


class TestParseTree:
    def test_text_and_output(self) -> None:
        result = parse("Hello {{ model.name }}!")
        assert result.diagnostics == []
        body = result.document.body
        assert isinstance(body[0], Text)
        assert isinstance(body[1], Output)
        assert body[1].expr == "model.name"
        assert body[2].value == "!"

    def test_comments_are_dropped(self) -> None:
        result = parse("a{# hidden {{ x }} #}b")
        assert [n.value for n in result.document.body] == ["a", "b"]

    def test_if_elif_else(self) -> None:
        result = parse("{% if a %}A{% elif b %}B{% else %}C{% end %}")
        assert result.diagnostics == []
        node = result.document.body[0]
        assert isinstance(node, If)
        assert node.test == "a"
        assert node.elif_[0][0] == "b"
        assert node.else_[0].value == "C"

    def test_branch_line_numbers(self) -> None:
        node = parse("{% if a %}\n{% elif b %}\nB\n{% else %}C{% end %}").document.body[0]
        assert isinstance(node, If)
        assert node.lineno == 1
        assert node.elif_[0][1] == 2
        assert node.else_lineno == 4

    def test_for_else(self) -> None:
        result = parse("{% for k, v in items %}{{ k }}{% else %}none{% endfor %}")
        assert result.diagnostics == []
        node = result.document.body[0]
        assert isinstance(node, For)
        assert node.target == "k, v"
        assert node.iter == "items"
        assert node.else_[0].value == "none"

    def test_section(self) -> None:
        node = parse("{% section title %}Hi{% endsection %}").document.body[0]
        assert isinstance(node, Section)
        assert node.name == "title"

    def test_set(self) -> None:
        node = parse("{% set total = a + b %}").document.body[0]
        assert isinstance(node, Set)
        assert (node.target, node.value) == ("total", "a + b")

    def test_model_is_collected(self) -> None:
        document = parse("{% model myapp.models.User %}hi").document
        assert document.model is not None
        assert document.model.type_name == "myapp.models.User"
        assert [type(n) for n in document.body] == [Text]

    def test_layout_body_yield(self) -> None:
        body = parse("{% layout 'shared/base' %}{% body %}{% yield scripts optional %}{% yield title %}").document.body
        assert isinstance(body[0], Layout)
        assert body[0].expr == "'shared/base'"
        assert isinstance(body[1], Body)
        assert isinstance(body[2], Yield)
        assert body[2].required is False
        assert body[3].required is True

    def test_imports_are_collected(self) -> None:
        document = parse("{% import json %}{% import os.path as osp %}").document
        assert [(i.module, i.alias) for i in document.imports] == [("json", None), ("os.path", "osp")]


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class TestParseDiagnostics:
    @pytest.mark.parametrize(
        ("source", "code"),
        [
            ("{% frobnicate %}", "TRL001"),
            ("{% end %}", "TRL002"),
            ("{% else %}", "TRL002"),
            ("{% if a %}x{% endfor %}", "TRL003"),
            ("{% if a %}x", "TRL004"),
            ("{% for x %}{% end %}", "TRL005"),
            ("{% set = 1 %}", "TRL005"),
            ("{% section 1bad %}{% end %}", "TRL005"),
            ("{% yield a b %}", "TRL005"),
            ("{% import 3x %}", "TRL005"),
            ("{% model a %}{% model b %}", "TRL006"),
            ("{{ }}", "TRL007"),
            ("{{ model. }}", "TRL010"),
            ("{% if a + %}{% end %}", "TRL010"),
            ("text {{ unclosed", "TRL011"),
        ],
    )
    def test_error_codes(self, source: str, code: str) -> None:
        assert code in _codes(source)

    def test_every_error_is_reported(self) -> None:
        result = parse("{{ a. }}\n{% nope %}\n{{ }}")
        assert [d.code for d in result.diagnostics] == ["TRL010", "TRL001", "TRL007"]
        assert [d.line for d in result.diagnostics] == [1, 2, 3]

    def test_column_is_reported(self) -> None:
        diagnostic = parse("abc {{ 1 + }}").diagnostics[0]
        assert (diagnostic.line, diagnostic.column) == (1, 5)

    def test_unclosed_block_points_at_opener(self) -> None:
        diagnostic = parse("x\n\n{% for a in b %}")
        assert diagnostic.diagnostics[0].code == "TRL004"
        assert diagnostic.diagnostics[0].line == 3

    def test_duplicate_else(self) -> None:
        assert "TRL002" in _codes("{% if a %}{% else %}{% else %}{% end %}")

    def test_elif_after_else(self) -> None:
        assert "TRL002" in _codes("{% if a %}{% else %}{% elif b %}{% end %}")

    def test_for_loop_target_must_be_names(self) -> None:
        assert "TRL005" in _codes("{% for a.b in c %}{% end %}")

    def test_equality_is_not_assignment(self) -> None:
        assert "TRL005" in _codes("{% set a == b %}")

    def test_parse_never_raises(self) -> None:
        result = parse("{% if %}{% for %}{% section %}{{")
        assert result.diagnostics
