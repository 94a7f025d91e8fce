"""Template parser.

Splits template source into literal text, ``{{ output }}``, ``{% tag %}``
and ``{# comment #}`` tokens, then builds a ``Document`` tree.

The parser never raises on bad input. Each problem becomes an error
``Diagnostic`` with the template line and column, and parsing carries on,
so a single compile reports every error in the template at once.

Diagnostic codes:

    TRL001  unknown tag
    TRL002  end/elif/else without an open block
    TRL003  end tag does not match the open block
    TRL004  block never closed
    TRL005  malformed tag arguments
    TRL006  more than one model declaration
    TRL007  empty output expression
    TRL010  invalid Python expression
    TRL011  unclosed delimiter
"""

from __future__ import annotations

import ast
import re
from dataclasses import dataclass, field

from trill.diagnostics import Diagnostic
from trill.syntax.nodes import (
    Body,
    Document,
    For,
    If,
    Import,
    Layout,
    Model,
    Node,
    Output,
    Section,
    Set,
    Text,
    Yield,
)

_TOKEN_RE = re.compile(r"(?s)({{.*?}}|{%.*?%}|{#.*?#})")

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DOTTED_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
_FOR_RE = re.compile(r"(?s)^(.+?)\s+in\s+(.+)$")
_SET_RE = re.compile(r"(?s)^([A-Za-z_][A-Za-z0-9_]*)\s*=(?!=)\s*(.+)$")

# Tags that open a block closed by {% end %} / {% end<tag> %}
_BLOCK_TAGS = frozenset({"if", "for", "section"})


@dataclass(frozen=True, slots=True)
class Token:
    kind: str  # "text" | "output" | "tag" | "comment"
    value: str
    lineno: int
    col_offset: int


@dataclass(slots=True)
class ParseResult:
    document: Document
    diagnostics: list[Diagnostic] = field(default_factory=list)


def tokenize(source: str) -> list[Token]:
    """Split source into tokens with 1-based line and column positions."""
    tokens: list[Token] = []
    lineno = 1
    col = 1
    for piece in _TOKEN_RE.split(source):
        if not piece:
            continue
        if piece.startswith("{{"):
            tokens.append(Token("output", piece[2:-2].strip(), lineno, col))
        elif piece.startswith("{%"):
            tokens.append(Token("tag", piece[2:-2].strip(), lineno, col))
        elif piece.startswith("{#"):
            tokens.append(Token("comment", piece, lineno, col))
        else:
            tokens.append(Token("text", piece, lineno, col))
        newlines = piece.count("\n")
        if newlines:
            lineno += newlines
            col = len(piece) - piece.rfind("\n")
        else:
            col += len(piece)
    return tokens


class Parser:
    """Build a ``Document`` from template source, collecting diagnostics.

    Example::

        result = Parser("{% model myapp.User %}Hi {{ model.name }}").parse()
        result.document.model.type_name  # 'myapp.User'
        result.diagnostics               # []
    """

    def __init__(self, source: str) -> None:
        self._tokens = tokenize(source)
        self._pos = 0
        self._diagnostics: list[Diagnostic] = []
        self._model: Model | None = None
        self._imports: list[Import] = []

    def parse(self) -> ParseResult:
        body, _ = self._parse_body(opener=None)
        document = Document(body=tuple(body), model=self._model, imports=tuple(self._imports))
        return ParseResult(document=document, diagnostics=self._diagnostics)

    # -- diagnostics -------------------------------------------------------

    def _error(self, code: str, message: str, token: Token) -> None:
        self._diagnostics.append(
            Diagnostic(line=token.lineno, column=token.col_offset, code=code, message=message)
        )

    def _check_expression(self, expr: str, token: Token) -> bool:
        try:
            ast.parse(f"({expr})", mode="eval")
        except SyntaxError as exc:
            self._error("TRL010", f"Invalid expression {expr!r}: {exc.msg}", token)
            return False
        return True

    # -- block structure ---------------------------------------------------

    def _parse_body(self, opener: tuple[str, Token] | None) -> tuple[list[Node], Token | None]:
        """Parse nodes until a terminator tag for ``opener`` or end of input.

        Returns the nodes and the terminating tag token (``end``, ``elif``,
        ``else``), or ``None`` at end of input.
        """
        nodes: list[Node] = []
        while self._pos < len(self._tokens):
            token = self._tokens[self._pos]
            self._pos += 1

            if token.kind == "text":
                if "{{" in token.value or "{%" in token.value or "{#" in token.value:
                    self._error("TRL011", "Unclosed delimiter in template text", token)
                nodes.append(Text(token.lineno, token.col_offset, token.value))
            elif token.kind == "comment":
                continue
            elif token.kind == "output":
                if not token.value:
                    self._error("TRL007", "Empty output expression", token)
                elif self._check_expression(token.value, token):
                    nodes.append(Output(token.lineno, token.col_offset, token.value))
            else:
                word, _, args = token.value.partition(" ")
                args = args.strip()
                if word == "end" or word.startswith("end") or word in ("elif", "else"):
                    if opener is None:
                        self._error("TRL002", f"Unexpected {{% {word} %}} outside a block", token)
                        continue
                    return nodes, token
                node = self._parse_tag(word, args, token)
                if node is not None:
                    nodes.append(node)

        if opener is not None:
            tag, open_token = opener
            self._error("TRL004", f"Unclosed {{% {tag} %}} opened on line {open_token.lineno}", open_token)
        return nodes, None

    def _close(self, tag: str, open_token: Token, terminator: Token | None) -> None:
        """Validate the end tag that closed ``tag``."""
        if terminator is None:
            return
        word = terminator.value.split(" ", 1)[0]
        if word in ("elif", "else"):
            self._error("TRL002", f"Unexpected {{% {word} %}} in {{% {tag} %}} block", terminator)
        elif word != "end" and word != f"end{tag}":
            self._error(
                "TRL003",
                f"Mismatched end tag {{% {word} %}} for {{% {tag} %}} opened on line {open_token.lineno}",
                terminator,
            )

    def _parse_tag(self, word: str, args: str, token: Token) -> Node | None:
        match word:
            case "if":
                return self._parse_if(args, token)
            case "for":
                return self._parse_for(args, token)
            case "section":
                return self._parse_section(args, token)
            case "set":
                return self._parse_set(args, token)
            case "model":
                return self._parse_model(args, token)
            case "layout":
                if not args:
                    self._error("TRL005", "{% layout %} requires a layout name", token)
                    return None
                if self._check_expression(args, token):
                    return Layout(token.lineno, token.col_offset, args)
                return None
            case "body":
                if args:
                    self._error("TRL005", "{% body %} takes no arguments", token)
                return Body(token.lineno, token.col_offset)
            case "yield":
                return self._parse_yield(args, token)
            case "import":
                return self._parse_import(args, token)
            case _:
                self._error("TRL001", f"Unknown tag {word!r}", token)
                return None

    def _parse_if(self, args: str, token: Token) -> If | None:
        valid = bool(args) and self._check_expression(args, token)
        if not args:
            self._error("TRL005", "{% if %} requires a condition", token)

        body, terminator = self._parse_body(opener=("if", token))
        elifs: list[tuple[str, int, tuple[Node, ...]]] = []
        else_: list[Node] = []
        else_lineno = 0
        seen_else = False
        while terminator is not None:
            word, _, rest = terminator.value.partition(" ")
            rest = rest.strip()
            if word == "elif":
                if not rest:
                    self._error("TRL005", "{% elif %} requires a condition", terminator)
                    valid = False
                elif not self._check_expression(rest, terminator):
                    valid = False
                elif_token = terminator
                elif_body, terminator = self._parse_body(opener=("if", token))
                elifs.append((rest, elif_token.lineno, tuple(elif_body)))
                if seen_else:
                    self._error("TRL002", "{% elif %} after {% else %}", elif_token)
            elif word == "else":
                else_token = terminator
                else_body, terminator = self._parse_body(opener=("if", token))
                if seen_else:
                    self._error("TRL002", "Duplicate {% else %} in {% if %} block", else_token)
                seen_else = True
                else_ = else_body
                else_lineno = else_token.lineno
            else:
                self._close("if", token, terminator)
                break

        if not valid:
            return None
        return If(
            token.lineno,
            token.col_offset,
            args,
            tuple(body),
            tuple(elifs),
            tuple(else_),
            else_lineno,
        )

    def _parse_for(self, args: str, token: Token) -> For | None:
        match = _FOR_RE.match(args)
        valid = True
        if match is None:
            self._error("TRL005", "Expected {% for target in iterable %}", token)
            valid = False
            target = iterable = ""
        else:
            target, iterable = match.group(1).strip(), match.group(2).strip()
            valid = self._check_target(target, token) and self._check_expression(iterable, token)

        body, terminator = self._parse_body(opener=("for", token))
        else_: list[Node] = []
        if terminator is not None and terminator.value.split(" ", 1)[0] == "else":
            else_, terminator = self._parse_body(opener=("for", token))
        self._close("for", token, terminator)

        if not valid:
            return None
        return For(token.lineno, token.col_offset, target, iterable, tuple(body), tuple(else_))

    def _check_target(self, target: str, token: Token) -> bool:
        try:
            parsed = ast.parse(f"({target})", mode="eval").body
        except SyntaxError as exc:
            self._error("TRL010", f"Invalid loop target {target!r}: {exc.msg}", token)
            return False
        names = parsed.elts if isinstance(parsed, ast.Tuple) else [parsed]
        if not all(isinstance(n, ast.Name) for n in names):
            self._error("TRL005", f"Loop target must be a name or tuple of names: {target!r}", token)
            return False
        return True

    def _parse_section(self, args: str, token: Token) -> Section | None:
        valid = bool(_NAME_RE.match(args))
        if not valid:
            self._error("TRL005", f"Invalid section name {args!r}", token)
        body, terminator = self._parse_body(opener=("section", token))
        self._close("section", token, terminator)
        if not valid:
            return None
        return Section(token.lineno, token.col_offset, args, tuple(body))

    def _parse_set(self, args: str, token: Token) -> Set | None:
        match = _SET_RE.match(args)
        if match is None:
            self._error("TRL005", "Expected {% set name = expression %}", token)
            return None
        target, value = match.group(1), match.group(2).strip()
        if not self._check_expression(value, token):
            return None
        return Set(token.lineno, token.col_offset, target, value)

    def _parse_model(self, args: str, token: Token) -> None:
        if not _DOTTED_RE.match(args):
            self._error("TRL005", f"Invalid model type name {args!r}", token)
        elif self._model is not None:
            self._error(
                "TRL006",
                f"Model already declared on line {self._model.lineno}",
                token,
            )
        else:
            self._model = Model(token.lineno, token.col_offset, args)
        return None

    def _parse_yield(self, args: str, token: Token) -> Yield | None:
        parts = args.split()
        if not parts or not _NAME_RE.match(parts[0]) or len(parts) > 2:
            self._error("TRL005", "Expected {% yield name [optional] %}", token)
            return None
        if len(parts) == 2 and parts[1] != "optional":
            self._error("TRL005", f"Unknown yield modifier {parts[1]!r}", token)
            return None
        return Yield(token.lineno, token.col_offset, parts[0], required=len(parts) == 1)

    def _parse_import(self, args: str, token: Token) -> None:
        module, _, alias = args.partition(" as ")
        module, alias = module.strip(), alias.strip()
        if not _DOTTED_RE.match(module) or (alias and not _NAME_RE.match(alias)):
            self._error("TRL005", "Expected {% import module [as alias] %}", token)
        else:
            self._imports.append(Import(token.lineno, token.col_offset, module, alias or None))
        return None


def parse(source: str) -> ParseResult:
    """Parse template source. Never raises; problems are in ``diagnostics``."""
    return Parser(source).parse()
