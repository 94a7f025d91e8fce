"""Template syntax — parser, syntax tree, languages, and code generation.

The compiler consumes this package through two calls::

    result = parse(source)                 # Document + diagnostics
    unit = generate(result.document, ...)  # GeneratedCode
"""

from trill.syntax.codegen import CodeBuilder, GeneratedCode, generate, new_unit_id
from trill.syntax.languages import HTML, LANGUAGES, TEXT, TemplateLanguage, language_for_extension
from trill.syntax.parser import ParseResult, parse

__all__ = [
    "HTML",
    "LANGUAGES",
    "TEXT",
    "CodeBuilder",
    "GeneratedCode",
    "ParseResult",
    "TemplateLanguage",
    "generate",
    "language_for_extension",
    "new_unit_id",
    "parse",
]
