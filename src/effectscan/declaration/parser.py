"""Parser for the effect declaration grammar.

The grammar lives in ``declaration.lark`` next to this module and is compiled
once at import time into an LALR parser.  Parsing is a pure function from text
to :class:`~effectscan.declaration.model.Declaration`; any input outside the
grammar raises :class:`~effectscan.exceptions.DeclarationParseError`.
"""

from __future__ import annotations

from pathlib import Path

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from effectscan.declaration.model import (
    ArgBinding,
    Concat,
    Declaration,
    EffectStatement,
    Expr,
    Literal,
    VariableRef,
)
from effectscan.exceptions import DeclarationParseError
from effectscan.invariants import never

_GRAMMAR_PATH = Path(__file__).with_name("declaration.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text(encoding="utf-8")

_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    start=["start", "standalone_expr"],
    maybe_placeholders=False,
)


class _DeclarationBuilder(Transformer):
    def literal(self, children: list[Token]) -> Literal:
        (token,) = children
        return Literal(str(token)[1:-1])

    def var(self, children: list[Token]) -> VariableRef:
        (token,) = children
        return VariableRef(str(token))

    def concat(self, children: list[Expr]) -> Concat:
        lhs, rhs = children
        return Concat(lhs, rhs)

    def arg(self, children: list[Token]) -> ArgBinding:
        name, alias = children
        return ArgBinding(parameter_name=str(name), alias=str(alias))

    def args_clause(self, children: list[ArgBinding]) -> tuple[str, tuple[ArgBinding, ...]]:
        return ("args", tuple(children))

    def binding(self, children: list[Token]) -> tuple[str, str]:
        (token,) = children
        return ("as", str(token))

    def effect_stmt(self, children: list[object]) -> EffectStatement:
        name = str(children[0])
        arguments: list[Expr] = []
        result_binding: str | None = None
        for child in children[1:]:
            if isinstance(child, tuple):
                result_binding = child[1]
            else:
                arguments.append(child)  # type: ignore[arg-type]
        return EffectStatement(
            effect_name=name,
            arguments=tuple(arguments),
            result_binding=result_binding,
        )

    def effects_clause(
        self, children: list[EffectStatement]
    ) -> tuple[str, tuple[EffectStatement, ...]]:
        return ("side_effects", tuple(children))

    def returns_clause(self, children: list[Expr]) -> tuple[str, Expr]:
        (expr,) = children
        return ("returns", expr)

    def declaration(self, children: list[tuple[str, object]]) -> Declaration:
        clauses = dict(children)
        return Declaration(
            args=clauses.get("args", ()),  # type: ignore[arg-type]
            effects=clauses.get("side_effects", ()),  # type: ignore[arg-type]
            returns=clauses.get("returns"),  # type: ignore[arg-type]
        )

    def start(self, children: list[Declaration]) -> Declaration:
        (declaration,) = children
        return declaration

    def standalone_expr(self, children: list[Expr]) -> Expr:
        (expr,) = children
        return expr


_BUILDER = _DeclarationBuilder()


def _error_position(exc: UnexpectedInput, text: str) -> int:
    position = getattr(exc, "pos_in_stream", None)
    if position is None or position < 0:
        return len(text)
    return int(position)


def _describe(exc: UnexpectedInput, text: str) -> str:
    if isinstance(exc, UnexpectedEOF):
        return "unexpected end of declaration (unterminated group?)"
    if isinstance(exc, UnexpectedCharacters):
        return f"unexpected character {exc.char!r}"
    if isinstance(exc, UnexpectedToken):
        if exc.token.type == "$END":
            return "unexpected end of declaration (unterminated group?)"
        expected = ", ".join(sorted(exc.expected))
        return f"unexpected {exc.token.value!r}, expected one of: {expected}"
    return "malformed declaration"


def _parse(text: str, start: str) -> object:
    try:
        tree = _PARSER.parse(text, start=start)
    except UnexpectedInput as exc:
        raise DeclarationParseError(
            _describe(exc, text),
            text=text,
            position=_error_position(exc, text),
        ) from exc
    return _BUILDER.transform(tree)


def parse_declaration(text: str) -> Declaration:
    """Parse a full ``declare`` payload."""
    declaration = _parse(text, "start")
    if not isinstance(declaration, Declaration):
        never("start rule did not build a declaration", built=type(declaration).__name__)
    return declaration


def parse_expr(text: str) -> Expr:
    """Parse a standalone expression (``A + '/' + B``)."""
    expr = _parse(text, "standalone_expr")
    if isinstance(expr, Literal | VariableRef | Concat):
        return expr
    raise DeclarationParseError("not an expression", text=text)
