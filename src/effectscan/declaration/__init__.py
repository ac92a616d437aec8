"""Effect declaration grammar and model."""

from effectscan.declaration.model import (
    ArgBinding,
    Concat,
    Declaration,
    EffectStatement,
    Expr,
    Literal,
    VariableRef,
    declaration_payload,
    render_declaration,
)
from effectscan.declaration.parser import parse_declaration, parse_expr

__all__ = [
    "ArgBinding",
    "Concat",
    "Declaration",
    "EffectStatement",
    "Expr",
    "Literal",
    "VariableRef",
    "declaration_payload",
    "parse_declaration",
    "parse_expr",
    "render_declaration",
]
