from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from effectscan.json_types import JSONObject


@dataclass(frozen=True)
class Literal:
    value: str


@dataclass(frozen=True)
class VariableRef:
    name: str


@dataclass(frozen=True)
class Concat:
    lhs: Expr
    rhs: Expr


Expr: TypeAlias = Literal | VariableRef | Concat


@dataclass(frozen=True)
class ArgBinding:
    parameter_name: str
    alias: str


@dataclass(frozen=True)
class EffectStatement:
    effect_name: str
    arguments: tuple[Expr, ...]
    result_binding: str | None = None


@dataclass(frozen=True)
class Declaration:
    args: tuple[ArgBinding, ...] = ()
    effects: tuple[EffectStatement, ...] = ()
    returns: Expr | None = None


def expr_payload(expr: Expr) -> JSONObject:
    if isinstance(expr, Literal):
        return {"kind": "literal", "value": expr.value}
    if isinstance(expr, VariableRef):
        return {"kind": "var", "name": expr.name}
    return {
        "kind": "concat",
        "lhs": expr_payload(expr.lhs),
        "rhs": expr_payload(expr.rhs),
    }


def declaration_payload(declaration: Declaration) -> JSONObject:
    return {
        "args": [
            {"parameter": arg.parameter_name, "alias": arg.alias}
            for arg in declaration.args
        ],
        "side_effects": [
            {
                "name": stmt.effect_name,
                "arguments": [expr_payload(arg) for arg in stmt.arguments],
                "binding": stmt.result_binding,
            }
            for stmt in declaration.effects
        ],
        "returns": (
            expr_payload(declaration.returns)
            if declaration.returns is not None
            else None
        ),
    }


def render_expr(expr: Expr) -> str:
    """Render an expression back to annotation syntax."""
    if isinstance(expr, Literal):
        quote = '"' if "'" in expr.value else "'"
        return f"{quote}{expr.value}{quote}"
    if isinstance(expr, VariableRef):
        return expr.name
    return f"{render_expr(expr.lhs)} + {render_expr(expr.rhs)}"


def render_declaration(declaration: Declaration) -> str:
    parts: list[str] = []
    if declaration.args:
        args = ", ".join(f"{arg.parameter_name} as {arg.alias}" for arg in declaration.args)
        parts.append(f"args=({args})")
    stmts: list[str] = []
    for stmt in declaration.effects:
        text = f"{stmt.effect_name}({', '.join(render_expr(a) for a in stmt.arguments)})"
        if stmt.result_binding is not None:
            text += f" as {stmt.result_binding}"
        stmts.append(text)
    parts.append(f"side_effects=({', '.join(stmts)})")
    if declaration.returns is not None:
        parts.append(f"returns=({render_expr(declaration.returns)})")
    return ", ".join(parts)
