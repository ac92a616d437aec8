"""Symbolic effect inference over Python function bodies.

The engine walks a function body in source order, binding every assignment to
an abstract :class:`~effectscan.analysis.lattice.VariableState` and following
calls into either the callee's declaration (declared path) or the callee's own
body (inferred path).  Every effect statement evaluated along the way is
appended, in evaluation order, to one shared accumulator.

There is no control-flow reasoning: compound statements are skipped and the
names they bind become unknown.  Fatal conditions raise subclasses of
:class:`~effectscan.exceptions.InferenceError`; everything else degrades to a
hole plus a :class:`Diagnostic`.
"""

from __future__ import annotations

import ast
import builtins
import logging
from dataclasses import dataclass, field
from typing import Sequence

from effectscan.analysis.declaration_index import DeclarationIndex
from effectscan.analysis.function_index import FunctionIndex
from effectscan.analysis.lattice import (
    VariableState,
    concat,
    concat_all,
    hole,
    literal,
    render,
    shape,
)
from effectscan.analysis.scope import BindingScope
from effectscan.config import DEFAULT_MAX_DEPTH, DEFAULT_MAX_STEPS
from effectscan.deadline_clock import DeadlineClock, DeadlineClockExhausted, GasMeter
from effectscan.declaration.model import Concat, Declaration, Expr, Literal, VariableRef
from effectscan.exceptions import (
    AnalysisBudgetExceeded,
    ArityError,
    DeclarationParseError,
    DeclarationUnavailable,
    RecursionCycleError,
    UnresolvedVariable,
    UnsupportedBindingPattern,
)
from effectscan.ingest.adapter_contract import FunctionUnit
from effectscan.invariants import never

logger = logging.getLogger(__name__)

_BUILTIN_NAMES = frozenset(dir(builtins))

# Declared statement that binds a computed value instead of recording an effect.
EVAL_STATEMENT = "eval"

_COMPOUND_STATEMENTS = (
    ast.If,
    ast.For,
    ast.AsyncFor,
    ast.While,
    ast.With,
    ast.AsyncWith,
    ast.Try,
    ast.TryStar,
    ast.Match,
)

# Shapes that open their own scope; descending into them would see unbound names.
_OPAQUE_EXPRESSIONS = (
    ast.Lambda,
    ast.ListComp,
    ast.SetComp,
    ast.DictComp,
    ast.GeneratorExp,
)


@dataclass(frozen=True)
class ResolvedEffect:
    effect_name: str
    arguments: tuple[VariableState, ...]
    declared_by: str = ""

    def rendered_arguments(self) -> tuple[str, ...]:
        return tuple(render(argument) for argument in self.arguments)

    def __str__(self) -> str:
        return f"{self.effect_name}({', '.join(self.rendered_arguments())})"


@dataclass(frozen=True)
class Diagnostic:
    kind: str
    function: str
    message: str
    lineno: int | None = None

    def __str__(self) -> str:
        where = self.function if self.lineno is None else f"{self.function}:{self.lineno}"
        return f"{where}: {self.kind}: {self.message}"


@dataclass
class _Frame:
    unit: FunctionUnit
    scope: BindingScope
    index: int = 0
    lineno: int | None = None


@dataclass
class InferenceContext:
    """State shared by every recursive inference call of one analysis run.

    The indexes are read-only; ``effects`` and ``diagnostics`` are the
    single-writer accumulators of the run. A memo hit replays both the effects
    and the diagnostics recorded when the entry was first computed.
    """

    declarations: DeclarationIndex
    functions: FunctionIndex
    effects: list[ResolvedEffect] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    max_depth: int = DEFAULT_MAX_DEPTH
    clock: DeadlineClock | None = None
    _stack: list[tuple[str, tuple[VariableState, ...]]] = field(default_factory=list)
    _memo: dict[
        tuple[str, tuple[VariableState, ...]],
        tuple[VariableState, tuple[ResolvedEffect, ...], tuple[Diagnostic, ...]],
    ] = field(default_factory=dict)
    _module_scopes: dict[str, dict[str, VariableState]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.clock is None:
            self.clock = GasMeter(limit=DEFAULT_MAX_STEPS)

    # ------------------------------------------------------------------
    # functions

    def infer_function(
        self,
        unit: FunctionUnit,
        arg_states: Sequence[VariableState],
        *,
        lineno: int | None = None,
    ) -> VariableState:
        key = (unit.key, shape(arg_states))
        cached = self._memo.get(key)
        if cached is not None:
            result, effects, diagnostics = cached
            logger.debug("memo hit for %s", unit.key)
            self.effects.extend(effects)
            self.diagnostics.extend(diagnostics)
            return result
        active = [entry for entry, _ in self._stack]
        if key in self._stack:
            start = self._stack.index(key)
            raise RecursionCycleError(
                tuple(active[start:]) + (unit.key,),
                function=active[-1] if active else unit.key,
                lineno=lineno,
            )
        if len(self._stack) >= self.max_depth:
            raise AnalysisBudgetExceeded(
                f"call depth limit of {self.max_depth} exceeded calling {unit.key}",
                function=active[-1] if active else unit.key,
                lineno=lineno,
            )
        self._stack.append(key)
        start_index = len(self.effects)
        diagnostics_index = len(self.diagnostics)
        try:
            result = self._walk_body(unit, arg_states)
        finally:
            self._stack.pop()
        self._memo[key] = (
            result,
            tuple(self.effects[start_index:]),
            tuple(self.diagnostics[diagnostics_index:]),
        )
        return result

    def _walk_body(self, unit: FunctionUnit, arg_states: Sequence[VariableState]) -> VariableState:
        if len(arg_states) < len(unit.params):
            raise ArityError(
                f"{unit.key} takes {len(unit.params)} argument(s) but {len(arg_states)} were supplied",
                function=unit.key,
                lineno=unit.lineno,
            )
        scope = BindingScope(fallback=self.module_scope(unit.module))
        for name, state in zip(unit.params, arg_states):
            scope.bind(0, name, state)
        frame = _Frame(unit=unit, scope=scope, lineno=unit.lineno)
        for stmt in unit.body:
            frame.index += 1
            frame.lineno = stmt.lineno
            self._tick(frame)
            if isinstance(stmt, ast.Return):
                if stmt.value is None:
                    return hole()
                return self.evaluate(stmt.value, frame)
            self._execute(stmt, frame)
        return hole()

    # ------------------------------------------------------------------
    # statements

    def _execute(self, stmt: ast.stmt, frame: _Frame) -> None:
        if isinstance(stmt, ast.Assign):
            self._bind_targets(stmt.targets, stmt.value, frame)
        elif isinstance(stmt, ast.AnnAssign):
            if stmt.value is not None:
                self._bind_targets([stmt.target], stmt.value, frame)
        elif isinstance(stmt, ast.AugAssign):
            self._augmented_assign(stmt, frame)
        elif isinstance(stmt, ast.Expr):
            # docstrings and `...` bodies
            if not isinstance(stmt.value, ast.Constant):
                self.evaluate(stmt.value, frame)
        elif isinstance(stmt, _COMPOUND_STATEMENTS):
            self._diagnose(
                frame,
                "unsupported-statement",
                f"{type(stmt).__name__.lower()} statement skipped; names it binds are unknown",
            )
            self._bind_unknown(stmt, frame)
        else:
            self._bind_unknown(stmt, frame)

    def _bind_targets(self, targets: list[ast.expr], value: ast.expr, frame: _Frame) -> None:
        for target in targets:
            self._check_target(target, frame)
        elements: list[VariableState] | None = None
        whole: VariableState | None = None
        if isinstance(value, (ast.Tuple, ast.List)) and not any(
            isinstance(element, ast.Starred) for element in value.elts
        ):
            elements = [self.evaluate(element, frame) for element in value.elts]
        else:
            whole = self.evaluate(value, frame)
        for target in targets:
            if isinstance(target, ast.Name):
                frame.scope.bind(frame.index, target.id, whole if whole is not None else hole())
                continue
            names = [element.id for element in target.elts]  # type: ignore[attr-defined]
            if elements is not None and len(elements) == len(names):
                for name, state in zip(names, elements):
                    frame.scope.bind(frame.index, name, state)
            else:
                for name in names:
                    frame.scope.bind(frame.index, name, hole())

    def _check_target(self, target: ast.expr, frame: _Frame) -> None:
        if isinstance(target, ast.Name):
            return
        if isinstance(target, (ast.Tuple, ast.List)) and all(
            isinstance(element, ast.Name) for element in target.elts
        ):
            return
        raise UnsupportedBindingPattern(
            f"unsupported binding pattern {ast.unparse(target)!r}",
            function=frame.unit.key,
            lineno=getattr(target, "lineno", frame.lineno),
        )

    def _augmented_assign(self, stmt: ast.AugAssign, frame: _Frame) -> None:
        if not isinstance(stmt.target, ast.Name):
            self.evaluate(stmt.value, frame)
            return
        rhs = self.evaluate(stmt.value, frame)
        if isinstance(stmt.op, ast.Add):
            lhs = self._lookup(stmt.target.id, frame, stmt.target)
            frame.scope.bind(frame.index, stmt.target.id, concat(lhs, rhs))
        else:
            frame.scope.bind(frame.index, stmt.target.id, hole())

    def _bind_unknown(self, stmt: ast.stmt, frame: _Frame) -> None:
        for name in _stored_names(stmt):
            frame.scope.bind(frame.index, name, hole())

    # ------------------------------------------------------------------
    # expressions

    def evaluate(self, node: ast.expr, frame: _Frame) -> VariableState:
        self._tick(frame)
        if isinstance(node, ast.Constant):
            if isinstance(node.value, str):
                return literal(node.value)
            self._diagnose(
                frame,
                "unsupported-expression",
                f"non-string constant {node.value!r}",
                node,
            )
            return hole()
        if isinstance(node, ast.Name):
            return self._lookup(node.id, frame, node)
        if isinstance(node, ast.Await):
            return self.evaluate(node.value, frame)
        if isinstance(node, ast.NamedExpr):
            state = self.evaluate(node.value, frame)
            frame.scope.bind(frame.index, node.target.id, state)
            return state
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.Add):
            return concat(self.evaluate(node.left, frame), self.evaluate(node.right, frame))
        if isinstance(node, ast.JoinedStr):
            return concat_all(self._formatted_part(part, frame) for part in node.values)
        if isinstance(node, ast.Call):
            return self._evaluate_call(node, frame)
        self._diagnose(
            frame,
            "unsupported-expression",
            f"{type(node).__name__} expression treated as unknown",
            node,
        )
        if not isinstance(node, _OPAQUE_EXPRESSIONS):
            for child in ast.iter_child_nodes(node):
                if isinstance(child, ast.expr) and _contains_call(child):
                    self.evaluate(child, frame)
        return hole()

    def _formatted_part(self, part: ast.expr, frame: _Frame) -> VariableState:
        if isinstance(part, ast.FormattedValue):
            state = self.evaluate(part.value, frame)
            if part.conversion != -1 or part.format_spec is not None:
                return hole()
            return state
        return self.evaluate(part, frame)

    def _lookup(self, name: str, frame: _Frame, node: ast.AST) -> VariableState:
        state = frame.scope.lookup(frame.index, name)
        if state is not None:
            return state
        if name in _BUILTIN_NAMES:
            return hole()
        raise UnresolvedVariable(
            f"name {name!r} is not bound",
            function=frame.unit.key,
            lineno=getattr(node, "lineno", frame.lineno),
        )

    # ------------------------------------------------------------------
    # calls

    def _evaluate_call(self, node: ast.Call, frame: _Frame) -> VariableState:
        callee = _callee_name(node.func)
        if callee is None and isinstance(node.func, ast.Attribute):
            self.evaluate(node.func.value, frame)
        positional: list[VariableState] = []
        keywords: dict[str, VariableState] = {}
        starred = False
        for arg in node.args:
            if isinstance(arg, ast.Starred):
                self.evaluate(arg.value, frame)
                starred = True
                continue
            positional.append(self.evaluate(arg, frame))
        for keyword in node.keywords:
            state = self.evaluate(keyword.value, frame)
            if keyword.arg is None:
                starred = True
                continue
            keywords[keyword.arg] = state
        if callee is None:
            self._diagnose(frame, "unresolved-callee", "dynamic call target", node)
            return hole()
        resolution = self.functions.resolve(callee, frame.unit)
        if resolution.ambiguous:
            self._diagnose(
                frame,
                "ambiguous-callee",
                f"{callee} matches {', '.join(resolution.ambiguous)}",
                node,
            )
            return hole()
        unit = resolution.unit
        if unit is None:
            self._diagnose(frame, "unresolved-callee", f"{callee} is not defined in the analyzed sources", node)
            return hole()
        if resolution.receiver_bound:
            positional.insert(0, hole())
        if starred:
            self._diagnose(
                frame,
                "unsupported-expression",
                f"star-arguments in call to {callee}; unmatched parameters are unknown",
                node,
            )
        lineno = getattr(node, "lineno", frame.lineno)
        aligned = self._align_arguments(unit, positional, keywords, starred, frame, lineno)
        if unit.key in self.declarations:
            try:
                declaration = self.declarations.get(unit.key)
            except DeclarationParseError as exc:
                raise DeclarationUnavailable(exc, function=frame.unit.key, lineno=lineno) from exc
            if declaration is None:
                never("indexed declaration missing", function=unit.key)
            logger.debug("applying declaration of %s", unit.key)
            return self.apply_declaration(unit, declaration, aligned, lineno=lineno)
        logger.debug("inferring %s from %s", unit.key, frame.unit.key)
        return self.infer_function(unit, aligned, lineno=lineno)

    def _align_arguments(
        self,
        unit: FunctionUnit,
        positional: list[VariableState],
        keywords: dict[str, VariableState],
        starred: bool,
        frame: _Frame,
        lineno: int | None,
    ) -> list[VariableState]:
        aligned: dict[str, VariableState] = {}
        for name, state in zip(unit.params[: unit.positional_count], positional):
            aligned[name] = state
        for name, state in keywords.items():
            if name in unit.params and name not in aligned:
                aligned[name] = state
        states: list[VariableState] = []
        for name in unit.params:
            if name in aligned:
                states.append(aligned[name])
            elif starred:
                states.append(hole())
            elif name in unit.defaults:
                states.append(self.static_value(unit.defaults[name], unit.module))
            else:
                raise ArityError(
                    f"call to {unit.key} is missing argument {name!r}",
                    function=frame.unit.key,
                    lineno=lineno,
                )
        return states

    def apply_declaration(
        self,
        unit: FunctionUnit,
        declaration: Declaration,
        arg_states: Sequence[VariableState],
        *,
        lineno: int | None = None,
    ) -> VariableState:
        """Evaluate ``declaration`` for one call of ``unit``.

        ``eval(expr) as NAME`` statements bind the concatenation of their
        arguments to ``NAME`` and record no effect.
        """
        namespace = self._bind_declared_arguments(unit, declaration, arg_states, lineno)
        for stmt in declaration.effects:
            arguments = tuple(
                self._evaluate_declared(expr, namespace, unit) for expr in stmt.arguments
            )
            if stmt.effect_name == EVAL_STATEMENT:
                if stmt.result_binding is not None:
                    namespace[stmt.result_binding] = concat_all(arguments)
                continue
            self.effects.append(
                ResolvedEffect(
                    effect_name=stmt.effect_name,
                    arguments=arguments,
                    declared_by=unit.key,
                )
            )
            if stmt.result_binding is not None:
                namespace[stmt.result_binding] = hole()
        if declaration.returns is None:
            return hole()
        return self._evaluate_declared(declaration.returns, namespace, unit)

    def _bind_declared_arguments(
        self,
        unit: FunctionUnit,
        declaration: Declaration,
        arg_states: Sequence[VariableState],
        lineno: int | None,
    ) -> dict[str, VariableState]:
        # A binding naming a real parameter takes that parameter's state; the
        # rest are positional, past a receiver the declaration leaves unnamed.
        if len(arg_states) < len(declaration.args):
            raise ArityError(
                f"declaration of {unit.key} binds {len(declaration.args)} argument(s) "
                f"but the call supplies {len(arg_states)}",
                function=unit.key,
                lineno=lineno,
            )
        by_parameter = dict(zip(unit.params, arg_states))
        named = {binding.parameter_name for binding in declaration.args}
        offset = 1 if unit.binds_receiver and unit.params and unit.params[0] not in named else 0
        namespace: dict[str, VariableState] = {}
        for position, binding in enumerate(declaration.args):
            state = by_parameter.get(binding.parameter_name)
            if state is None:
                if position + offset >= len(arg_states):
                    raise ArityError(
                        f"declaration of {unit.key} binds {binding.parameter_name!r} "
                        f"but the call supplies {len(arg_states) - offset} argument(s)",
                        function=unit.key,
                        lineno=lineno,
                    )
                state = arg_states[position + offset]
            namespace[binding.parameter_name] = state
            namespace[binding.alias] = state
        return namespace

    def _evaluate_declared(
        self, expr: Expr, namespace: dict[str, VariableState], unit: FunctionUnit
    ) -> VariableState:
        if isinstance(expr, Literal):
            return literal(expr.value)
        if isinstance(expr, VariableRef):
            state = namespace.get(expr.name)
            if state is None:
                raise UnresolvedVariable(
                    f"declaration references unbound name {expr.name!r}",
                    function=unit.key,
                    lineno=unit.lineno,
                )
            return state
        if not isinstance(expr, Concat):
            never("unknown declaration expression", shape=type(expr).__name__)
        return concat(
            self._evaluate_declared(expr.lhs, namespace, unit),
            self._evaluate_declared(expr.rhs, namespace, unit),
        )

    # ------------------------------------------------------------------
    # module scope

    def module_scope(self, module: str) -> dict[str, VariableState]:
        """Top-level names of ``module``; string constants keep their value."""
        scope = self._module_scopes.get(module)
        if scope is not None:
            return scope
        scope = {}
        self._module_scopes[module] = scope
        parsed = self.functions.modules.get(module)
        if parsed is None:
            return scope
        for stmt in parsed.module_bindings:
            if isinstance(stmt, ast.Assign):
                targets, value = stmt.targets, stmt.value
            elif isinstance(stmt, ast.AnnAssign) and stmt.value is not None:
                targets, value = [stmt.target], stmt.value
            else:
                for name in _stored_names(stmt):
                    scope[name] = hole()
                continue
            for target in targets:
                if isinstance(target, ast.Name):
                    scope[target.id] = self.static_value(value, module)
                else:
                    for name in _stored_names(target):
                        scope[name] = hole()
        return scope

    def static_value(self, node: ast.expr, module: str) -> VariableState:
        """Evaluate a module-level or default expression without following calls."""
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            return literal(node.value)
        if isinstance(node, ast.Name):
            return self.module_scope(module).get(node.id, hole())
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.Add):
            return concat(self.static_value(node.left, module), self.static_value(node.right, module))
        if isinstance(node, ast.JoinedStr):
            parts: list[VariableState] = []
            for part in node.values:
                if isinstance(part, ast.FormattedValue):
                    if part.conversion != -1 or part.format_spec is not None:
                        parts.append(hole())
                    else:
                        parts.append(self.static_value(part.value, module))
                else:
                    parts.append(self.static_value(part, module))
            return concat_all(parts)
        return hole()

    # ------------------------------------------------------------------
    # bookkeeping

    def _tick(self, frame: _Frame) -> None:
        if self.clock is None:
            never("inference clock not initialized", function=frame.unit.key)
        try:
            self.clock.consume(1)
        except DeadlineClockExhausted as exc:
            raise AnalysisBudgetExceeded(
                f"evaluation step budget exhausted ({exc})",
                function=frame.unit.key,
                lineno=frame.lineno,
            ) from exc

    def _diagnose(
        self,
        frame: _Frame,
        kind: str,
        message: str,
        node: ast.AST | None = None,
    ) -> None:
        lineno = getattr(node, "lineno", None) if node is not None else None
        self.diagnostics.append(
            Diagnostic(
                kind=kind,
                function=frame.unit.key,
                message=message,
                lineno=lineno if lineno is not None else frame.lineno,
            )
        )


def _callee_name(func: ast.expr) -> str | None:
    parts: list[str] = []
    current: ast.expr = func
    while isinstance(current, ast.Attribute):
        parts.append(current.attr)
        current = current.value
    if not isinstance(current, ast.Name):
        return None
    parts.append(current.id)
    return ".".join(reversed(parts))


def _contains_call(node: ast.AST) -> bool:
    for child in ast.walk(node):
        if isinstance(child, _OPAQUE_EXPRESSIONS):
            continue
        if isinstance(child, ast.Call):
            return True
    return False


def _stored_names(node: ast.AST) -> list[str]:
    """Names a statement binds in its own scope, not descending into nested scopes."""
    names: list[str] = []
    pending: list[ast.AST] = [node]
    while pending:
        child = pending.pop()
        if isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            names.append(child.name)
            continue
        if isinstance(child, _OPAQUE_EXPRESSIONS):
            continue
        if isinstance(child, ast.Name) and isinstance(child.ctx, ast.Store):
            names.append(child.id)
        elif isinstance(child, ast.ExceptHandler) and child.name:
            names.append(child.name)
        elif isinstance(child, ast.alias):
            names.append((child.asname or child.name).split(".")[0])
        elif isinstance(child, (ast.MatchAs, ast.MatchStar)) and child.name:
            names.append(child.name)
        pending.extend(ast.iter_child_nodes(child))
    return names


def infer(
    function: FunctionUnit,
    arg_states: Sequence[VariableState],
    declarations: DeclarationIndex,
    functions: FunctionIndex,
    effects_out: list[ResolvedEffect],
    *,
    diagnostics: list[Diagnostic] | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> VariableState:
    """Infer ``function`` called with ``arg_states``.

    Effects of the whole call tree are appended to ``effects_out``; the return
    value is the abstract result of the call.
    """
    context = InferenceContext(
        declarations=declarations,
        functions=functions,
        effects=effects_out,
        diagnostics=diagnostics if diagnostics is not None else [],
        max_depth=max_depth,
        clock=GasMeter(limit=max_steps),
    )
    if function.key in declarations:
        declaration = declarations.get(function.key)
        if declaration is None:
            never("indexed declaration missing", function=function.key)
        return context.apply_declaration(function, declaration, arg_states)
    return context.infer_function(function, arg_states)
