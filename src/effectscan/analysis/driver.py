from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from effectscan.analysis.declaration_index import DeclarationIndex, build_declaration_index
from effectscan.analysis.function_index import FunctionIndex
from effectscan.analysis.inference import Diagnostic, ResolvedEffect, infer
from effectscan.analysis.lattice import VariableState, hole
from effectscan.config import AnalysisConfig
from effectscan.exceptions import DeclarationParseError, EffectScanError, InferenceError
from effectscan.ingest.adapter_contract import FunctionUnit, ParsedModule, ParseFailureWitness
from effectscan.ingest.python_adapter import PythonAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntrypointReport:
    entrypoint: str
    status: str
    effects: tuple[ResolvedEffect, ...] = ()
    returns: VariableState | None = None
    diagnostics: tuple[Diagnostic, ...] = ()
    error: EffectScanError | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(frozen=True)
class AnalysisResult:
    reports: tuple[EntrypointReport, ...] = ()
    parse_failures: tuple[ParseFailureWitness, ...] = ()
    declaration_failures: Mapping[str, DeclarationParseError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(report.ok for report in self.reports)

    def diagnostics(self) -> list[Diagnostic]:
        return [diagnostic for report in self.reports for diagnostic in report.diagnostics]


def _matches(unit: FunctionUnit, name: str) -> bool:
    return unit.key == name or unit.key.endswith(f".{name}") or unit.name == name


def select_entrypoints(
    functions: FunctionIndex,
    names: Sequence[str] = (),
) -> tuple[list[FunctionUnit], list[str]]:
    """Return marked entrypoints plus those named explicitly, and names matching nothing."""
    selected: dict[str, FunctionUnit] = {}
    missing: list[str] = []
    for unit in functions.units():
        if unit.is_entrypoint:
            selected[unit.key] = unit
    for name in names:
        matched = [unit for unit in functions.units() if _matches(unit, name)]
        if not matched:
            missing.append(name)
        for unit in matched:
            selected[unit.key] = unit
    ordered = sorted(selected.values(), key=lambda unit: (str(unit.path), unit.lineno, unit.key))
    return ordered, missing


def analyze_entrypoint(
    unit: FunctionUnit,
    declarations: DeclarationIndex,
    functions: FunctionIndex,
    *,
    max_depth: int,
    max_steps: int,
) -> EntrypointReport:
    """Analyze one entrypoint with every parameter unknown.

    Fatal errors are captured in the report; nothing escapes except bugs.
    """
    effects: list[ResolvedEffect] = []
    diagnostics: list[Diagnostic] = []
    arg_states = [hole() for _ in unit.params]
    try:
        returns = infer(
            unit,
            arg_states,
            declarations,
            functions,
            effects,
            diagnostics=diagnostics,
            max_depth=max_depth,
            max_steps=max_steps,
        )
    except (InferenceError, DeclarationParseError) as exc:
        logger.debug("entrypoint %s failed: %s", unit.key, exc)
        return EntrypointReport(
            entrypoint=unit.key,
            status="error",
            effects=tuple(effects),
            diagnostics=tuple(diagnostics),
            error=exc,
        )
    logger.debug("entrypoint %s: %d effect(s)", unit.key, len(effects))
    return EntrypointReport(
        entrypoint=unit.key,
        status="ok",
        effects=tuple(effects),
        returns=returns,
        diagnostics=tuple(diagnostics),
    )


def analyze_modules(
    modules: Iterable[ParsedModule],
    *,
    config: AnalysisConfig,
    entrypoints: Sequence[str] = (),
    parse_failures: Sequence[ParseFailureWitness] = (),
) -> AnalysisResult:
    functions = FunctionIndex.from_modules(modules)
    declarations = build_declaration_index(functions.units())
    names = list(config.entrypoints) + [name for name in entrypoints if name not in config.entrypoints]
    selected, missing = select_entrypoints(functions, names)
    for name in missing:
        logger.warning("entrypoint %r matches no function", name)
    reports = tuple(
        analyze_entrypoint(
            unit,
            declarations,
            functions,
            max_depth=config.max_depth,
            max_steps=config.max_steps,
        )
        for unit in selected
    )
    return AnalysisResult(
        reports=reports,
        parse_failures=tuple(parse_failures),
        declaration_failures=declarations.failures,
    )


def analyze_paths(
    paths: Sequence[Path | str],
    *,
    config: AnalysisConfig,
    entrypoints: Sequence[str] = (),
) -> AnalysisResult:
    bundle = PythonAdapter().normalize([Path(p) for p in paths], config=config)
    return analyze_modules(
        bundle.modules,
        config=config,
        entrypoints=entrypoints,
        parse_failures=bundle.parse_failures,
    )


def analyze_source(
    source: str,
    *,
    path: Path | str = "module.py",
    config: AnalysisConfig | None = None,
    entrypoints: Sequence[str] = (),
) -> AnalysisResult:
    """Analyze a single in-memory source text."""
    config = config if config is not None else AnalysisConfig()
    parsed = PythonAdapter().parse_source(source, path=Path(path), config=config)
    return analyze_modules([parsed], config=config, entrypoints=entrypoints)
