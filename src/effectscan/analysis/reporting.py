"""Renderers for analysis results: text manifest, JSON report and policy summary."""

from __future__ import annotations

import json

from effectscan.analysis.driver import AnalysisResult, EntrypointReport
from effectscan.analysis.lattice import render
from effectscan.exceptions import InferenceError
from effectscan.json_types import JSONObject
from effectscan.schema import AnalysisResponseDTO, PolicyResponseDTO


def _error_payload(report: EntrypointReport) -> JSONObject | None:
    error = report.error
    if error is None:
        return None
    if isinstance(error, InferenceError):
        return {
            "kind": error.kind,
            "function": error.function,
            "line": error.lineno,
            "message": error.message,
        }
    return {
        "kind": "declaration-parse",
        "function": getattr(error, "function", None) or report.entrypoint,
        "line": None,
        "message": str(error),
    }


def report_payload(report: EntrypointReport) -> JSONObject:
    return {
        "entrypoint": report.entrypoint,
        "status": report.status,
        "effects": [
            {
                "effect": effect.effect_name,
                "args": list(effect.rendered_arguments()),
                "declared_by": effect.declared_by,
            }
            for effect in report.effects
        ],
        "returns": render(report.returns) if report.returns is not None else None,
        "diagnostics": [
            {
                "kind": diagnostic.kind,
                "function": diagnostic.function,
                "message": diagnostic.message,
                "line": diagnostic.lineno,
            }
            for diagnostic in report.diagnostics
        ],
        "error": _error_payload(report),
    }


def result_payload(result: AnalysisResult) -> JSONObject:
    payload = {
        "reports": [report_payload(report) for report in result.reports],
        "parse_failures": [
            {"path": str(failure.path), "stage": failure.stage, "error": failure.error}
            for failure in result.parse_failures
        ],
        "declaration_failures": {
            key: str(error) for key, error in sorted(result.declaration_failures.items())
        },
    }
    return AnalysisResponseDTO.model_validate(payload).model_dump()


def policy_payload(result: AnalysisResult) -> JSONObject:
    """Deduplicate effects of every successful entrypoint into ``{effect: [[args]]}``."""
    effects: dict[str, set[tuple[str, ...]]] = {}
    for report in result.reports:
        if not report.ok:
            continue
        for effect in report.effects:
            effects.setdefault(effect.effect_name, set()).add(effect.rendered_arguments())
    payload = {
        "effects": {
            name: [list(args) for args in sorted(arguments)]
            for name, arguments in sorted(effects.items())
        },
        "entrypoints": [report.entrypoint for report in result.reports if report.ok],
        "failed": [report.entrypoint for report in result.reports if not report.ok],
    }
    return PolicyResponseDTO.model_validate(payload).model_dump()


def render_json(result: AnalysisResult) -> str:
    return json.dumps(result_payload(result), indent=2, sort_keys=True)


def render_policy(result: AnalysisResult) -> str:
    return json.dumps(policy_payload(result), indent=2, sort_keys=True)


def render_text(result: AnalysisResult) -> str:
    lines: list[str] = []
    for failure in result.parse_failures:
        lines.append(f"skipped {failure.path} ({failure.stage}): {failure.error}")
    for report in result.reports:
        lines.append(f"{report.entrypoint} [{report.status}]")
        for effect in report.effects:
            lines.append(f"  {effect}")
        if report.returns is not None:
            lines.append(f"  returns {render(report.returns)}")
        for diagnostic in report.diagnostics:
            lines.append(f"  note: {diagnostic}")
        if report.error is not None:
            lines.append(f"  error: {report.error}")
    if not result.reports:
        lines.append("no entrypoints analyzed")
    return "\n".join(lines)
