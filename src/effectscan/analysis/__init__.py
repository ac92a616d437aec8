"""Effect inference subpackage."""

from .driver import (
    AnalysisResult,
    EntrypointReport,
    analyze_entrypoint,
    analyze_modules,
    analyze_paths,
    analyze_source,
    select_entrypoints,
)
from .inference import Diagnostic, InferenceContext, ResolvedEffect, infer
from .lattice import VariableState, concat, hole, literal, optimize, render
from .reporting import render_json, render_policy, render_text

__all__ = [
    "AnalysisResult",
    "Diagnostic",
    "EntrypointReport",
    "InferenceContext",
    "ResolvedEffect",
    "VariableState",
    "analyze_entrypoint",
    "analyze_modules",
    "analyze_paths",
    "analyze_source",
    "concat",
    "hole",
    "infer",
    "literal",
    "optimize",
    "render",
    "render_json",
    "render_policy",
    "render_text",
    "select_entrypoints",
]
