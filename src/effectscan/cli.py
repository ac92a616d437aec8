from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from effectscan.analysis.driver import AnalysisResult, analyze_paths
from effectscan.analysis.reporting import render_json, render_policy, render_text
from effectscan.config import (
    AnalysisConfig,
    analysis_defaults,
    build_analysis_config,
    merge_payload,
)
from effectscan.declaration import declaration_payload, parse_declaration, render_declaration
from effectscan.exceptions import DeclarationParseError
from effectscan.schema import DeclarationDTO

app = typer.Typer(add_completion=False)

_RENDERERS = {
    "text": render_text,
    "json": render_json,
    "policy": render_policy,
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def build_check_config(
    *,
    root: Path,
    config: Optional[Path],
    max_depth: Optional[int],
    max_steps: Optional[int],
) -> AnalysisConfig:
    defaults = analysis_defaults(root, config)
    payload = merge_payload({"max_depth": max_depth, "max_steps": max_steps}, defaults)
    return build_analysis_config(payload, project_root=root)


def _emit(text: str, output: Optional[Path]) -> None:
    if output is None or str(output) == "-":
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")


def _exit_code(result: AnalysisResult, *, fail_on_diagnostics: bool) -> int:
    if not result.ok:
        return 1
    if fail_on_diagnostics and result.diagnostics():
        return 1
    return 0


@app.command()
def check(
    paths: List[Path] = typer.Argument(None),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    entrypoint: List[str] = typer.Option(
        None, "--entrypoint", help="Analyze this function as an entrypoint (repeatable)."
    ),
    output_format: str = typer.Option("text", "--format", help="text, json or policy."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write to FILE ('-' for stdout)."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth"),
    max_steps: Optional[int] = typer.Option(None, "--max-steps"),
    fail_on_diagnostics: bool = typer.Option(
        False, "--fail-on-diagnostics/--no-fail-on-diagnostics"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Infer the effects reachable from every entrypoint under PATHS."""
    _configure_logging(verbose)
    renderer = _RENDERERS.get(output_format)
    if renderer is None:
        raise typer.BadParameter(
            f"unknown format {output_format!r}; expected one of {', '.join(_RENDERERS)}"
        )
    for flag, value in (("--max-depth", max_depth), ("--max-steps", max_steps)):
        if value is not None and value <= 0:
            raise typer.BadParameter(f"{flag} must be a positive integer")
    analysis_config = build_check_config(
        root=root, config=config, max_depth=max_depth, max_steps=max_steps
    )
    result = analyze_paths(
        list(paths or [root]),
        config=analysis_config,
        entrypoints=list(entrypoint or []),
    )
    if not result.reports:
        typer.echo("No entrypoint found.", err=True)
        raise typer.Exit(code=2)
    _emit(renderer(result), output)
    raise typer.Exit(code=_exit_code(result, fail_on_diagnostics=fail_on_diagnostics))


@app.command()
def parse(text: str = typer.Argument(..., help="Declaration payload to parse.")) -> None:
    """Parse a declaration payload and print its JSON model."""
    try:
        declaration = parse_declaration(text)
    except DeclarationParseError as exc:
        typer.echo(f"parse error: {exc}", err=True)
        raise typer.Exit(code=1)
    payload = dict(declaration_payload(declaration))
    payload["canonical"] = render_declaration(declaration)
    normalized = DeclarationDTO.model_validate(payload).model_dump()
    typer.echo(json.dumps(normalized, indent=2, sort_keys=True))
