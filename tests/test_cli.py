from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from effectscan import cli

MAIN = """
@effects.entrypoint
def main(user):
    return join_read(user, "cfg.json")
"""


def _invoke(args: list[str]):
    return CliRunner().invoke(cli.app, args)


def test_check_prints_text_manifest(tmp_path: Path, write_module) -> None:
    write_module("app.py", MAIN)
    result = _invoke(["check", str(tmp_path), "--root", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "app.main [ok]" in result.output
    assert "read_file(*/cfg.json)" in result.output


def test_check_json_output_to_file(tmp_path: Path, write_module) -> None:
    write_module("app.py", MAIN)
    out = tmp_path / "out" / "effects.json"
    result = _invoke(
        ["check", "--root", str(tmp_path), "--format", "json", "--output", str(out)]
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(out.read_text())
    assert payload["reports"][0]["effects"][0]["args"] == ["*/cfg.json"]


def test_check_policy_format(tmp_path: Path, write_module) -> None:
    write_module("app.py", MAIN)
    result = _invoke(["check", str(tmp_path), "--root", str(tmp_path), "--format", "policy"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["effects"] == {"read_file": [["*/cfg.json"]]}


def test_check_without_entrypoints_exits_2(tmp_path: Path, write_module) -> None:
    write_module("lib.py", "def helper():\n    return 'x'\n")
    result = _invoke(["check", str(tmp_path), "--root", str(tmp_path)])
    assert result.exit_code == 2
    assert "No entrypoint found" in result.output


def test_check_named_entrypoint_option(tmp_path: Path, write_module) -> None:
    write_module("lib.py", "def helper():\n    return join_read('~', 'x')\n")
    result = _invoke(
        ["check", str(tmp_path), "--root", str(tmp_path), "--entrypoint", "helper"]
    )
    assert result.exit_code == 0, result.output
    assert "read_file(~/x)" in result.output


def test_check_fatal_error_exits_1(tmp_path: Path, write_module) -> None:
    write_module(
        "app.py",
        """
        @effects.entrypoint
        def main():
            return join_read(undefined, "x")
        """,
    )
    result = _invoke(["check", str(tmp_path), "--root", str(tmp_path)])
    assert result.exit_code == 1
    assert "app.main [error]" in result.output


def test_fail_on_diagnostics(tmp_path: Path, write_module) -> None:
    write_module(
        "app.py",
        """
        @effects.entrypoint
        def main():
            print("hello")
        """,
    )
    base = ["check", str(tmp_path), "--root", str(tmp_path)]
    assert _invoke(base).exit_code == 0
    assert _invoke(base + ["--fail-on-diagnostics"]).exit_code == 1


def test_budget_options_and_config_file(tmp_path: Path, write_module) -> None:
    write_module(
        "app.py",
        """
        def grow(p):
            return grow(p + "x")

        def main():
            return grow("a")
        """,
    )
    (tmp_path / "effectscan.toml").write_text('[analysis]\nentrypoints = ["main"]\n')
    result = _invoke(["check", str(tmp_path), "--root", str(tmp_path), "--max-depth", "4"])
    assert result.exit_code == 1
    assert "call depth limit of 4" in result.output


def test_check_rejects_bad_parameters(tmp_path: Path, write_module) -> None:
    write_module("app.py", MAIN)
    base = ["check", str(tmp_path), "--root", str(tmp_path)]
    assert _invoke(base + ["--format", "yaml"]).exit_code == 2
    assert _invoke(base + ["--max-steps", "0"]).exit_code == 2


def test_parse_command_prints_model() -> None:
    result = _invoke(["parse", "args=(p as P), side_effects=(read(P + '/x'))"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["args"] == [{"alias": "P", "parameter": "p"}]
    assert payload["canonical"] == "args=(p as P), side_effects=(read(P + '/x'))"
    assert payload["returns"] is None


def test_parse_command_reports_errors() -> None:
    result = _invoke(["parse", "side_effects=(read("])
    assert result.exit_code == 1
    assert "parse error" in result.output
