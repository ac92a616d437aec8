from __future__ import annotations

import json
from pathlib import Path

from effectscan.analysis.driver import analyze_paths, analyze_source, select_entrypoints
from effectscan.analysis.function_index import FunctionIndex
from effectscan.analysis.reporting import render_json, render_policy, render_text
from effectscan.config import AnalysisConfig
from effectscan.ingest import parse_python_source
from tests.sources import with_join_read

TWO_ENTRYPOINTS = """
@effects.entrypoint
def first(user):
    join_read("~", "cfg")
    return join_read(user, "cfg")

@effects.entrypoint
def second():
    return join_read("~", "cfg")

@effects.entrypoint
def broken():
    return join_read(nowhere, "x")

def not_marked():
    return join_read("/tmp", "x")
"""


def _result():
    return analyze_source(with_join_read(TWO_ENTRYPOINTS), path="example.py")


def test_entrypoints_are_analyzed_independently() -> None:
    result = _result()
    assert [report.entrypoint for report in result.reports] == [
        "example.first",
        "example.second",
        "example.broken",
    ]
    first, second, broken = result.reports
    assert [str(effect) for effect in first.effects] == [
        "read_file(~/cfg)",
        "read_file(*/cfg)",
    ]
    assert [str(effect) for effect in second.effects] == ["read_file(~/cfg)"]
    assert broken.status == "error"
    assert first.ok and second.ok
    assert not result.ok


def test_named_entrypoints_extend_marked_ones(tmp_path: Path) -> None:
    parsed = parse_python_source(
        with_join_read(TWO_ENTRYPOINTS), path=tmp_path / "example.py", config=AnalysisConfig()
    )
    functions = FunctionIndex.from_modules([parsed])
    selected, missing = select_entrypoints(functions, ["not_marked", "example.nothing"])
    assert "example.not_marked" in [unit.key for unit in selected]
    assert missing == ["example.nothing"]

    result = analyze_source(
        with_join_read(TWO_ENTRYPOINTS),
        path="example.py",
        config=AnalysisConfig(entrypoints=("not_marked",)),
    )
    assert "example.not_marked" in [report.entrypoint for report in result.reports]


def test_analyze_paths_reports_parse_failures(tmp_path: Path, write_module) -> None:
    write_module("app.py", TWO_ENTRYPOINTS)
    (tmp_path / "bad.py").write_text("def (:\n")
    result = analyze_paths([tmp_path], config=AnalysisConfig(project_root=tmp_path))
    assert len(result.reports) == 3
    assert [failure.path.name for failure in result.parse_failures] == ["bad.py"]


def test_cross_module_calls_follow_imports(tmp_path: Path, write_module) -> None:
    write_module("helpers.py", "")
    write_module(
        "app.py",
        """
        import effects
        import helpers
        from helpers import join_read as fetch

        @effects.entrypoint
        def main():
            fetch("~", "a")
            return helpers.join_read("~", "b")
        """,
        declared=False,
    )
    result = analyze_paths([tmp_path], config=AnalysisConfig(project_root=tmp_path))
    (report,) = result.reports
    assert [str(effect) for effect in report.effects] == ["read_file(~/a)", "read_file(~/b)"]
    assert report.effects[0].declared_by == "helpers.join_read"


def test_imported_callee_defaults_read_its_module_constants(tmp_path: Path, write_module) -> None:
    write_module(
        "storage.py",
        """
        BASE = "/srv"

        def load(path=BASE, name="x"):
            return join_read(path, name)
        """,
    )
    write_module(
        "app.py",
        """
        import effects
        from storage import load

        @effects.entrypoint
        def main():
            return load()
        """,
        declared=False,
    )
    result = analyze_paths([tmp_path], config=AnalysisConfig(project_root=tmp_path))
    (report,) = result.reports
    assert [str(effect) for effect in report.effects] == ["read_file(/srv/x)"]


def test_render_text_lists_effects_per_entrypoint() -> None:
    text = render_text(_result())
    assert "example.first [ok]" in text
    assert "  read_file(*/cfg)" in text
    assert "example.broken [error]" in text
    assert "nowhere" in text


def test_render_json_is_stable_and_complete() -> None:
    result = _result()
    payload = json.loads(render_json(result))
    assert render_json(result) == render_json(_result())
    first = payload["reports"][0]
    assert first["status"] == "ok"
    assert first["effects"][0] == {
        "effect": "read_file",
        "args": ["~/cfg"],
        "declared_by": "example.join_read",
    }
    assert first["returns"] == "*/cfg"
    broken = payload["reports"][2]
    assert broken["error"]["kind"] == "unresolved-variable"
    assert broken["error"]["function"] == "example.broken"
    assert payload["parse_failures"] == []
    assert payload["declaration_failures"] == {}


def test_render_policy_deduplicates_successful_effects() -> None:
    payload = json.loads(render_policy(_result()))
    assert payload["effects"] == {"read_file": [["*/cfg"], ["~/cfg"]]}
    assert payload["entrypoints"] == ["example.first", "example.second"]
    assert payload["failed"] == ["example.broken"]


def test_render_text_without_entrypoints() -> None:
    result = analyze_source("def f():\n    return 'x'\n", path="plain.py")
    assert result.reports == ()
    assert render_text(result) == "no entrypoints analyzed"
