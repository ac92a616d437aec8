from __future__ import annotations

from pathlib import Path

from effectscan.config import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_STEPS,
    analysis_defaults,
    build_analysis_config,
    merge_payload,
)


def test_missing_or_malformed_config_yields_empty_defaults(tmp_path: Path) -> None:
    assert analysis_defaults(tmp_path) == {}
    (tmp_path / "effectscan.toml").write_text("[analysis\n")
    assert analysis_defaults(tmp_path) == {}


def test_analysis_section_is_read(tmp_path: Path) -> None:
    (tmp_path / "effectscan.toml").write_text(
        '[analysis]\nexclude = "build, dist"\nmax_depth = 7\n'
        'declare_markers = ["fx.declare", "effect"]\n'
    )
    section = analysis_defaults(tmp_path)
    config = build_analysis_config(section, project_root=tmp_path)
    assert config.exclude_dirs == {"build", "dist"}
    assert config.max_depth == 7
    assert config.max_steps == DEFAULT_MAX_STEPS
    assert config.declare_markers == frozenset({"declare", "effect"})
    assert config.entrypoint_markers == frozenset({"entrypoint"})
    assert config.is_ignored_path(tmp_path / "build" / "x.py")


def test_explicit_config_path(tmp_path: Path) -> None:
    path = tmp_path / "custom.toml"
    path.write_text('[analysis]\nentrypoints = ["main", "other"]\n')
    config = build_analysis_config(analysis_defaults(config_path=path))
    assert config.entrypoints == ("main", "other")


def test_invalid_numbers_fall_back_to_defaults() -> None:
    config = build_analysis_config({"max_depth": -3, "max_steps": "many"})
    assert config.max_depth == DEFAULT_MAX_DEPTH
    assert config.max_steps == DEFAULT_MAX_STEPS
    assert build_analysis_config({"max_steps": "12"}).max_steps == 12


def test_merge_payload_skips_unset_values() -> None:
    merged = merge_payload({"max_depth": None, "max_steps": 5}, {"max_depth": 9, "exclude": "x"})
    assert merged == {"max_depth": 9, "max_steps": 5, "exclude": "x"}
