from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

DEFAULT_CONFIG_NAME = "effectscan.toml"

DEFAULT_DECLARE_MARKERS = frozenset({"declare"})
DEFAULT_ENTRYPOINT_MARKERS = frozenset({"entrypoint"})
DEFAULT_INFER_MARKERS = frozenset({"infer"})
DEFAULT_MAX_DEPTH = 64
DEFAULT_MAX_STEPS = 100_000

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


@dataclass
class AnalysisConfig:
    project_root: Path | None = None
    exclude_dirs: set[str] = field(default_factory=set)
    entrypoints: tuple[str, ...] = ()
    max_depth: int = DEFAULT_MAX_DEPTH
    max_steps: int = DEFAULT_MAX_STEPS
    declare_markers: frozenset[str] = DEFAULT_DECLARE_MARKERS
    entrypoint_markers: frozenset[str] = DEFAULT_ENTRYPOINT_MARKERS
    infer_markers: frozenset[str] = DEFAULT_INFER_MARKERS

    def is_ignored_path(self, path: Path) -> bool:
        parts = set(path.parts)
        return bool(self.exclude_dirs & parts)


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def analysis_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("analysis", {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return [item for item in items if item]


def _as_positive_int(value: TomlValue, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    if isinstance(value, str):
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        return parsed if parsed > 0 else default
    return default


def _marker_set(value: TomlValue, default: frozenset[str]) -> frozenset[str]:
    names = _normalize_name_list(value)
    if not names:
        return default
    return frozenset(name.split(".")[-1] for name in names)


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def build_analysis_config(
    section: TomlTable,
    *,
    project_root: Path | None = None,
) -> AnalysisConfig:
    return AnalysisConfig(
        project_root=project_root,
        exclude_dirs=set(_normalize_name_list(section.get("exclude"))),
        entrypoints=tuple(_normalize_name_list(section.get("entrypoints"))),
        max_depth=_as_positive_int(section.get("max_depth"), DEFAULT_MAX_DEPTH),
        max_steps=_as_positive_int(section.get("max_steps"), DEFAULT_MAX_STEPS),
        declare_markers=_marker_set(section.get("declare_markers"), DEFAULT_DECLARE_MARKERS),
        entrypoint_markers=_marker_set(
            section.get("entrypoint_markers"), DEFAULT_ENTRYPOINT_MARKERS
        ),
        infer_markers=_marker_set(section.get("infer_markers"), DEFAULT_INFER_MARKERS),
    )
