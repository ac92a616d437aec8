from __future__ import annotations

import ast
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Protocol, runtime_checkable

if TYPE_CHECKING:
    from effectscan.config import AnalysisConfig


@dataclass(frozen=True)
class ParseFailureWitness:
    path: Path
    stage: str
    error: str


@dataclass(frozen=True)
class FunctionUnit:
    """One analyzable function, normalized from the host syntax tree.

    ``params`` lists positional parameters first, then keyword-only ones;
    ``positional_count`` marks the split.  ``declaration_text`` is the raw
    payload of a ``declare`` marker, or ``None`` when the function carries no
    such marker; ``declaration_error`` is set when the marker is present but its
    payload could not be read as text.
    """

    key: str
    name: str
    module: str
    path: Path
    lineno: int
    params: tuple[str, ...]
    positional_count: int
    defaults: Mapping[str, ast.expr]
    body: tuple[ast.stmt, ...]
    markers: frozenset[str] = frozenset()
    declaration_text: str | None = None
    declaration_error: str | None = None
    class_name: str | None = None
    lexical_scope: tuple[str, ...] = ()
    binds_receiver: bool = False

    @property
    def is_declared(self) -> bool:
        return "declare" in self.markers

    @property
    def is_entrypoint(self) -> bool:
        return "entrypoint" in self.markers


@dataclass(frozen=True)
class ParsedModule:
    path: Path
    module: str
    tree: ast.Module
    functions: tuple[FunctionUnit, ...]
    module_bindings: tuple[ast.stmt, ...] = ()
    imports: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class NormalizedIngestBundle:
    language_id: str
    file_paths: tuple[Path, ...]
    modules: tuple[ParsedModule, ...]
    parse_failures: tuple[ParseFailureWitness, ...] = ()


@runtime_checkable
class LanguageAdapter(Protocol):
    language_id: str
    file_extensions: tuple[str, ...]

    def discover_files(
        self,
        paths: list[Path],
        *,
        config: AnalysisConfig,
    ) -> list[Path]: ...

    def parse_source(
        self,
        source: str,
        *,
        path: Path,
        config: AnalysisConfig,
    ) -> ParsedModule: ...

    def normalize(
        self,
        paths: list[Path],
        *,
        config: AnalysisConfig,
    ) -> NormalizedIngestBundle: ...
