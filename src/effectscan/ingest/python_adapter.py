from __future__ import annotations

import logging
from pathlib import Path

from effectscan.config import AnalysisConfig
from effectscan.ingest.adapter_contract import (
    LanguageAdapter,
    NormalizedIngestBundle,
    ParsedModule,
    ParseFailureWitness,
)
from effectscan.ingest.python_ingest import iter_python_paths, parse_python_source

logger = logging.getLogger(__name__)


class PythonAdapter(LanguageAdapter):
    language_id = "python"
    file_extensions = (".py",)

    def discover_files(self, paths: list[Path], *, config: AnalysisConfig) -> list[Path]:
        return iter_python_paths(paths, config=config)

    def parse_source(self, source: str, *, path: Path, config: AnalysisConfig) -> ParsedModule:
        return parse_python_source(source, path=path, config=config)

    def normalize(self, paths: list[Path], *, config: AnalysisConfig) -> NormalizedIngestBundle:
        discovered_paths = self.discover_files(paths, config=config)
        modules: list[ParsedModule] = []
        failures: list[ParseFailureWitness] = []
        for path in discovered_paths:
            try:
                source = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("skipping unreadable file %s: %s", path, exc)
                failures.append(ParseFailureWitness(path=path, stage="read", error=str(exc)))
                continue
            try:
                modules.append(self.parse_source(source, path=path, config=config))
            except SyntaxError as exc:
                logger.warning("skipping unparsable file %s: %s", path, exc)
                failures.append(ParseFailureWitness(path=path, stage="parse", error=str(exc)))
        return NormalizedIngestBundle(
            language_id=self.language_id,
            file_paths=tuple(discovered_paths),
            modules=tuple(modules),
            parse_failures=tuple(failures),
        )
