from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from effectscan.declaration.model import Declaration
from effectscan.declaration.parser import parse_declaration
from effectscan.exceptions import DeclarationParseError
from effectscan.ingest.adapter_contract import FunctionUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeclarationIndex:
    """Function key -> parsed declaration, built once per analysis run.

    Payloads that fail to parse are kept in ``failures`` and only surface when
    an analysis asks for that function's declaration.
    """

    declarations: Mapping[str, Declaration] = field(default_factory=dict)
    failures: Mapping[str, DeclarationParseError] = field(default_factory=dict)

    def __contains__(self, key: object) -> bool:
        return key in self.declarations or key in self.failures

    def __len__(self) -> int:
        return len(self.declarations) + len(self.failures)

    def get(self, key: str) -> Declaration | None:
        """Return the declaration for ``key``; raise its parse error if it failed."""
        failure = self.failures.get(key)
        if failure is not None:
            raise failure
        return self.declarations.get(key)


def build_declaration_index(units: Iterable[FunctionUnit]) -> DeclarationIndex:
    declarations: dict[str, Declaration] = {}
    failures: dict[str, DeclarationParseError] = {}
    for unit in units:
        if not unit.is_declared:
            continue
        if unit.declaration_error is not None or unit.declaration_text is None:
            failures[unit.key] = DeclarationParseError(
                unit.declaration_error or "missing declaration payload",
                text=unit.declaration_text or "",
                function=unit.key,
            )
            continue
        try:
            declarations[unit.key] = parse_declaration(unit.declaration_text)
        except DeclarationParseError as exc:
            logger.debug("declaration of %s failed to parse: %s", unit.key, exc)
            failures[unit.key] = exc.for_function(unit.key)
    return DeclarationIndex(
        declarations=MappingProxyType(declarations),
        failures=MappingProxyType(failures),
    )
