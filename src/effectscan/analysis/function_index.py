from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from effectscan.ingest.adapter_contract import FunctionUnit, ParsedModule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalleeResolution:
    unit: FunctionUnit | None
    ambiguous: tuple[str, ...] = ()
    receiver_bound: bool = False


_UNRESOLVED = CalleeResolution(unit=None)


@dataclass
class FunctionIndex:
    by_name: dict[str, list[FunctionUnit]] = field(default_factory=lambda: defaultdict(list))
    by_key: dict[str, FunctionUnit] = field(default_factory=dict)
    modules: dict[str, ParsedModule] = field(default_factory=dict)

    @classmethod
    def from_modules(cls, modules: Iterable[ParsedModule]) -> FunctionIndex:
        index = cls()
        for module in modules:
            index.modules[module.module] = module
            for unit in module.functions:
                index.by_name[unit.name].append(unit)
                index.by_key[unit.key] = unit
        logger.debug(
            "function index: %d function(s) across %d module(s)",
            len(index.by_key),
            len(index.modules),
        )
        return index

    def units(self) -> list[FunctionUnit]:
        return [self.by_key[key] for key in sorted(self.by_key)]

    def lookup(self, key: str) -> FunctionUnit | None:
        return self.by_key.get(key)

    def resolve(self, callee: str, caller: FunctionUnit) -> CalleeResolution:
        """Resolve a call target spelled ``callee`` inside ``caller``.

        Unqualified names resolve lexically (enclosing functions outward, then
        module-level functions of the caller's module), then through the
        caller's imports.  Dotted names resolve ``self``/``cls`` methods of the
        enclosing class, ``Class.method`` in the caller's module, and imported
        modules or classes.
        """
        if not callee:
            return _UNRESOLVED
        if "." not in callee:
            return self._resolve_unqualified(callee, caller)
        return self._resolve_qualified(callee, caller)

    def _resolve_unqualified(self, name: str, caller: FunctionUnit) -> CalleeResolution:
        candidates = [
            unit
            for unit in self.by_name.get(name, [])
            if unit.module == caller.module and unit.class_name is None
        ]
        effective_scope = list(caller.lexical_scope) + [caller.name]
        while True:
            scoped = [
                unit for unit in candidates if list(unit.lexical_scope) == effective_scope
            ]
            if len(scoped) == 1:
                return CalleeResolution(unit=scoped[0])
            if len(scoped) > 1:
                return CalleeResolution(
                    unit=None, ambiguous=tuple(sorted(unit.key for unit in scoped))
                )
            if not effective_scope:
                break
            effective_scope = effective_scope[:-1]
        module = self.modules.get(caller.module)
        if module is not None and name in module.imports:
            return self._resolve_key(module.imports[name])
        return _UNRESOLVED

    def _resolve_qualified(self, callee: str, caller: FunctionUnit) -> CalleeResolution:
        parts = callee.split(".")
        base = parts[0]
        if base in ("self", "cls") and len(parts) == 2:
            if caller.class_name is None:
                return _UNRESOLVED
            scope = caller.key.rsplit(".", 1)[0]
            unit = self.by_key.get(f"{scope}.{parts[1]}")
            if unit is None:
                return _UNRESOLVED
            return CalleeResolution(unit=unit, receiver_bound=unit.binds_receiver)
        local = self.by_key.get(f"{caller.module}.{callee}" if caller.module else callee)
        if local is not None:
            return CalleeResolution(unit=local)
        module = self.modules.get(caller.module)
        if module is not None and base in module.imports:
            return self._resolve_key(".".join([module.imports[base], *parts[1:]]))
        return self._resolve_key(callee)

    def _resolve_key(self, key: str) -> CalleeResolution:
        unit = self.by_key.get(key)
        if unit is None:
            return _UNRESOLVED
        return CalleeResolution(unit=unit)
