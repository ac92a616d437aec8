from __future__ import annotations

from bisect import bisect_right, insort
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Mapping

from effectscan.analysis.lattice import VariableState


@dataclass
class BindingScope:
    """Bindings of one function-inference invocation.

    Each identifier keeps its bindings ordered by statement index; a lookup at
    index ``i`` sees the binding with the largest index ``<= i``.
    """

    fallback: Mapping[str, VariableState] = field(default_factory=dict)
    _indices: dict[str, list[int]] = field(default_factory=lambda: defaultdict(list))
    _values: dict[tuple[int, str], VariableState] = field(default_factory=dict)

    def bind(self, index: int, name: str, state: VariableState) -> None:
        key = (index, name)
        if key not in self._values:
            insort(self._indices[name], index)
        self._values[key] = state

    def lookup(self, index: int, name: str) -> VariableState | None:
        indices = self._indices.get(name)
        if indices:
            pos = bisect_right(indices, index)
            if pos:
                return self._values[(indices[pos - 1], name)]
        return self.fallback.get(name)

