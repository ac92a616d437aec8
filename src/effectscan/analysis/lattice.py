"""Abstract string values.

A :class:`VariableState` is an ordered, non-empty run of segments, each either a
known :class:`Known` literal or a :class:`Hole` standing for statically unknown
text.  A single literal segment is a fully known value, a single hole is fully
unknown, and anything mixed is partially known.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, TypeAlias


@dataclass(frozen=True)
class Known:
    text: str


@dataclass(frozen=True)
class Hole:
    pass


Segment: TypeAlias = Known | Hole

HOLE_GLOB = "*"


@dataclass(frozen=True)
class VariableState:
    segments: tuple[Segment, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("VariableState requires at least one segment")

    def __str__(self) -> str:
        return render(self)


def literal(text: str) -> VariableState:
    return VariableState((Known(text),))


def hole() -> VariableState:
    return VariableState((Hole(),))


def concat(lhs: VariableState, rhs: VariableState) -> VariableState:
    return VariableState(lhs.segments + rhs.segments)


def concat_all(states: Iterable[VariableState]) -> VariableState:
    segments: list[Segment] = []
    for state in states:
        segments.extend(state.segments)
    if not segments:
        return literal("")
    return VariableState(tuple(segments))


def optimize(state: VariableState) -> VariableState:
    """Coalesce adjacent known segments; holes stay as boundaries."""
    segments: list[Segment] = []
    for segment in state.segments:
        if isinstance(segment, Known) and segments and isinstance(segments[-1], Known):
            segments[-1] = Known(segments[-1].text + segment.text)
        else:
            segments.append(segment)
    return VariableState(tuple(segments))


def render(state: VariableState) -> str:
    return "".join(
        segment.text if isinstance(segment, Known) else HOLE_GLOB
        for segment in state.segments
    )


def shape(states: Iterable[VariableState]) -> tuple[VariableState, ...]:
    """Normalized argument tuple used as a call-cache and cycle-guard key."""
    return tuple(optimize(state) for state in states)
