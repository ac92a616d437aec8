"""Runtime no-op markers recognized by the static analysis.

Decorating a function changes nothing at runtime; the analysis reads the
decorators from the syntax tree.
"""

from __future__ import annotations

from typing import Callable, TypeVar

FuncT = TypeVar("FuncT", bound=Callable[..., object])


def declare(payload: str) -> Callable[[FuncT], FuncT]:
    """Declare the effects of the decorated function with an annotation payload."""

    def _mark(func: FuncT) -> FuncT:
        setattr(func, "__effects_declaration__", payload)
        return func

    return _mark


def entrypoint(func: FuncT) -> FuncT:
    """Marker decorator for functions analyzed as call-graph roots."""
    return func


def infer(func: FuncT) -> FuncT:
    """Marker decorator for functions whose effects are inferred from their body."""
    return func
