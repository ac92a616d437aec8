"""Invariant markers for effectscan internals."""

from __future__ import annotations

from typing import NoReturn

from effectscan.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    Reaching it means an internal invariant broke; ``env`` is recorded on the
    raised :class:`NeverThrown` to describe the state that got there.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)
