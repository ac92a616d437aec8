from __future__ import annotations

import pytest

from effectscan.analysis.lattice import (
    Hole,
    Known,
    VariableState,
    concat,
    concat_all,
    hole,
    literal,
    optimize,
    render,
    shape,
)


def _samples() -> list[VariableState]:
    return [
        literal("x"),
        hole(),
        concat(literal("a"), literal("b")),
        concat(concat(literal("~"), hole()), concat(literal("/"), literal("cfg"))),
        concat(hole(), hole()),
    ]


def test_render_basics() -> None:
    assert render(literal("x")) == "x"
    assert render(hole()) == "*"
    assert render(concat(literal("a"), literal("b"))) == "ab"
    assert render(concat(literal("~/"), concat(hole(), literal(".json")))) == "~/*.json"


@pytest.mark.parametrize("state", _samples())
def test_optimize_is_idempotent_and_preserves_rendering(state: VariableState) -> None:
    once = optimize(state)
    assert optimize(once) == once
    assert render(once) == render(state)


def test_optimize_merges_adjacent_known_segments_only() -> None:
    state = concat_all([literal("a"), literal("b"), hole(), literal("c"), literal("d")])
    assert optimize(state).segments == (Known("ab"), Hole(), Known("cd"))


def test_concat_is_associative_under_render() -> None:
    a, b, c = literal("a"), hole(), literal("c")
    assert render(concat(concat(a, b), c)) == render(concat(a, concat(b, c)))


def test_str_renders_holes_as_globs() -> None:
    assert str(concat(literal("x"), hole())) == "x*"
    assert str(hole()) == "*"


def test_state_requires_a_segment() -> None:
    with pytest.raises(ValueError):
        VariableState(())
    assert concat_all([]) == literal("")


def test_shape_ignores_segmentation() -> None:
    assert shape([concat(literal("a"), literal("b"))]) == shape([literal("ab")])
    assert shape([hole()]) != shape([literal("ab")])
