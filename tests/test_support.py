from __future__ import annotations

from pathlib import Path

import pytest

from effectscan import declare, entrypoint, infer
from effectscan.analysis.declaration_index import build_declaration_index
from effectscan.config import AnalysisConfig
from effectscan.deadline_clock import DeadlineClockExhausted, GasMeter
from effectscan.exceptions import (
    ArityError,
    DeclarationParseError,
    NeverThrown,
    RecursionCycleError,
)
from effectscan.ingest import parse_python_source
from effectscan.invariants import never
from tests.sources import with_join_read


def test_markers_are_runtime_no_ops() -> None:
    @declare("side_effects=(print('x'))")
    def declared(a):
        return a + 1

    @entrypoint
    def main():
        return "main"

    @infer
    def inferred():
        return "inferred"

    assert declared(1) == 2
    assert declared.__effects_declaration__ == "side_effects=(print('x'))"
    assert main() == "main"
    assert inferred() == "inferred"


def test_gas_meter_exhausts_at_limit() -> None:
    meter = GasMeter(limit=2)
    meter.consume()
    assert meter.current == 1
    with pytest.raises(DeadlineClockExhausted):
        meter.consume()
    with pytest.raises(ValueError):
        GasMeter(limit=0)
    with pytest.raises(ValueError):
        GasMeter(limit=5).consume(0)


def test_error_messages_carry_location() -> None:
    assert str(ArityError("missing b", function="mod.f", lineno=3)) == "mod.f:3: missing b"
    assert str(ArityError("missing b")) == "missing b"
    cycle = RecursionCycleError(("a", "b", "a"), function="b")
    assert cycle.cycle == ("a", "b", "a")
    assert "a -> b -> a" in str(cycle)
    error = DeclarationParseError("bad", text="xx", position=1).for_function("mod.g")
    assert str(error) == "mod.g: bad (at offset 1 in 'xx')"


def test_declaration_index_defers_failures() -> None:
    parsed = parse_python_source(
        with_join_read(
            """
            @effects.declare("side_effects=(")
            def broken():
                ...

            @effects.declare(PAYLOAD)
            def dynamic():
                ...
            """
        ),
        path=Path("example.py"),
        config=AnalysisConfig(),
    )
    index = build_declaration_index(parsed.functions)
    assert len(index) == 3
    assert "example.join_read" in index
    assert index.get("example.join_read") is not None
    assert index.get("example.undeclared") is None
    with pytest.raises(DeclarationParseError) as excinfo:
        index.get("example.broken")
    assert excinfo.value.function == "example.broken"
    with pytest.raises(DeclarationParseError):
        index.get("example.dynamic")


def test_never_raises_never_thrown_with_context() -> None:
    with pytest.raises(NeverThrown) as excinfo:
        never("unreachable branch", function="mod.f", depth=2)
    assert excinfo.value.reason == "unreachable branch"
    assert excinfo.value.env == {"function": "mod.f", "depth": 2}
    assert str(excinfo.value) == "unreachable branch (depth=2, function='mod.f')"
    with pytest.raises(NeverThrown, match="marker reached"):
        never()
