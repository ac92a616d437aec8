from __future__ import annotations

import sys
import textwrap
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT / "src", ROOT):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from tests.sources import with_join_read


@pytest.fixture
def write_module(tmp_path: Path):
    def _write(name: str, body: str, *, declared: bool = True) -> Path:
        text = textwrap.dedent(body).lstrip()
        if declared:
            text = with_join_read(text)
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    return _write
