"""Test fixtures: sample batting DDL and rows."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

_FIXTURES_DIR = Path(__file__).parent

#: (playerID, yearID, teamID, G, AB, H)
BATTING_ROWS: list[tuple[str, int, str, int, int, int]] = [
    ("aaronha01", 1954, "ML1", 122, 468, 131),
    ("aaronha01", 1955, "ML1", 153, 602, 189),
    ("aaronha01", 1956, "ML1", 153, 609, 200),
    ("aaronha01", 1957, "ML1", 151, 615, 198),
    ("ruthba01", 1914, "BOS", 5, 10, 2),
    ("ruthba01", 1915, "BOS", 42, 92, 29),
    ("ruthba01", 1916, "BOS", 67, 136, 37),
    ("ruthba01", 1920, "NYA", 142, 458, 172),
    ("cobbty01", 1905, "DET", 41, 150, 36),
    ("cobbty01", 1906, "DET", 98, 358, 113),
    ("cobbty01", 1907, "DET", 150, 605, 212),
]


def load_ddl(target: Literal["sqlite"] = "sqlite") -> str:
    """Return the sample DDL SQL string for the given backend.

    Args:
        target: ``'sqlite'`` (the only backend exercised in integration tests).

    Returns:
        DDL string ready to execute against the target backend.
    """
    filename = f"ddl_{target}.sql"
    return (_FIXTURES_DIR / filename).read_text()
