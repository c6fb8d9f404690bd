"""SQLite dialect compiler."""
from __future__ import annotations

from typing import Any, ClassVar

from overql.compile.base import SQLCompiler


class SQLiteCompiler(SQLCompiler):
    """Compiles statements to SQLite (3.28+ for window frames).

    Note: SQLite has no ``BOOL_OR`` / ``BOOL_AND``; booleans are integers, so
    ``MAX`` / ``MIN`` give the same result.  There is no built-in standard
    deviation, variance or median.
    """

    FUNCTION_NAMES: ClassVar[dict[str, str | None]] = {
        "BOOL_OR": "MAX",
        "BOOL_AND": "MIN",
        "STDDEV": None,
        "VARIANCE": None,
        "MEDIAN": None,
    }

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    def render_literal(self, value: Any) -> str:
        if isinstance(value, bool):
            return "1" if value else "0"  # TRUE/FALSE keywords need SQLite 3.23+
        return super().render_literal(value)
