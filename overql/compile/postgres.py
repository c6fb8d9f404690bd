"""PostgreSQL dialect compiler."""

from __future__ import annotations

from typing import ClassVar

from overql.compile.base import SQLCompiler


class PostgresCompiler(SQLCompiler):
    """Compiles statements to PostgreSQL.

    ``MEDIAN`` has no window form in PostgreSQL (``percentile_cont`` is an
    ordered-set aggregate and cannot take ``OVER``), so it is unavailable.
    """

    FUNCTION_NAMES: ClassVar[dict[str, str | None]] = {
        "STDDEV": "STDDEV_SAMP",
        "VARIANCE": "VAR_SAMP",
        "MEDIAN": None,
    }

    @property
    def dialect_name(self) -> str:
        return "postgres"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'
