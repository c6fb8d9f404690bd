"""DuckDB dialect compiler."""
from __future__ import annotations

from typing import ClassVar

from overql.compile.base import SQLCompiler


class DuckDBCompiler(SQLCompiler):
    """Compiles statements to DuckDB.

    DuckDB supports every generic function in the classifier, including
    ``MEDIAN`` as a window aggregate.
    """

    FUNCTION_NAMES: ClassVar[dict[str, str | None]] = {
        "STDDEV": "STDDEV_SAMP",
        "VARIANCE": "VAR_SAMP",
    }

    @property
    def dialect_name(self) -> str:
        return "duckdb"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'
