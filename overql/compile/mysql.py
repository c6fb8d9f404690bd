"""MySQL dialect compiler."""

from __future__ import annotations

from typing import Any, ClassVar

from overql.compile.base import SQLCompiler


class MySQLCompiler(SQLCompiler):
    """Compiles statements to MySQL 8 (the first release with window functions).

    Note: MySQL has no ``BOOL_OR`` / ``BOOL_AND``; ``MAX`` / ``MIN`` over
    0/1 values give the same result.  There is no ``MEDIAN``.

    Identifiers are quoted with backticks (`` ` ``) rather than double-quotes,
    and backslashes in string literals are escaped because MySQL treats them
    as escape characters by default.
    """

    FUNCTION_NAMES: ClassVar[dict[str, str | None]] = {
        "BOOL_OR": "MAX",
        "BOOL_AND": "MIN",
        "STDDEV": "STDDEV_SAMP",
        "VARIANCE": "VAR_SAMP",
        "MEDIAN": None,
    }

    @property
    def dialect_name(self) -> str:
        return "mysql"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace("`", "``")
        return f"`{escaped}`"

    def render_literal(self, value: Any) -> str:
        if isinstance(value, str):
            escaped = value.replace("\\", "\\\\").replace("'", "''")
            return f"'{escaped}'"
        return super().render_literal(value)
