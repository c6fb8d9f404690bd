"""Compiler abstractions: CompiledStatement and the SQLCompiler ABC.

The Template Method pattern is used:
- ``SQLCompiler`` defines how identifiers, literals, function names and frame
  bounds are rendered.
- ``PostgresCompiler``, ``SQLiteCompiler``, ``MySQLCompiler`` and
  ``DuckDBCompiler`` override the dialect-specific steps (quoting, function
  availability, literal spelling).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from overql.schema.clause import BoundKind, FrameBound
from overql.schema.expressions import CallExpr
from overql.schema.statement import Statement


@dataclass
class CompiledStatement:
    """The output of a successful compilation.

    Attributes:
        sql: The compiled SQL string.
        dialect: The target dialect name.
        statement: The (possibly rewritten) statement the SQL was emitted from.
        aliases: Generated column alias → the window call it computes.  Empty
            when no subquery was introduced.
    """

    sql: str
    dialect: str
    statement: Statement
    aliases: dict[str, CallExpr] = field(default_factory=dict)

    @property
    def rewritten(self) -> bool:
        """``True`` when a filter was moved into a subquery."""
        return self.statement.is_rewritten


class SQLCompiler(ABC):
    """Abstract base for dialect-specific SQL compilers.

    Subclasses implement the abstract methods and may list function
    translations in ``FUNCTION_NAMES``: a generic name mapped to ``None``
    is unavailable in the dialect.
    """

    #: Generic SQL function name → dialect spelling (``None`` = unsupported).
    FUNCTION_NAMES: ClassVar[dict[str, str | None]] = {}

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect name (e.g. ``'postgres'``)."""

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Return a properly-quoted SQL identifier.

        Args:
            name: Unquoted identifier (table, column or alias name).

        Returns:
            Quoted identifier.
        """

    def function_name(self, generic: str) -> str | None:
        """Translate a generic SQL function name to this dialect.

        Args:
            generic: Generic name from the classifier (e.g. ``'BOOL_OR'``).

        Returns:
            The dialect spelling, or ``None`` if the dialect lacks it.
        """
        return self.FUNCTION_NAMES.get(generic, generic)

    def render_literal(self, value: Any) -> str:
        """Render a literal value inline."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, (int, float)):
            return repr(value)
        escaped = str(value).replace("'", "''")
        return f"'{escaped}'"

    def render_frame_bound(self, bound: FrameBound) -> str:
        """Render one side of a ``ROWS BETWEEN`` frame."""
        if bound.kind is BoundKind.UNBOUNDED_PRECEDING:
            return "UNBOUNDED PRECEDING"
        if bound.kind is BoundKind.UNBOUNDED_FOLLOWING:
            return "UNBOUNDED FOLLOWING"
        if bound.kind is BoundKind.CURRENT_ROW:
            return "CURRENT ROW"
        if bound.kind is BoundKind.PRECEDING:
            return f"{bound.offset} PRECEDING"
        return f"{bound.offset} FOLLOWING"
