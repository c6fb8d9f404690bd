"""SQL text emission for (possibly rewritten) statements.

The emitter makes no decisions of its own: window clauses come from the
resolver (through the expression builder) and subquery structure from the
rewriter.  Clauses are joined by newlines; a derived table is emitted as::

    FROM (
    <inner statement>
    ) AS "tmp"
"""
from __future__ import annotations

from overql.compile.context import CompilationContext
from overql.compile.expression_builder import ExpressionBuilder
from overql.errors import CompilationError
from overql.schema.expressions import contains_call
from overql.schema.statement import Relation, SelectItem, Statement


class SQLEmitter:
    """Renders a :class:`~overql.schema.statement.Statement` to SQL text.

    Args:
        ctx: Compilation context.
        expression_builder: Builder for select items and predicates.
    """

    def __init__(
        self,
        ctx: CompilationContext,
        expression_builder: ExpressionBuilder | None = None,
    ) -> None:
        self._ctx = ctx
        self._expr = expression_builder or ExpressionBuilder(ctx)

    def emit(self, stmt: Statement) -> str:
        """Render ``stmt``.

        Raises:
            CompilationError: If the predicate still contains a window call
                (the statement was not rewritten) or a relation is empty.
        """
        parts = [
            self._build_select(stmt),
            f"FROM {self._build_from(stmt.from_)}",
        ]
        if stmt.predicate is not None:
            if contains_call(stmt.predicate):
                raise CompilationError(
                    "Window function in WHERE clause; rewrite the statement first.",
                    code="UNREWRITTEN_FILTER",
                    details={"fragment": stmt.predicate.describe()},
                    clause="predicate",
                )
            parts.append(f"WHERE {self._expr.build(stmt.predicate, window_intent=True)}")
        return "\n".join(parts)

    # ------------------------------------------------------------------
    # Clauses
    # ------------------------------------------------------------------

    def _build_select(self, stmt: Statement) -> str:
        items: list[str] = []
        if stmt.select_all or not stmt.select_list:
            items.append("*")
        items.extend(self._build_item(item, stmt.is_filter) for item in stmt.select_list)
        return f"SELECT {', '.join(items)}"

    def _build_item(self, item: SelectItem, is_filter: bool) -> str:
        sql = self._expr.build(item.expr, window_intent=is_filter or item.promoted)
        return f"{sql} AS {self._ctx.compiler.quote_identifier(item.alias)}"

    def _build_from(self, relation: Relation) -> str:
        quote = self._ctx.compiler.quote_identifier
        if relation.subquery is not None:
            alias = relation.alias or self._ctx.options.subquery_alias
            return f"(\n{self.emit(relation.subquery)}\n) AS {quote(alias)}"
        if relation.table:
            sql = self._expr.build_identifier(relation.table)
            return f"{sql} AS {quote(relation.alias)}" if relation.alias else sql
        raise CompilationError("Relation has neither a table nor a subquery.", clause="from")
