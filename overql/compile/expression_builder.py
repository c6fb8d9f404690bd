"""Expression SQL compiler.

``ExpressionBuilder`` and :class:`~overql.compile.clause_resolver.ClauseResolver`
are mutually dependent: window calls inside expressions are resolved by the
resolver, and the resolver renders call arguments and ordering keys through
the builder.  :class:`~overql.compile.builder.StatementCompiler` wires the
pair once per compilation run.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from overql.compile.context import CompilationContext
from overql.errors import CompilationError
from overql.schema.expressions import (
    BinaryOpExpr,
    CallExpr,
    ColumnExpr,
    DescExpr,
    Expr,
    LiteralExpr,
)

if TYPE_CHECKING:
    from overql.compile.clause_resolver import ClauseResolver, ResolvedWindow


class ExpressionBuilder:
    """Compiles typed :class:`~overql.schema.expressions.Expr` nodes to SQL.

    Literals are rendered inline by the dialect compiler.

    Args:
        ctx: Compilation context.
        resolver: ClauseResolver for window calls.  Defaults to one bound
            to this builder.
    """

    #: Surface operator → SQL operator.
    OPERATORS: ClassVar[dict[str, str]] = {
        "==": "=",
        "!=": "!=",
        "<": "<",
        "<=": "<=",
        ">": ">",
        ">=": ">=",
        "+": "+",
        "-": "-",
        "*": "*",
        "/": "/",
        "&": "AND",
        "|": "OR",
    }

    def __init__(
        self,
        ctx: CompilationContext,
        resolver: ClauseResolver | None = None,
    ) -> None:
        self._ctx = ctx
        if resolver is None:
            from overql.compile.clause_resolver import ClauseResolver

            resolver = ClauseResolver(ctx, self.build)
        self._resolver = resolver

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, expr: Expr, *, window_intent: bool = False) -> str:
        """Compile an expression to a SQL fragment.

        Args:
            expr: The expression.
            window_intent: Forwarded to the resolver for every window call
                in ``expr``.

        Raises:
            CompilationError: On a ``desc()`` outside an ordering position,
                or an unknown node type.
        """
        if isinstance(expr, ColumnExpr):
            return self._build_col_ref(expr.col)
        if isinstance(expr, LiteralExpr):
            return self._ctx.compiler.render_literal(expr.value)
        if isinstance(expr, CallExpr):
            return self.build_window(expr, window_intent=window_intent).sql
        if isinstance(expr, BinaryOpExpr):
            return self._build_binary(expr, window_intent)
        if isinstance(expr, DescExpr):
            raise CompilationError(
                "desc() is only valid as an ordering key.",
                code="MISPLACED_DESC",
                details={"fragment": expr.describe()},
                clause="expression",
            )
        raise CompilationError(
            f"Unknown expression type: {type(expr).__name__}", clause="expression"
        )

    def build_window(self, call: CallExpr, *, window_intent: bool = False) -> ResolvedWindow:
        """Classify and resolve one window call."""
        spec = self._ctx.classifier.classify(call.func)
        return self._resolver.resolve(call, spec, window_intent=window_intent)

    def build_identifier(self, name: str) -> str:
        """Quote a possibly qualified (``schema.table``) identifier."""
        return self._build_col_ref(name)

    # ------------------------------------------------------------------
    # Sub-compilers
    # ------------------------------------------------------------------

    def _build_col_ref(self, col: str) -> str:
        quote = self._ctx.compiler.quote_identifier
        if "." in col:
            table, column = col.split(".", 1)
            return f"{quote(table)}.{quote(column)}"
        return quote(col)

    def _build_binary(self, expr: BinaryOpExpr, window_intent: bool) -> str:
        left = self._build_operand(expr.left, window_intent)
        right = self._build_operand(expr.right, window_intent)
        return f"{left} {self.OPERATORS[expr.op]} {right}"

    def _build_operand(self, expr: Expr, window_intent: bool) -> str:
        sql = self.build(expr, window_intent=window_intent)
        if isinstance(expr, BinaryOpExpr):
            return f"({sql})"
        return sql
