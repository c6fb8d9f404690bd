"""Window clause resolution.

``ClauseResolver`` turns one classified window call into its
``PARTITION BY … ORDER BY … frame`` triple and the SQL text for it.

Ordering lookup (first match wins)
----------------------------------
1. ``FIRST_ARGUMENT`` functions whose first argument is not a literal: that
   argument is the ordering key (``desc()`` makes it descending).
2. The call's explicit ``order_by`` override.
3. The query context's default ordering.
4. ``CONTEXT_ONLY`` ranking functions: their first non-literal argument.

If nothing matched and the function requires an ordering, resolution fails
with :class:`~overql.errors.MissingOrderError`.

Frames by category
------------------
==========================  =============================================
recycled aggregate          UNBOUNDED PRECEDING .. UNBOUNDED FOLLOWING
cumulative aggregate        UNBOUNDED PRECEDING .. CURRENT ROW
rolling aggregate           k PRECEDING .. k FOLLOWING
ranking / offset            no frame
==========================  =============================================

Partitioning always comes from the query context; function-level partition
overrides do not exist.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from overql.classify.registry import OrderSource, WindowCategory, WindowFunctionSpec
from overql.compile.context import CompilationContext
from overql.errors import (
    CompilationError,
    MissingOrderError,
    NotAWindowContextError,
    UnknownFunctionError,
    UnsupportedFrameError,
)
from overql.schema.clause import CUMULATIVE_FRAME, RECYCLED_FRAME, Clause, Frame, FrameBound
from overql.schema.context import QueryContext
from overql.schema.dialect import DialectProfile
from overql.schema.expressions import (
    CallExpr,
    ColumnExpr,
    Expr,
    LiteralExpr,
    OrderKey,
    as_order_key,
)


@dataclass(frozen=True)
class ResolvedWindow:
    """A resolved window call.

    Attributes:
        spec: The classifier spec of the call.
        category: Effective category (a plain aggregate used in a window
            context resolves as ``RECYCLED_AGGREGATE``).
        clause: Structured partition / order / frame triple.
        function_sql: The function part, e.g. ``RANK()``.
        over_sql: The text inside ``OVER (…)``.
    """

    spec: WindowFunctionSpec
    category: WindowCategory
    clause: Clause
    function_sql: str
    over_sql: str

    @property
    def sql(self) -> str:
        return f"{self.function_sql} OVER ({self.over_sql})"


class ClauseResolver:
    """Resolves window calls against a query context.

    Args:
        ctx: Compilation context (compiler, query context, classifier).
        render_expr: Renders argument and ordering expressions.  Defaults to
            an :class:`~overql.compile.expression_builder.ExpressionBuilder`
            bound to this resolver.
    """

    def __init__(
        self,
        ctx: CompilationContext,
        render_expr: Callable[[Expr], str] | None = None,
    ) -> None:
        self._ctx = ctx
        if render_expr is None:
            from overql.compile.expression_builder import ExpressionBuilder

            render_expr = ExpressionBuilder(ctx, self).build
        self._render = render_expr

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(
        self,
        call: CallExpr,
        spec: WindowFunctionSpec,
        ctx: QueryContext | None = None,
        *,
        window_intent: bool = False,
    ) -> ResolvedWindow:
        """Resolve ``call`` into a clause and its SQL.

        Args:
            call: The window call.
            spec: The call's classifier spec.
            ctx: Query context; defaults to the compilation context's.
            window_intent: ``True`` when the call sits in a position that is
                a window by construction (filter predicate, filter statement,
                promoted column).  Lets a plain aggregate recycle over the
                whole table when there is no partition.

        Returns:
            The :class:`ResolvedWindow`.

        Raises:
            MissingOrderError: Ordering required but not available.
            NotAWindowContextError: Plain aggregate outside any window context.
            UnsupportedFrameError: Frame not representable in the dialect.
            UnknownFunctionError: The dialect lacks the SQL function.
        """
        query = ctx or self._ctx.query
        category = self._effective_category(call, spec, query, window_intent)
        first_is_key = self._first_argument_is_order_key(call, spec)

        order = self._resolve_order(call, spec, query, first_is_key)
        if (
            category is WindowCategory.RECYCLED_AGGREGATE
            and not query.dialect.frames
            and not call.order_by
        ):
            # Without a frame clause an inherited ORDER BY makes the aggregate running.
            order = ()
        if not order and spec.requires_order:
            raise MissingOrderError(call.func, fragment=call.describe())

        frame = self._resolve_frame(call, spec, category, query.dialect, bool(order))
        clause = Clause(
            partition_by=query.partition_columns,
            order_by=order,
            frame=frame,
        )
        return ResolvedWindow(
            spec=spec,
            category=category,
            clause=clause,
            function_sql=self._build_function(call, spec, first_is_key),
            over_sql=self.render_clause(clause, query.dialect),
        )

    def render_clause(self, clause: Clause, dialect: DialectProfile) -> str:
        """Render the text inside ``OVER (…)`` for ``clause``."""
        parts: list[str] = []
        if clause.partition_by:
            cols = ", ".join(self._render(ColumnExpr(col=c)) for c in clause.partition_by)
            parts.append(f"PARTITION BY {cols}")
        if clause.order_by:
            parts.append(f"ORDER BY {', '.join(self._render_key(k) for k in clause.order_by)}")
        if clause.frame is not None and dialect.frames:
            compiler = self._ctx.compiler
            start = compiler.render_frame_bound(clause.frame.start)
            end = compiler.render_frame_bound(clause.frame.end)
            parts.append(f"ROWS BETWEEN {start} AND {end}")
        return " ".join(parts)

    # ------------------------------------------------------------------
    # Category
    # ------------------------------------------------------------------

    @staticmethod
    def _effective_category(
        call: CallExpr,
        spec: WindowFunctionSpec,
        query: QueryContext,
        window_intent: bool,
    ) -> WindowCategory:
        if spec.category is not WindowCategory.PLAIN_AGGREGATE:
            return spec.category
        if window_intent or query.partition_columns or call.order_by:
            return WindowCategory.RECYCLED_AGGREGATE
        raise NotAWindowContextError(call.func, fragment=call.describe())

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    @staticmethod
    def _first_argument_is_order_key(call: CallExpr, spec: WindowFunctionSpec) -> bool:
        return (
            spec.default_order_source is OrderSource.FIRST_ARGUMENT
            and bool(call.args)
            and not isinstance(call.args[0], LiteralExpr)
        )

    @staticmethod
    def _resolve_order(
        call: CallExpr,
        spec: WindowFunctionSpec,
        query: QueryContext,
        first_is_key: bool,
    ) -> tuple[OrderKey, ...]:
        if first_is_key:
            return (as_order_key(call.args[0]),)
        if call.order_by:
            return tuple(as_order_key(e) for e in call.order_by)
        if query.default_order:
            return query.default_order
        if (
            spec.category is WindowCategory.RANKING
            and spec.default_order_source is OrderSource.CONTEXT_ONLY
        ):
            for arg in call.args:
                if not isinstance(arg, LiteralExpr):
                    return (as_order_key(arg),)
        return ()

    def _render_key(self, key: OrderKey) -> str:
        sql = self._render(key.expr)
        return f"{sql} DESC" if key.direction == "DESC" else sql

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------

    def _resolve_frame(
        self,
        call: CallExpr,
        spec: WindowFunctionSpec,
        category: WindowCategory,
        dialect: DialectProfile,
        ordered: bool,
    ) -> Frame | None:
        if category is WindowCategory.RANKING or category is WindowCategory.OFFSET:
            return None
        if category is WindowCategory.CUMULATIVE_AGGREGATE:
            frame = CUMULATIVE_FRAME
        elif category is WindowCategory.RECYCLED_AGGREGATE:
            frame = RECYCLED_FRAME
        elif category is WindowCategory.ROLLING_AGGREGATE:
            frame = self._rolling_frame(call, spec, dialect)
        else:
            raise CompilationError(
                f"Window category '{category.value}' has no frame rule.",
                details={"function": call.func, "category": category.value},
            )

        if not dialect.frames:
            # A recycled frame without ORDER BY already spans the partition.
            if category is WindowCategory.RECYCLED_AGGREGATE and not ordered:
                return frame
            raise UnsupportedFrameError(
                call.func, f"dialect '{dialect.target}' profile has frame clauses disabled."
            )
        return frame

    @staticmethod
    def _rolling_frame(
        call: CallExpr,
        spec: WindowFunctionSpec,
        dialect: DialectProfile,
    ) -> Frame:
        preceding, following = spec.frame_preceding, spec.frame_following
        if preceding is None or following is None:
            raise UnsupportedFrameError(call.func, "rolling aggregate declares no width.")
        if preceding != following:
            raise UnsupportedFrameError(
                call.func,
                f"asymmetric width ({preceding} preceding, {following} following).",
                preceding,
                following,
            )
        if preceding < 0:
            raise UnsupportedFrameError(
                call.func, f"negative width {preceding}.", preceding, following
            )
        limit = dialect.max_frame_offset
        if limit is not None and preceding > limit:
            raise UnsupportedFrameError(
                call.func,
                f"width {preceding} exceeds the '{dialect.target}' profile limit of {limit}.",
                preceding,
                following,
            )
        return Frame(start=FrameBound.preceding(preceding), end=FrameBound.following(following))

    # ------------------------------------------------------------------
    # Function call text
    # ------------------------------------------------------------------

    def _build_function(
        self,
        call: CallExpr,
        spec: WindowFunctionSpec,
        first_is_key: bool,
    ) -> str:
        compiler = self._ctx.compiler
        name = compiler.function_name(spec.sql_name)
        if name is None:
            raise UnknownFunctionError(call.func, dialect=compiler.dialect_name)

        args: tuple[Expr, ...] = call.args
        if spec.category is WindowCategory.RANKING:
            # SQL ranking functions take no value argument; only NTILE's bucket count.
            if spec.default_order_source is OrderSource.CONTEXT_ONLY:
                args = ()
            elif first_is_key:
                args = call.args[1:]

        if not args and spec.star_when_empty:
            return f"{name}(*)"
        return f"{name}({', '.join(self._render(a) for a in args)})"
