"""Filter-to-subquery rewriting.

SQL evaluates ``WHERE`` before window functions, so a window call in a
filter predicate cannot be evaluated in place.  ``QueryRewriter`` lifts every
window call of such a statement into an inner select as a generated column
and replaces the call with a reference to that column::

    SELECT *                                      SELECT *
    FROM batting                         ==>      FROM (
    WHERE min_rank(G) <= 2                          SELECT *, RANK() OVER (…) AS rank_1
                                                    FROM batting
                                                  ) AS tmp
                                                  WHERE rank_1 <= 2

Identical calls share one column.  Input statements are never mutated; the
outer statement is a ``model_copy`` of the input and the source relation is
reused by the inner select (after any rewrite of a subquery source).
"""
from __future__ import annotations

from collections.abc import Iterable

from overql.compile.clause_resolver import ClauseResolver
from overql.compile.context import CompilationContext
from overql.config import get_logger
from overql.errors import AmbiguousPartitionError
from overql.schema.clause import Clause
from overql.schema.expressions import (
    CallExpr,
    contains_call,
    iter_window_calls,
    replace_calls,
    unqualify_columns,
)
from overql.schema.statement import Relation, SelectItem, Statement

logger = get_logger()


class QueryRewriter:
    """Moves window calls out of filter predicates.

    Args:
        ctx: Compilation context (classifier, options, query context).
        resolver: Resolver used to check that all promoted calls share one
            partition.  Defaults to a fresh :class:`ClauseResolver`.
    """

    def __init__(self, ctx: CompilationContext, resolver: ClauseResolver | None = None) -> None:
        self._ctx = ctx
        self._resolver = resolver or ClauseResolver(ctx)

    def rewrite(self, stmt: Statement) -> Statement:
        """Return ``stmt`` rewritten, or ``stmt`` itself when no rewrite is needed.

        A user subquery in ``FROM`` is rewritten first.  A statement whose
        predicate has no window call, or one that already reads from a
        rewriter-built inner select, is otherwise returned unchanged.

        Column references qualified by the source relation are unqualified
        in the outer statement, which reads from the inner select instead.

        Raises:
            UnsupportedNestingError: A window call nested inside another.
            AmbiguousPartitionError: Promoted calls resolve to different
                partitions.
        """
        if stmt.is_rewritten:
            logger.debug("Statement already rewritten; skipping")
            return stmt
        stmt = self._rewrite_source(stmt)
        if stmt.predicate is None or not contains_call(stmt.predicate):
            return stmt

        intents = self._collect_calls(stmt)
        aliases = self._assign_aliases(intents, stmt.used_names() | _exposed_names(stmt.from_))
        self.check_single_partition(
            self._resolve_clause(call, intent) for call, intent in intents.items()
        )

        inner = Statement(
            select_list=tuple(
                SelectItem(alias=aliases[call], expr=call, promoted=True) for call in intents
            ),
            select_all=True,
            from_=stmt.from_,
        )
        qualifiers = _qualifiers(stmt.from_)
        outer = stmt.model_copy(
            update={
                "select_list": tuple(
                    item.model_copy(
                        update={
                            "expr": unqualify_columns(
                                replace_calls(item.expr, aliases), qualifiers
                            )
                        }
                    )
                    for item in stmt.select_list
                ),
                "from_": Relation(subquery=inner, alias=self._ctx.options.subquery_alias),
                "predicate": unqualify_columns(
                    replace_calls(stmt.predicate, aliases), qualifiers
                ),
            }
        )
        logger.debug(
            "Promoted %d window call(s) into subquery %r: %s",
            len(aliases),
            self._ctx.options.subquery_alias,
            ", ".join(f"{alias}={call.describe()}" for call, alias in aliases.items()),
        )
        return outer

    @staticmethod
    def check_single_partition(clauses: Iterable[Clause]) -> None:
        """Raise :class:`AmbiguousPartitionError` unless all clauses share a partition."""
        partitions: list[tuple[str, ...]] = []
        for clause in clauses:
            if clause.partition_by not in partitions:
                partitions.append(clause.partition_by)
        if len(partitions) > 1:
            raise AmbiguousPartitionError([list(p) for p in partitions])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _collect_calls(stmt: Statement) -> dict[CallExpr, bool]:
        """Return distinct window calls (select list first) → window intent."""
        intents: dict[CallExpr, bool] = {}
        for item in stmt.select_list:
            for call in iter_window_calls(item.expr):
                intents[call] = intents.get(call, False) or stmt.is_filter
        for call in iter_window_calls(stmt.predicate):  # type: ignore[arg-type]
            intents[call] = True
        return intents

    def _assign_aliases(self, calls: Iterable[CallExpr], taken: set[str]) -> dict[CallExpr, str]:
        options = self._ctx.options
        used = set(taken)
        counters: dict[str, int] = {}
        aliases: dict[CallExpr, str] = {}
        for call in calls:
            stem = self._ctx.classifier.classify(call.func).stem
            n = counters.get(stem, 0) + 1
            alias = options.make_alias(stem, n)
            while alias in used:
                n += 1
                alias = options.make_alias(stem, n)
            counters[stem] = n
            used.add(alias)
            aliases[call] = alias
        return aliases

    def _resolve_clause(self, call: CallExpr, window_intent: bool) -> Clause:
        spec = self._ctx.classifier.classify(call.func)
        return self._resolver.resolve(call, spec, window_intent=window_intent).clause

    def _rewrite_source(self, stmt: Statement) -> Statement:
        source = stmt.from_.subquery
        if source is None:
            return stmt
        rewritten = self.rewrite(source)
        if rewritten is source:
            return stmt
        return stmt.model_copy(
            update={"from_": stmt.from_.model_copy(update={"subquery": rewritten})}
        )


def _qualifiers(relation: Relation) -> set[str]:
    """Names that may qualify a column of ``relation``."""
    names: set[str] = set()
    if relation.alias:
        names.add(relation.alias)
    if relation.table:
        names.add(relation.table)
        names.add(relation.table.rsplit(".", 1)[-1])
    return names


def _exposed_names(relation: Relation) -> set[str]:
    """Select aliases a derived table adds to its output columns."""
    inner = relation.subquery
    if inner is None:
        return set()
    names = {item.alias for item in inner.select_list}
    if inner.select_all or not inner.select_list:
        names |= _exposed_names(inner.from_)
    return names
