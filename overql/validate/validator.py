"""Statement validation.

``StatementValidator`` is the public entry point.  It runs before the
rewriter so that structural mistakes surface as precise errors instead of
failing half-way through clause resolution.

Checks (in order)
-----------------
1. Relation       – exactly one of table / subquery; subqueries recursively.
2. Aliases        – select-list aliases are unique.
3. ``desc()``     – only as a ranking function's first argument or an
                    ``order_by`` entry.
4. Calls          – every call is classifiable, within its arity, with
                    integer-literal arguments where required, and not
                    nested inside another call.

``validate_rewritten`` checks the rewriter's output.
"""
from __future__ import annotations

from overql.classify.registry import WindowCategory
from overql.compile.context import CompilationContext
from overql.errors import CompilationError, InvalidArgumentsError
from overql.schema.expressions import (
    BinaryOpExpr,
    CallExpr,
    DescExpr,
    Expr,
    LiteralExpr,
    contains_call,
    iter_window_calls,
    referenced_columns,
)
from overql.schema.statement import Relation, Statement


class StatementValidator:
    """Validates a Statement against the classifier.

    Raises the first violation found.

    Args:
        ctx: Compilation context (only the classifier is consulted).
    """

    def __init__(self, ctx: CompilationContext) -> None:
        self._ctx = ctx

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(self, stmt: Statement) -> None:
        """Validate ``stmt`` and any subquery it reads from.

        Raises:
            CompilationError: (or subclass) on the first violation.
        """
        self._validate_relation(stmt.from_)
        self._validate_aliases(stmt)
        for item in stmt.select_list:
            self._validate_expr(item.expr, clause="select_list")
        if stmt.predicate is not None:
            self._validate_expr(stmt.predicate, clause="predicate")

    def validate_rewritten(self, stmt: Statement) -> None:
        """Check the outer statement of a rewrite.

        Raises:
            CompilationError: If a window call is still computed in the outer
                statement, references a column through a relation other than
                the inner select, or names a column the inner select does not
                produce.
        """
        for expr in stmt.expressions():
            if contains_call(expr):
                raise CompilationError(
                    f"Outer statement still computes a window call: {expr.describe()}.",
                    code="REWRITE_INVARIANT",
                    details={"fragment": expr.describe()},
                )

        inner = stmt.from_.subquery
        if inner is None:
            return
        explicit = not inner.select_all and bool(inner.select_list)
        produced = {item.alias for item in inner.select_list}
        for expr in stmt.expressions():
            for name in referenced_columns(expr):
                qualifier, _, column = name.rpartition(".")
                if qualifier and qualifier != stmt.from_.alias:
                    raise CompilationError(
                        f"Column '{name}' is qualified by '{qualifier}', which is "
                        "not visible outside the inner select.",
                        code="REWRITE_INVARIANT",
                        details={"column": name, "relation": stmt.from_.alias},
                    )
                if explicit and column not in produced:
                    raise CompilationError(
                        f"Column '{name}' is not produced by the inner select.",
                        code="REWRITE_INVARIANT",
                        details={"column": name, "produced": sorted(produced)},
                    )

    # ------------------------------------------------------------------
    # Statement-level checks
    # ------------------------------------------------------------------

    def _validate_relation(self, relation: Relation) -> None:
        if (relation.table is None) == (relation.subquery is None):
            raise CompilationError(
                "Relation must specify exactly one of 'table' or 'subquery'.",
                code="INVALID_RELATION",
                clause="from",
            )
        if relation.table is not None and not relation.table.strip():
            raise CompilationError(
                "Relation table name must not be empty.",
                code="INVALID_RELATION",
                clause="from",
            )
        if relation.subquery is not None:
            self.validate(relation.subquery)

    @staticmethod
    def _validate_aliases(stmt: Statement) -> None:
        seen: set[str] = set()
        for item in stmt.select_list:
            if item.alias in seen:
                raise CompilationError(
                    f"Duplicate select alias '{item.alias}'.",
                    code="DUPLICATE_ALIAS",
                    details={"alias": item.alias},
                    clause="select_list",
                )
            seen.add(item.alias)

    # ------------------------------------------------------------------
    # Expression checks
    # ------------------------------------------------------------------

    def _validate_expr(self, expr: Expr, clause: str) -> None:
        self._check_desc(expr, clause)
        for call in iter_window_calls(expr):
            self._validate_call(call)

    def _validate_call(self, call: CallExpr) -> None:
        spec = self._ctx.classifier.classify(call.func)
        count = len(call.args)
        if not spec.min_args <= count <= spec.max_args:
            expected = (
                str(spec.min_args)
                if spec.min_args == spec.max_args
                else f"{spec.min_args} to {spec.max_args}"
            )
            raise InvalidArgumentsError(
                call.func,
                f"'{call.func}' takes {expected} argument(s), got {count}.",
                fragment=call.describe(),
            )

        for position, minimum in spec.integer_args:
            index = position if position >= 0 else count + position
            if not 0 <= index < count:
                continue
            arg = call.args[index]
            if not _is_integer_literal(arg, minimum):
                raise InvalidArgumentsError(
                    call.func,
                    f"Argument {index} of '{call.func}' must be an integer literal "
                    f">= {minimum}, got {arg.describe()}.",
                    position=index,
                    fragment=call.describe(),
                )

    def _check_desc(self, expr: Expr, clause: str) -> None:
        if isinstance(expr, DescExpr):
            raise CompilationError(
                "desc() is only valid as an ordering key.",
                code="MISPLACED_DESC",
                details={"fragment": expr.describe()},
                clause=clause,
            )
        if isinstance(expr, BinaryOpExpr):
            self._check_desc(expr.left, clause)
            self._check_desc(expr.right, clause)
        elif isinstance(expr, CallExpr):
            spec = self._ctx.classifier.classify(expr.func)
            for position, arg in enumerate(expr.args):
                if position == 0 and spec.category is WindowCategory.RANKING:
                    arg = _strip_desc(arg)
                self._check_desc(arg, clause)
            for key in expr.order_by or ():
                self._check_desc(_strip_desc(key), clause)


def _strip_desc(expr: Expr) -> Expr:
    while isinstance(expr, DescExpr):
        expr = expr.desc
    return expr


def _is_integer_literal(expr: Expr, minimum: int) -> bool:
    if not isinstance(expr, LiteralExpr):
        return False
    value = expr.value
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum
