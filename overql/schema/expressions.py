"""Typed expression models for mutate / filter expressions.

An expression is a tree of five node types, parsed from JSON through a
Pydantic discriminated union keyed on the single identifying key::

    {"col": "G"}                                   -> ColumnExpr
    {"value": 1}                                   -> LiteralExpr
    {"func": "lag", "args": [...], "order_by": [...]} -> CallExpr
    {"op": "==", "left": {...}, "right": {...}}    -> BinaryOpExpr
    {"desc": {"col": "G"}}                         -> DescExpr

All models are frozen, so identical sub-trees compare and hash equal.  The
query rewriter relies on this to compute a window call once when it appears
in several places of a statement.

Usage::

    from overql.schema.expressions import CallExpr, to_expr

    expr = to_expr({"func": "min_rank", "args": [{"desc": {"col": "G"}}]})
    assert isinstance(expr, CallExpr)
    assert expr.describe() == "min_rank(desc(G))"
"""

from __future__ import annotations

from collections.abc import Collection, Iterator, Mapping
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Tag, TypeAdapter

from overql.errors import UnsupportedNestingError

_FROZEN = ConfigDict(extra="forbid", frozen=True)

#: Binary operators understood by the compiler (surface spelling).
BinaryOperator = Literal["==", "!=", "<", "<=", ">", ">=", "+", "-", "*", "/", "&", "|"]

#: Sort direction of an ordering key.
Direction = Literal["ASC", "DESC"]


# ---------------------------------------------------------------------------
# Concrete expression types
# ---------------------------------------------------------------------------


class ColumnExpr(BaseModel):
    """A column reference: ``{"col": "G"}`` or ``{"col": "batting.G"}``."""

    model_config = _FROZEN

    col: str

    def describe(self) -> str:
        return self.col


class LiteralExpr(BaseModel):
    """A literal value: ``{"value": 1}`` / ``{"value": "text"}`` / ``{"value": null}``."""

    model_config = _FROZEN

    value: bool | int | float | str | None

    def describe(self) -> str:
        if self.value is None:
            return "NULL"
        if isinstance(self.value, bool):
            return "TRUE" if self.value else "FALSE"
        if isinstance(self.value, str):
            return repr(self.value)
        return str(self.value)


class CallExpr(BaseModel):
    """A window function call.

    ``order_by`` is the explicit ordering override attached to the call by
    the parser (the equivalent of wrapping the call in ``order_by(...)``).
    ``None`` means no override; ordering then comes from the first argument
    or the query context.
    """

    model_config = _FROZEN

    func: str
    args: tuple[Expr, ...] = ()
    order_by: tuple[Expr, ...] | None = None

    def describe(self) -> str:
        text = f"{self.func}({', '.join(a.describe() for a in self.args)})"
        if self.order_by:
            keys = ", ".join(k.describe() for k in self.order_by)
            text = f"{text} [order_by: {keys}]"
        return text


class BinaryOpExpr(BaseModel):
    """A binary operation: ``{"op": "<=", "left": {...}, "right": {...}}``."""

    model_config = _FROZEN

    op: BinaryOperator
    left: Expr
    right: Expr

    def describe(self) -> str:
        return f"{_describe_operand(self.left)} {self.op} {_describe_operand(self.right)}"


class DescExpr(BaseModel):
    """Descending intent for an ordering key: ``{"desc": {"col": "G"}}``."""

    model_config = _FROZEN

    desc: Expr

    def describe(self) -> str:
        return f"desc({self.desc.describe()})"


def _describe_operand(expr: Expr) -> str:
    if isinstance(expr, BinaryOpExpr):
        return f"({expr.describe()})"
    return expr.describe()


# ---------------------------------------------------------------------------
# Discriminated union
# ---------------------------------------------------------------------------


def _expr_discriminator(v: Any) -> str | None:
    """Return the tag for the Pydantic discriminated union."""
    if isinstance(v, dict):
        for key in ("col", "value", "func", "op", "desc"):
            if key in v:
                return key
    if isinstance(v, ColumnExpr):
        return "col"
    if isinstance(v, LiteralExpr):
        return "value"
    if isinstance(v, CallExpr):
        return "func"
    if isinstance(v, BinaryOpExpr):
        return "op"
    if isinstance(v, DescExpr):
        return "desc"
    return None


Expr = Annotated[
    Annotated[ColumnExpr, Tag("col")]
    | Annotated[LiteralExpr, Tag("value")]
    | Annotated[CallExpr, Tag("func")]
    | Annotated[BinaryOpExpr, Tag("op")]
    | Annotated[DescExpr, Tag("desc")],
    Discriminator(_expr_discriminator),
]


class OrderKey(BaseModel):
    """A structured ordering key: an expression plus a direction."""

    model_config = _FROZEN

    expr: Expr
    direction: Direction = "ASC"

    def describe(self) -> str:
        text = self.expr.describe()
        return f"desc({text})" if self.direction == "DESC" else text


# Resolve forward references in recursive types.
CallExpr.model_rebuild()
BinaryOpExpr.model_rebuild()
DescExpr.model_rebuild()
OrderKey.model_rebuild()

#: Parse a raw dict into a typed Expr at any call site.
EXPR_ADAPTER: TypeAdapter[Expr] = TypeAdapter(Expr)

_EXPR_TYPES = (ColumnExpr, LiteralExpr, CallExpr, BinaryOpExpr, DescExpr)


def to_expr(v: dict | Expr) -> Expr:
    """Convert a raw expression dict to a typed ``Expr``, or return it as-is."""
    if isinstance(v, _EXPR_TYPES):
        return v
    return EXPR_ADAPTER.validate_python(v)


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def as_order_key(expr: Expr) -> OrderKey:
    """Turn an ordering expression into an :class:`OrderKey`.

    ``desc(x)`` becomes ``OrderKey(x, "DESC")``; ``desc(desc(x))`` flips back
    to ascending.
    """
    direction: Direction = "ASC"
    while isinstance(expr, DescExpr):
        direction = "DESC" if direction == "ASC" else "ASC"
        expr = expr.desc
    return OrderKey(expr=expr, direction=direction)


def iter_window_calls(expr: Expr) -> Iterator[CallExpr]:
    """Yield the outermost window calls of ``expr`` in left-to-right order.

    Raises:
        UnsupportedNestingError: If a call appears inside another call's
            arguments or ordering override.
    """
    if isinstance(expr, CallExpr):
        _check_not_nested(expr)
        yield expr
    elif isinstance(expr, BinaryOpExpr):
        yield from iter_window_calls(expr.left)
        yield from iter_window_calls(expr.right)
    elif isinstance(expr, DescExpr):
        yield from iter_window_calls(expr.desc)


def contains_call(expr: Expr) -> bool:
    """Return ``True`` when ``expr`` references at least one window call."""
    return _first_call(expr) is not None


def replace_calls(expr: Expr, aliases: Mapping[CallExpr, str]) -> Expr:
    """Return ``expr`` with every call found in ``aliases`` replaced by its alias column."""
    if isinstance(expr, CallExpr):
        alias = aliases.get(expr)
        return ColumnExpr(col=alias) if alias is not None else expr
    if isinstance(expr, BinaryOpExpr):
        return expr.model_copy(
            update={
                "left": replace_calls(expr.left, aliases),
                "right": replace_calls(expr.right, aliases),
            }
        )
    if isinstance(expr, DescExpr):
        return expr.model_copy(update={"desc": replace_calls(expr.desc, aliases)})
    return expr


def unqualify_columns(expr: Expr, qualifiers: Collection[str]) -> Expr:
    """Return ``expr`` with ``q.col`` references reduced to ``col`` for every ``q`` in ``qualifiers``.

    Calls are left untouched; their arguments still read from the original
    relation.
    """
    if isinstance(expr, ColumnExpr):
        qualifier, _, column = expr.col.rpartition(".")
        if qualifier and qualifier in qualifiers:
            return ColumnExpr(col=column)
        return expr
    if isinstance(expr, BinaryOpExpr):
        return expr.model_copy(
            update={
                "left": unqualify_columns(expr.left, qualifiers),
                "right": unqualify_columns(expr.right, qualifiers),
            }
        )
    if isinstance(expr, DescExpr):
        return expr.model_copy(update={"desc": unqualify_columns(expr.desc, qualifiers)})
    return expr


def referenced_columns(expr: Expr) -> list[str]:
    """Collect every column name referenced in ``expr`` in encounter order."""
    refs: list[str] = []
    _collect_columns(expr, refs)
    return refs


def _collect_columns(expr: Expr, refs: list[str]) -> None:
    if isinstance(expr, ColumnExpr):
        refs.append(expr.col)
    elif isinstance(expr, CallExpr):
        for arg in expr.args:
            _collect_columns(arg, refs)
        for key in expr.order_by or ():
            _collect_columns(key, refs)
    elif isinstance(expr, BinaryOpExpr):
        _collect_columns(expr.left, refs)
        _collect_columns(expr.right, refs)
    elif isinstance(expr, DescExpr):
        _collect_columns(expr.desc, refs)


def _first_call(expr: Expr) -> CallExpr | None:
    if isinstance(expr, CallExpr):
        return expr
    if isinstance(expr, BinaryOpExpr):
        return _first_call(expr.left) or _first_call(expr.right)
    if isinstance(expr, DescExpr):
        return _first_call(expr.desc)
    return None


def _check_not_nested(call: CallExpr) -> None:
    for position, arg in enumerate(call.args):
        nested = _first_call(arg)
        if nested is not None:
            raise UnsupportedNestingError(
                call.func, nested.func, position=position, fragment=call.describe()
            )
    for key in call.order_by or ():
        nested = _first_call(key)
        if nested is not None:
            raise UnsupportedNestingError(call.func, nested.func, fragment=call.describe())
