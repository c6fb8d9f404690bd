"""overql schema layer: expressions, statements, clauses, dialects and contexts."""
from overql.schema.clause import BoundKind, Clause, Frame, FrameBound
from overql.schema.context import GroupedRelation, QueryContext
from overql.schema.dialect import DialectProfile, DialectProfileBuilder
from overql.schema.expressions import (
    BinaryOpExpr,
    CallExpr,
    ColumnExpr,
    DescExpr,
    Expr,
    LiteralExpr,
    OrderKey,
    to_expr,
)
from overql.schema.statement import Relation, SelectItem, Statement

__all__ = [
    "BinaryOpExpr",
    "BoundKind",
    "CallExpr",
    "Clause",
    "ColumnExpr",
    "DescExpr",
    "DialectProfile",
    "DialectProfileBuilder",
    "Expr",
    "Frame",
    "FrameBound",
    "GroupedRelation",
    "LiteralExpr",
    "OrderKey",
    "QueryContext",
    "Relation",
    "SelectItem",
    "Statement",
    "to_expr",
]
