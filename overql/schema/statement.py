"""Pydantic models for a mutate / filter Statement.

A statement is parsed from JSON of this shape::

    {
        "select_list": [{"alias": "r", "expr": {"func": "min_rank", "args": [{"col": "G"}]}}],
        "select_all": true,
        "from": "batting",
        "predicate": {"op": "<=", "left": {"func": "min_rank", "args": [{"col": "G"}]},
                      "right": {"value": 2}},
        "is_filter": true
    }

``from`` may be a table name, ``{"table": ..., "alias": ...}`` or
``{"subquery": {...statement...}, "alias": ...}``.

A statement produced by the query rewriter reads from an inner statement
whose window columns are marked ``promoted``; that marker is what makes
rewriting idempotent.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from overql.schema.expressions import CallExpr, Expr, referenced_columns


class SelectItem(BaseModel):
    """A single aliased item in the select list.

    Attributes:
        alias: Output column name.
        expr: The expression computing the column.
        promoted: ``True`` for window columns the rewriter moved into an
            inner select.  Never set by hand.
    """

    model_config = ConfigDict(extra="forbid")

    alias: str
    expr: Expr
    promoted: bool = False


class Relation(BaseModel):
    """The FROM clause: a single table or an inline derived table.

    Attributes:
        table: Table name (mutually exclusive with ``subquery``).
        subquery: Inline derived table.
        alias: Optional relation alias.
    """

    model_config = ConfigDict(extra="forbid")

    table: str | None = None
    subquery: Statement | None = None
    alias: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_table_name(cls, data: Any) -> Any:
        """Accept a bare string as shorthand for ``{"table": name}``."""
        if isinstance(data, str):
            return {"table": data}
        return data


class Statement(BaseModel):
    """A single mutate or filter statement.

    Attributes:
        select_list: Aliased output expressions.
        select_all: Emit ``*`` ahead of ``select_list`` (a mutate keeps every
            source column).  An empty ``select_list`` always emits ``*``.
        from_: Source relation (JSON key ``"from"``).
        predicate: Optional filter predicate.
        is_filter: ``True`` when the statement comes from a filter operation;
            plain aggregates are then broadcast over their partition.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    select_list: tuple[SelectItem, ...] = ()
    select_all: bool = False
    from_: Relation = Field(alias="from")
    predicate: Expr | None = None
    is_filter: bool = False

    # ------------------------------------------------------------------
    # Domain methods
    # ------------------------------------------------------------------

    @property
    def is_rewritten(self) -> bool:
        """``True`` when this statement reads from a rewriter-built inner select."""
        inner = self.from_.subquery
        return inner is not None and any(item.promoted for item in inner.select_list)

    def promoted_columns(self) -> dict[str, CallExpr]:
        """Map generated alias → window call for the inner select of a rewritten statement."""
        if not self.is_rewritten:
            return {}
        return {
            item.alias: item.expr
            for item in self.from_.subquery.select_list  # type: ignore[union-attr]
            if item.promoted and isinstance(item.expr, CallExpr)
        }

    def expressions(self) -> list[Expr]:
        """Return select-list expressions followed by the predicate, if any."""
        exprs: list[Expr] = [item.expr for item in self.select_list]
        if self.predicate is not None:
            exprs.append(self.predicate)
        return exprs

    def used_names(self) -> set[str]:
        """Collect select aliases and referenced column names (for fresh alias generation)."""
        names = {item.alias for item in self.select_list}
        for expr in self.expressions():
            names.update(referenced_columns(expr))
        return names


# Resolve forward references created by the recursive Statement type.
Relation.model_rebuild()
Statement.model_rebuild()
SelectItem.model_rebuild()
