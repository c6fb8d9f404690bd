"""Utilities for building a QueryContext from external sources.

SQLAlchemy converter
--------------------
:func:`context_from_sqlalchemy` reads the GROUP BY and ORDER BY of a
SQLAlchemy :class:`~sqlalchemy.sql.expression.Select` and returns the
:class:`~overql.schema.context.QueryContext` a window expression over that
select compiles against.  :func:`relation_from_sqlalchemy` turns its FROM
clause into a :class:`~overql.schema.statement.Relation`.

Install the optional dependency before using this module::

    pip install "overql[sqlalchemy]"

Example::

    from sqlalchemy import select
    from overql.schema.converters import context_from_sqlalchemy

    query = select(batting).group_by(batting.c.playerID).order_by(batting.c.yearID)
    ctx = context_from_sqlalchemy(query)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from overql.errors import ConfigError
from overql.schema.context import QueryContext
from overql.schema.dialect import DialectProfile
from overql.schema.expressions import ColumnExpr, Direction, OrderKey
from overql.schema.statement import Relation

if TYPE_CHECKING:
    from sqlalchemy import Select


def context_from_sqlalchemy(
    select: Select,
    dialect: DialectProfile | None = None,
) -> QueryContext:
    """Build a :class:`QueryContext` from a SQLAlchemy select.

    GROUP BY columns become the partition columns and the ORDER BY (at most
    one key) becomes the default ordering.  ``.desc()`` / ``.asc()`` set the
    direction; ``nulls_first()`` / ``nulls_last()`` wrappers are ignored.

    Args:
        select: A SQLAlchemy ``Select``.
        dialect: Target dialect; defaults to PostgreSQL.

    Returns:
        A new :class:`QueryContext`.

    Raises:
        ImportError: If ``sqlalchemy`` is not installed.
        ConfigError: If a grouping or ordering entry is not a named column,
            or more than one ordering key is present.
    """
    _require_sqlalchemy("context_from_sqlalchemy")

    # Select keeps its GROUP BY / ORDER BY as tuples of column elements.
    partitions = tuple(_column_name(el, "group_by") for el in select._group_by_clauses)
    order = tuple(_order_key(el) for el in select._order_by_clauses)
    return QueryContext(
        partition_columns=partitions,
        default_order=order,
        dialect=dialect or DialectProfile(),
    )


def relation_from_sqlalchemy(select: Select) -> Relation:
    """Build a :class:`Relation` from the single FROM entry of a SQLAlchemy select.

    Supports a plain table (schema-qualified when it has a schema) and an
    aliased table.

    Raises:
        ImportError: If ``sqlalchemy`` is not installed.
        ConfigError: If the select reads from zero or several FROM entries,
            or from something other than a table.
    """
    _require_sqlalchemy("relation_from_sqlalchemy")
    from sqlalchemy import Alias, Table

    froms = select.get_final_froms()
    if len(froms) != 1:
        raise ConfigError(
            f"Expected a single FROM entry, found {len(froms)}.",
            missing=["from"],
            reason="A window statement reads from exactly one relation.",
        )
    source = froms[0]
    if isinstance(source, Table):
        return Relation(table=_table_name(source))
    if isinstance(source, Alias) and isinstance(source.element, Table):
        return Relation(table=_table_name(source.element), alias=source.name)
    raise ConfigError(
        f"Unsupported FROM entry: {type(source).__name__}.",
        missing=["from"],
        reason="Only tables and aliased tables can be converted.",
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _require_sqlalchemy(caller: str) -> None:
    try:
        import sqlalchemy  # noqa: F401
    except ImportError as exc:
        raise ImportError(
            f"SQLAlchemy is required for {caller}(). "
            'Install it with: pip install "overql[sqlalchemy]"'
        ) from exc


def _order_key(element: Any) -> OrderKey:
    from sqlalchemy.sql import operators
    from sqlalchemy.sql.elements import UnaryExpression

    direction: Direction = "ASC"
    while isinstance(element, UnaryExpression):
        if element.modifier is operators.desc_op:
            direction = "DESC"
        elif element.modifier is operators.asc_op:
            direction = "ASC"
        element = element.element
    return OrderKey(expr=ColumnExpr(col=_column_name(element, "order_by")), direction=direction)


def _column_name(element: Any, clause: str) -> str:
    from sqlalchemy.sql.elements import ColumnClause, Label

    name = element.name if isinstance(element, (ColumnClause, Label)) else None
    if not name:
        raise ConfigError(
            f"Cannot use {element!r} in {clause}: only named columns are supported.",
            missing=[clause],
            reason="Window partitions and default orderings are column names.",
        )
    return name


def _table_name(table: Any) -> str:
    return f"{table.schema}.{table.name}" if table.schema else table.name
