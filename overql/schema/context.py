"""Query context value object.

A :class:`QueryContext` is the immutable snapshot a statement compiles
against: the grouping established upstream (partition columns), the ordering
established by the last explicit arrange step, and the dialect.  Upstream
grouping or ordering changes derive a new context; nothing mutates one in
place, so every statement compiles against its own snapshot.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, Union

from overql.errors import ConfigError
from overql.schema.dialect import DialectProfile
from overql.schema.expressions import ColumnExpr, Direction, OrderKey

#: Accepted spellings of one default-order entry.
OrderSpec = Union[str, tuple[str, str], OrderKey]


class GroupedRelation(Protocol):
    """A grouped / ordered relational handle produced by upstream operations."""

    def partition_columns(self) -> Sequence[str]: ...

    def default_order(self) -> Sequence[OrderSpec]: ...


@dataclass(frozen=True)
class QueryContext:
    """Immutable context for compiling one statement.

    Attributes:
        partition_columns: Grouping columns; every window is partitioned by them.
        default_order: Ordering established by a prior arrange step.  At most
            one key (multi-variable default ordering is unsupported).
        dialect: Dialect profile of the target engine.
    """

    partition_columns: tuple[str, ...] = ()
    default_order: tuple[OrderKey, ...] = ()
    dialect: DialectProfile = field(default_factory=DialectProfile)

    def __post_init__(self) -> None:
        columns = self.partition_columns
        if isinstance(columns, str):
            columns = (columns,)
        object.__setattr__(self, "partition_columns", tuple(columns))
        specs = self.default_order
        if isinstance(specs, (str, OrderKey)):
            specs = (specs,)
        order = tuple(_to_order_key(spec) for spec in specs)
        if len(order) > 1:
            raise ConfigError(
                f"Default ordering supports a single column, got {len(order)}: "
                f"{[key.describe() for key in order]}.",
                missing=["default_order"],
                reason="Multi-variable default ordering is not supported; pass "
                "an explicit order_by on the call instead.",
            )
        object.__setattr__(self, "default_order", order)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def group_by(self, *columns: str) -> QueryContext:
        """Return a context partitioned by ``columns``."""
        return replace(self, partition_columns=tuple(columns))

    def ungroup(self) -> QueryContext:
        """Return a context with no partition columns."""
        return replace(self, partition_columns=())

    def arrange(self, column: str, direction: Direction = "ASC") -> QueryContext:
        """Return a context whose default ordering is ``column``."""
        return replace(self, default_order=((column, direction),))

    def with_dialect(self, dialect: DialectProfile) -> QueryContext:
        """Return a context targeting ``dialect``."""
        return replace(self, dialect=dialect)

    @classmethod
    def from_relation(
        cls,
        relation: GroupedRelation,
        dialect: DialectProfile | None = None,
    ) -> QueryContext:
        """Snapshot a grouped / ordered relational handle.

        Args:
            relation: Any object exposing ``partition_columns()`` and
                ``default_order()``.
            dialect: Target dialect; defaults to PostgreSQL.

        Returns:
            A new :class:`QueryContext`.
        """
        return cls(
            partition_columns=tuple(relation.partition_columns()),
            default_order=tuple(relation.default_order()),
            dialect=dialect or DialectProfile(),
        )


def _to_order_key(spec: Any) -> OrderKey:
    if isinstance(spec, OrderKey):
        return spec
    if isinstance(spec, str):
        return OrderKey(expr=ColumnExpr(col=spec))
    if isinstance(spec, Iterable):
        column, direction = tuple(spec)
        return OrderKey(expr=ColumnExpr(col=column), direction=str(direction).upper())
    raise ConfigError(
        f"Cannot interpret {spec!r} as an ordering key.",
        missing=["default_order"],
        reason="Use a column name, a (column, direction) pair, or an OrderKey.",
    )
