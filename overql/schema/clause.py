"""Structured window clause: the resolved ``PARTITION BY / ORDER BY / frame`` triple.

The clause resolver returns a :class:`Clause` together with its rendered SQL
text.  Callers that only need text use the string; the query rewriter uses the
structured form to compare partitions across a statement.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from overql.schema.expressions import OrderKey

_FROZEN = ConfigDict(extra="forbid", frozen=True)


class BoundKind(str, Enum):
    """The kind of a frame boundary."""

    UNBOUNDED_PRECEDING = "UNBOUNDED_PRECEDING"
    PRECEDING = "PRECEDING"
    CURRENT_ROW = "CURRENT_ROW"
    FOLLOWING = "FOLLOWING"
    UNBOUNDED_FOLLOWING = "UNBOUNDED_FOLLOWING"


class FrameBound(BaseModel):
    """One end of a ``ROWS BETWEEN … AND …`` frame.

    Attributes:
        kind: Boundary kind.
        offset: Row offset; only meaningful for ``PRECEDING`` / ``FOLLOWING``.
    """

    model_config = _FROZEN

    kind: BoundKind
    offset: int | None = None

    @classmethod
    def unbounded_preceding(cls) -> FrameBound:
        return cls(kind=BoundKind.UNBOUNDED_PRECEDING)

    @classmethod
    def preceding(cls, offset: int) -> FrameBound:
        return cls(kind=BoundKind.PRECEDING, offset=offset)

    @classmethod
    def current_row(cls) -> FrameBound:
        return cls(kind=BoundKind.CURRENT_ROW)

    @classmethod
    def following(cls, offset: int) -> FrameBound:
        return cls(kind=BoundKind.FOLLOWING, offset=offset)

    @classmethod
    def unbounded_following(cls) -> FrameBound:
        return cls(kind=BoundKind.UNBOUNDED_FOLLOWING)


class Frame(BaseModel):
    """A ``ROWS`` frame specification."""

    model_config = _FROZEN

    start: FrameBound
    end: FrameBound


#: Frame of a recycled aggregate: the whole partition.
RECYCLED_FRAME = Frame(
    start=FrameBound.unbounded_preceding(), end=FrameBound.unbounded_following()
)

#: Frame of a cumulative aggregate: partition start through the current row.
CUMULATIVE_FRAME = Frame(start=FrameBound.unbounded_preceding(), end=FrameBound.current_row())


class Clause(BaseModel):
    """Resolved window clause.

    Attributes:
        partition_by: Partition column names (may be empty).
        order_by: Ordering keys (may be empty).
        frame: Frame specification, or ``None`` for frame-free functions.
    """

    model_config = _FROZEN

    partition_by: tuple[str, ...] = ()
    order_by: tuple[OrderKey, ...] = ()
    frame: Frame | None = None
