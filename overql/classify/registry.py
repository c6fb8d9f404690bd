"""Window function classifier.

Maps a function name used in a mutate / filter expression to a
:class:`WindowFunctionSpec`: its category, the generic SQL function it
compiles to, whether it needs an ordering, and where that ordering comes
from by default.

The built-in table is assembled once at import time and exposed through a
read-only mapping, so it can be read from any thread without locking.
Rolling aggregates are not built in; register them at startup by extending
the default classifier::

    from overql.classify.registry import DEFAULT_CLASSIFIER, rolling

    classifier = DEFAULT_CLASSIFIER.extend(
        rolling("roll_mean3", aggregate="AVG", half_width=1),
    )

``extend`` returns a new classifier; the default one is never modified.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from overql.errors import UnknownFunctionError


class WindowCategory(str, Enum):
    """Closed set of window function categories."""

    RANKING = "ranking"
    OFFSET = "offset"
    CUMULATIVE_AGGREGATE = "cumulative_aggregate"
    ROLLING_AGGREGATE = "rolling_aggregate"
    RECYCLED_AGGREGATE = "recycled_aggregate"
    PLAIN_AGGREGATE = "plain_aggregate"


class OrderSource(str, Enum):
    """Where a function looks first for its ordering."""

    FIRST_ARGUMENT = "first_argument"
    CONTEXT_ONLY = "context_only"
    EXPLICIT_ORDER_BY_ARGUMENT = "explicit_order_by_argument"


@dataclass(frozen=True)
class WindowFunctionSpec:
    """Classifier output for one function name.

    Attributes:
        name: Surface function name (lower case).
        category: Window category; drives the frame choice.
        sql_name: Generic SQL function name; dialect compilers may translate it.
        requires_order: Whether compilation fails without an ordering.
        default_order_source: Where the ordering is looked up first.
        min_args: Minimum number of arguments.
        max_args: Maximum number of arguments.
        integer_args: ``(position, minimum)`` pairs for arguments that must be
            integer literals.  Negative positions count from the end.
        alias_stem: Stem for generated column aliases (defaults to ``name``).
        frame_preceding: Rows before the current row (rolling only).
        frame_following: Rows after the current row (rolling only).
        star_when_empty: Render ``*`` when called without arguments.
    """

    name: str
    category: WindowCategory
    sql_name: str
    requires_order: bool
    default_order_source: OrderSource
    min_args: int = 1
    max_args: int = 1
    integer_args: tuple[tuple[int, int], ...] = ()
    alias_stem: str | None = None
    frame_preceding: int | None = None
    frame_following: int | None = None
    star_when_empty: bool = False

    @property
    def stem(self) -> str:
        return self.alias_stem or self.name

    @property
    def is_aggregate(self) -> bool:
        return self.category in _AGGREGATE_CATEGORIES


_AGGREGATE_CATEGORIES = frozenset(
    {
        WindowCategory.CUMULATIVE_AGGREGATE,
        WindowCategory.ROLLING_AGGREGATE,
        WindowCategory.RECYCLED_AGGREGATE,
        WindowCategory.PLAIN_AGGREGATE,
    }
)


# ---------------------------------------------------------------------------
# Spec factories
# ---------------------------------------------------------------------------


def _ranking(
    name: str,
    sql_name: str,
    *,
    source: OrderSource = OrderSource.FIRST_ARGUMENT,
    max_args: int = 1,
    min_args: int = 0,
    integer_args: tuple[tuple[int, int], ...] = (),
    alias_stem: str | None = None,
) -> WindowFunctionSpec:
    return WindowFunctionSpec(
        name=name,
        category=WindowCategory.RANKING,
        sql_name=sql_name,
        requires_order=True,
        default_order_source=source,
        min_args=min_args,
        max_args=max_args,
        integer_args=integer_args,
        alias_stem=alias_stem,
    )


def _offset(
    name: str,
    sql_name: str,
    *,
    max_args: int = 1,
    min_args: int = 1,
    integer_args: tuple[tuple[int, int], ...] = (),
) -> WindowFunctionSpec:
    return WindowFunctionSpec(
        name=name,
        category=WindowCategory.OFFSET,
        sql_name=sql_name,
        requires_order=True,
        default_order_source=OrderSource.EXPLICIT_ORDER_BY_ARGUMENT,
        min_args=min_args,
        max_args=max_args,
        integer_args=integer_args,
    )


def _cumulative(name: str, sql_name: str) -> WindowFunctionSpec:
    return WindowFunctionSpec(
        name=name,
        category=WindowCategory.CUMULATIVE_AGGREGATE,
        sql_name=sql_name,
        requires_order=True,
        default_order_source=OrderSource.EXPLICIT_ORDER_BY_ARGUMENT,
    )


def _aggregate(
    name: str,
    sql_name: str,
    *,
    min_args: int = 1,
    max_args: int = 1,
    star_when_empty: bool = False,
) -> WindowFunctionSpec:
    return WindowFunctionSpec(
        name=name,
        category=WindowCategory.PLAIN_AGGREGATE,
        sql_name=sql_name,
        requires_order=False,
        default_order_source=OrderSource.CONTEXT_ONLY,
        min_args=min_args,
        max_args=max_args,
        star_when_empty=star_when_empty,
    )


def rolling(
    name: str,
    aggregate: str,
    half_width: int | tuple[int, int],
) -> WindowFunctionSpec:
    """Build the spec of a fixed-width rolling aggregate.

    Args:
        name: Surface function name, e.g. ``"roll_mean5"``.
        aggregate: Generic SQL aggregate, e.g. ``"AVG"``.
        half_width: Rows on each side of the current row, or an explicit
            ``(preceding, following)`` pair.  Asymmetric pairs are accepted
            here but rejected when a call is resolved.

    Returns:
        A :class:`WindowFunctionSpec` in the ``ROLLING_AGGREGATE`` category.
    """
    if isinstance(half_width, tuple):
        preceding, following = half_width
    else:
        preceding = following = half_width
    return WindowFunctionSpec(
        name=name.lower(),
        category=WindowCategory.ROLLING_AGGREGATE,
        sql_name=aggregate.upper(),
        requires_order=True,
        default_order_source=OrderSource.EXPLICIT_ORDER_BY_ARGUMENT,
        frame_preceding=preceding,
        frame_following=following,
    )


# ---------------------------------------------------------------------------
# Built-in table
# ---------------------------------------------------------------------------

#: Ranking functions: the first argument, when present, is the ordering key.
RANKING_FUNCTIONS: tuple[WindowFunctionSpec, ...] = (
    _ranking("row_number", "ROW_NUMBER"),
    _ranking("min_rank", "RANK", alias_stem="rank"),
    _ranking("rank", "RANK", source=OrderSource.CONTEXT_ONLY),
    _ranking("dense_rank", "DENSE_RANK"),
    _ranking("percent_rank", "PERCENT_RANK"),
    _ranking("cume_dist", "CUME_DIST"),
    _ranking("ntile", "NTILE", min_args=1, max_args=2, integer_args=((-1, 1),)),
)

#: Offset functions: order comes from an explicit override or the context.
OFFSET_FUNCTIONS: tuple[WindowFunctionSpec, ...] = (
    _offset("lead", "LEAD", max_args=3, integer_args=((1, 0),)),
    _offset("lag", "LAG", max_args=3, integer_args=((1, 0),)),
    _offset("nth_value", "NTH_VALUE", min_args=2, max_args=2, integer_args=((1, 1),)),
    _offset("first_value", "FIRST_VALUE"),
    _offset("last_value", "LAST_VALUE"),
)

#: Cumulative aggregates: partition start through the current row.
CUMULATIVE_FUNCTIONS: tuple[WindowFunctionSpec, ...] = (
    _cumulative("cumsum", "SUM"),
    _cumulative("cummin", "MIN"),
    _cumulative("cummax", "MAX"),
    _cumulative("cummean", "AVG"),
    _cumulative("cumany", "BOOL_OR"),
    _cumulative("cumall", "BOOL_AND"),
)

#: Plain aggregates: recycled over the partition when used in a window context.
AGGREGATE_FUNCTIONS: tuple[WindowFunctionSpec, ...] = (
    _aggregate("mean", "AVG"),
    _aggregate("sum", "SUM"),
    _aggregate("min", "MIN"),
    _aggregate("max", "MAX"),
    _aggregate("sd", "STDDEV"),
    _aggregate("var", "VARIANCE"),
    _aggregate("median", "MEDIAN"),
    _aggregate("n", "COUNT", min_args=0, max_args=0, star_when_empty=True),
    _aggregate("any", "BOOL_OR"),
    _aggregate("all", "BOOL_AND"),
)

BUILTIN_FUNCTIONS: tuple[WindowFunctionSpec, ...] = (
    RANKING_FUNCTIONS + OFFSET_FUNCTIONS + CUMULATIVE_FUNCTIONS + AGGREGATE_FUNCTIONS
)


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


class FunctionClassifier:
    """Read-only lookup table from function name to :class:`WindowFunctionSpec`.

    Args:
        extra: Additional specs (typically rolling aggregates) layered over
            the built-in table.  A spec with a built-in name replaces it.
    """

    def __init__(self, extra: Iterable[WindowFunctionSpec] = ()) -> None:
        self._extra: tuple[WindowFunctionSpec, ...] = tuple(extra)
        table = {spec.name: spec for spec in BUILTIN_FUNCTIONS}
        for spec in self._extra:
            table[spec.name] = spec
        self._table: Mapping[str, WindowFunctionSpec] = MappingProxyType(table)

    def classify(self, name: str) -> WindowFunctionSpec:
        """Return the spec for ``name``.

        Raises:
            UnknownFunctionError: If ``name`` is not in the table.
        """
        spec = self._table.get(name.strip().lower())
        if spec is None:
            raise UnknownFunctionError(name, known_functions=self.known_functions())
        return spec

    def is_window_function(self, name: str) -> bool:
        """Return ``True`` if ``name`` is in the table."""
        return name.strip().lower() in self._table

    def known_functions(self) -> list[str]:
        """Return the sorted list of known function names."""
        return sorted(self._table)

    def extend(self, *specs: WindowFunctionSpec) -> FunctionClassifier:
        """Return a new classifier with ``specs`` added."""
        return FunctionClassifier(self._extra + specs)


#: Process-wide classifier over the built-in table.
DEFAULT_CLASSIFIER = FunctionClassifier()


def classify(name: str) -> WindowFunctionSpec:
    """Classify ``name`` with :data:`DEFAULT_CLASSIFIER`."""
    return DEFAULT_CLASSIFIER.classify(name)
