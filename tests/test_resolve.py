"""Unit tests for ClauseResolver: ordering, partitioning and frames."""

from __future__ import annotations

import pytest

from overql.classify.registry import (
    CUMULATIVE_FUNCTIONS,
    DEFAULT_CLASSIFIER,
    OFFSET_FUNCTIONS,
    RANKING_FUNCTIONS,
    FunctionClassifier,
    WindowCategory,
    WindowFunctionSpec,
    rolling,
)
from overql.compile.clause_resolver import ClauseResolver, ResolvedWindow
from overql.compile.context import CompilationContext
from overql.errors import (
    CompilationError,
    MissingOrderError,
    NotAWindowContextError,
    UnknownFunctionError,
    UnsupportedFrameError,
)
from overql.schema.clause import CUMULATIVE_FRAME, RECYCLED_FRAME, Frame, FrameBound
from overql.schema.context import QueryContext
from overql.schema.dialect import DialectProfile
from overql.schema.expressions import ColumnExpr, OrderKey, to_expr

ROLLING = DEFAULT_CLASSIFIER.extend(
    rolling("roll_mean3", "AVG", 1),
    rolling("roll_sum5", "SUM", 2),
    rolling("roll_skew", "SUM", (2, 1)),
)


def _resolve(
    query: QueryContext,
    expr: dict,
    *,
    intent: bool = False,
    classifier: FunctionClassifier | None = None,
) -> ResolvedWindow:
    ctx = CompilationContext.create(query, classifier)
    call = to_expr(expr)
    return ClauseResolver(ctx).resolve(
        call, ctx.classifier.classify(call.func), window_intent=intent
    )


def _call(func: str, *args: dict, order_by: list[dict] | None = None) -> dict:
    raw: dict = {"func": func, "args": list(args)}
    if order_by is not None:
        raw["order_by"] = order_by
    return raw


G = {"col": "G"}


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def test_rank_uses_context_order(batting_ctx):
    r = _resolve(batting_ctx, _call("rank", G))
    assert r.clause.partition_by == ("playerID",)
    assert r.clause.order_by == (OrderKey(expr=ColumnExpr(col="yearID")),)
    assert r.clause.frame is None
    assert r.sql == 'RANK() OVER (PARTITION BY "playerID" ORDER BY "yearID")'


def test_rank_falls_back_to_argument_without_context_order(grouped_ctx):
    r = _resolve(grouped_ctx, _call("rank", G))
    assert r.sql == 'RANK() OVER (PARTITION BY "playerID" ORDER BY "G")'


def test_rank_without_any_order_fails(grouped_ctx):
    with pytest.raises(MissingOrderError):
        _resolve(grouped_ctx, _call("rank"))


def test_min_rank_orders_by_first_argument(batting_ctx):
    r = _resolve(batting_ctx, _call("min_rank", G))
    assert r.sql == 'RANK() OVER (PARTITION BY "playerID" ORDER BY "G")'


def test_min_rank_desc_argument(batting_ctx):
    r = _resolve(batting_ctx, _call("min_rank", {"desc": G}))
    assert r.clause.order_by == (OrderKey(expr=ColumnExpr(col="G"), direction="DESC"),)
    assert r.sql == 'RANK() OVER (PARTITION BY "playerID" ORDER BY "G" DESC)'


def test_double_desc_is_ascending(batting_ctx):
    r = _resolve(batting_ctx, _call("row_number", {"desc": {"desc": G}}))
    assert r.clause.order_by[0].direction == "ASC"


def test_first_argument_wins_over_override(batting_ctx):
    r = _resolve(batting_ctx, _call("dense_rank", G, order_by=[{"col": "AB"}]))
    assert 'ORDER BY "G"' in r.sql
    assert '"AB"' not in r.sql


def test_row_number_without_argument_uses_context(batting_ctx):
    r = _resolve(batting_ctx, _call("row_number"))
    assert r.sql == 'ROW_NUMBER() OVER (PARTITION BY "playerID" ORDER BY "yearID")'


def test_ntile_with_order_key_renders_bucket_count_only(batting_ctx):
    r = _resolve(batting_ctx, _call("ntile", G, {"value": 4}))
    assert r.sql == 'NTILE(4) OVER (PARTITION BY "playerID" ORDER BY "G")'


def test_ntile_literal_only_uses_context(batting_ctx):
    r = _resolve(batting_ctx, _call("ntile", {"value": 4}))
    assert r.sql == 'NTILE(4) OVER (PARTITION BY "playerID" ORDER BY "yearID")'


def test_lag_uses_context_order(batting_ctx):
    r = _resolve(batting_ctx, _call("lag", G))
    assert r.sql == 'LAG("G") OVER (PARTITION BY "playerID" ORDER BY "yearID")'
    assert r.clause.frame is None


def test_override_replaces_context_order(batting_ctx):
    r = _resolve(batting_ctx, _call("lag", G, {"value": 2}, order_by=[{"desc": {"col": "AB"}}]))
    assert r.sql == 'LAG("G", 2) OVER (PARTITION BY "playerID" ORDER BY "AB" DESC)'


def test_multi_key_override(batting_ctx):
    r = _resolve(batting_ctx, _call("lead", G, order_by=[{"col": "yearID"}, {"col": "teamID"}]))
    assert 'ORDER BY "yearID", "teamID"' in r.sql


def test_lead_without_order_fails(grouped_ctx):
    with pytest.raises(MissingOrderError) as exc_info:
        _resolve(grouped_ctx, _call("lead", G))
    assert exc_info.value.code == "MISSING_ORDER"
    assert exc_info.value.details["fragment"] == "lead(G)"


def test_descending_context_order():
    query = QueryContext(partition_columns=("playerID",), default_order=[("yearID", "desc")])
    r = _resolve(query, _call("cumsum", G))
    assert 'ORDER BY "yearID" DESC ROWS' in r.sql


# ---------------------------------------------------------------------------
# Partitioning
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "expr",
    [
        _call("row_number"),
        _call("lag", G),
        _call("cummax", G),
        _call("mean", G),
    ],
)
def test_partition_always_comes_from_context(expr):
    query = QueryContext(partition_columns=("lgID", "teamID"), default_order=("yearID",))
    r = _resolve(query, expr)
    assert r.clause.partition_by == ("lgID", "teamID")
    assert r.over_sql.startswith('PARTITION BY "lgID", "teamID"')


def test_qualified_partition_column_is_quoted_per_part():
    query = QueryContext(partition_columns=("batting.playerID",), default_order=("yearID",))
    r = _resolve(query, _call("row_number"))
    assert 'PARTITION BY "batting"."playerID"' in r.sql


def test_explicit_query_context_overrides_compilation_context(batting_ctx):
    ctx = CompilationContext.create(batting_ctx)
    other = QueryContext(partition_columns=("teamID",), default_order=("yearID",))
    call = to_expr(_call("row_number"))
    r = ClauseResolver(ctx).resolve(call, ctx.classifier.classify("row_number"), other)
    assert r.clause.partition_by == ("teamID",)


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


def test_cumulative_frame(batting_ctx):
    r = _resolve(batting_ctx, _call("cummean", G))
    assert r.clause.frame == CUMULATIVE_FRAME
    assert r.sql == (
        'AVG("G") OVER (PARTITION BY "playerID" ORDER BY "yearID" '
        "ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW)"
    )


def test_cumulative_without_order_fails(grouped_ctx):
    with pytest.raises(MissingOrderError):
        _resolve(grouped_ctx, _call("cumsum", G))


def test_recycled_frame_in_grouped_context(grouped_ctx):
    r = _resolve(grouped_ctx, _call("mean", G))
    assert r.category is WindowCategory.RECYCLED_AGGREGATE
    assert r.clause.frame == RECYCLED_FRAME
    assert r.sql == (
        'AVG("G") OVER (PARTITION BY "playerID" '
        "ROWS BETWEEN UNBOUNDED PRECEDING AND UNBOUNDED FOLLOWING)"
    )


def test_plain_aggregate_without_window_context_fails(ungrouped_ctx):
    with pytest.raises(NotAWindowContextError) as exc_info:
        _resolve(ungrouped_ctx, _call("sum", G))
    assert exc_info.value.code == "NOT_A_WINDOW_CONTEXT"


def test_plain_aggregate_with_window_intent_recycles(ungrouped_ctx):
    r = _resolve(ungrouped_ctx, _call("sum", G), intent=True)
    assert r.sql == 'SUM("G") OVER (ROWS BETWEEN UNBOUNDED PRECEDING AND UNBOUNDED FOLLOWING)'


def test_plain_aggregate_with_override_recycles(ungrouped_ctx):
    r = _resolve(ungrouped_ctx, _call("max", G, order_by=[{"col": "yearID"}]))
    assert r.clause.frame == RECYCLED_FRAME
    assert 'ORDER BY "yearID"' in r.sql


def test_count_star(grouped_ctx):
    r = _resolve(grouped_ctx, _call("n"))
    assert r.function_sql == "COUNT(*)"


def test_rolling_frame(batting_ctx):
    r = _resolve(batting_ctx, _call("roll_mean3", G), classifier=ROLLING)
    assert r.clause.frame == Frame(start=FrameBound.preceding(1), end=FrameBound.following(1))
    assert r.sql == (
        'AVG("G") OVER (PARTITION BY "playerID" ORDER BY "yearID" '
        "ROWS BETWEEN 1 PRECEDING AND 1 FOLLOWING)"
    )


def test_asymmetric_rolling_width_fails(batting_ctx):
    with pytest.raises(UnsupportedFrameError) as exc_info:
        _resolve(batting_ctx, _call("roll_skew", G), classifier=ROLLING)
    assert exc_info.value.details["preceding"] == 2
    assert exc_info.value.details["following"] == 1


def test_rolling_width_above_profile_limit_fails():
    dialect = DialectProfile.builder("postgres").max_frame_offset(1).build()
    query = QueryContext(default_order=("yearID",), dialect=dialect)
    assert _resolve(query, _call("roll_mean3", G), classifier=ROLLING).clause.frame is not None
    with pytest.raises(UnsupportedFrameError):
        _resolve(query, _call("roll_sum5", G), classifier=ROLLING)


def _minimal_call(spec: WindowFunctionSpec) -> dict:
    args = [G] if spec.min_args else []
    args += [{"value": 2}] * (spec.min_args - len(args))
    return _call(spec.name, *args)


@pytest.mark.parametrize(
    "spec", RANKING_FUNCTIONS + OFFSET_FUNCTIONS, ids=lambda spec: spec.name
)
def test_ranking_and_offset_functions_are_frame_free(batting_ctx, spec):
    r = _resolve(batting_ctx, _minimal_call(spec))
    assert r.clause.frame is None
    assert "ROWS" not in r.sql


@pytest.mark.parametrize("spec", CUMULATIVE_FUNCTIONS, ids=lambda spec: spec.name)
def test_cumulative_functions_run_to_current_row(batting_ctx, spec):
    r = _resolve(batting_ctx, _minimal_call(spec))
    assert r.clause.frame == CUMULATIVE_FRAME
    assert r.sql.endswith("ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW)")


def test_plain_aggregate_frame_is_recycled(batting_ctx):
    ctx = CompilationContext.create(batting_ctx.with_dialect(DialectProfile(target="duckdb")))
    call = to_expr(_call("median", G))
    r = ClauseResolver(ctx).resolve(call, ctx.classifier.classify(call.func))
    assert r.clause.frame == RECYCLED_FRAME


# ---------------------------------------------------------------------------
# Frame-less dialect profiles
# ---------------------------------------------------------------------------


def test_frames_disabled_rejects_cumulative(batting_ctx, dialect_no_frames):
    with pytest.raises(UnsupportedFrameError):
        _resolve(batting_ctx.with_dialect(dialect_no_frames), _call("cumsum", G))


def test_frames_disabled_allows_unordered_recycled(grouped_ctx, dialect_no_frames):
    r = _resolve(grouped_ctx.with_dialect(dialect_no_frames), _call("mean", G))
    assert r.clause.frame == RECYCLED_FRAME
    assert r.sql == 'AVG("G") OVER (PARTITION BY "playerID")'


def test_frames_disabled_allows_ranking(batting_ctx, dialect_no_frames):
    r = _resolve(batting_ctx.with_dialect(dialect_no_frames), _call("min_rank", G))
    assert r.sql == 'RANK() OVER (PARTITION BY "playerID" ORDER BY "G")'


def test_frames_disabled_recycled_drops_context_order(batting_ctx, dialect_no_frames):
    r = _resolve(batting_ctx.with_dialect(dialect_no_frames), _call("mean", G))
    assert r.clause.order_by == ()
    assert r.sql == 'AVG("G") OVER (PARTITION BY "playerID")'


def test_frames_disabled_recycled_with_override_fails(batting_ctx, dialect_no_frames):
    query = batting_ctx.with_dialect(dialect_no_frames)
    with pytest.raises(UnsupportedFrameError):
        _resolve(query, _call("mean", G, order_by=[{"col": "yearID"}]))


def test_recycled_keeps_context_order_when_frames_enabled(batting_ctx):
    r = _resolve(batting_ctx, _call("mean", G))
    assert r.sql == (
        'AVG("G") OVER (PARTITION BY "playerID" ORDER BY "yearID" '
        "ROWS BETWEEN UNBOUNDED PRECEDING AND UNBOUNDED FOLLOWING)"
    )


# ---------------------------------------------------------------------------
# Dialect translation
# ---------------------------------------------------------------------------


def test_postgres_sample_stddev(grouped_ctx):
    r = _resolve(grouped_ctx, _call("sd", G))
    assert r.function_sql == 'STDDEV_SAMP("G")'


def test_postgres_has_no_window_median(grouped_ctx):
    with pytest.raises(UnknownFunctionError) as exc_info:
        _resolve(grouped_ctx, _call("median", G))
    assert exc_info.value.details["dialect"] == "postgres"


def test_duckdb_median(grouped_ctx, dialect_duck):
    r = _resolve(grouped_ctx.with_dialect(dialect_duck), _call("median", G))
    assert r.function_sql == 'MEDIAN("G")'


def test_sqlite_bool_aggregates(batting_ctx, dialect_sq):
    r = _resolve(batting_ctx.with_dialect(dialect_sq), _call("cumany", {"col": "flag"}))
    assert r.function_sql == 'MAX("flag")'


def test_sqlite_has_no_variance(grouped_ctx, dialect_sq):
    with pytest.raises(UnknownFunctionError):
        _resolve(grouped_ctx.with_dialect(dialect_sq), _call("var", G))


def test_mysql_backtick_quoting(batting_ctx, dialect_my):
    r = _resolve(batting_ctx.with_dialect(dialect_my), _call("lag", G))
    assert r.sql == "LAG(`G`) OVER (PARTITION BY `playerID` ORDER BY `yearID`)"


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------


def test_desc_in_aggregate_argument_fails(grouped_ctx):
    with pytest.raises(CompilationError) as exc_info:
        _resolve(grouped_ctx, _call("mean", {"desc": G}))
    assert exc_info.value.code == "MISPLACED_DESC"


def test_lead_default_value_literal(batting_ctx):
    r = _resolve(batting_ctx, _call("lead", G, {"value": 1}, {"value": 0}))
    assert r.function_sql == 'LEAD("G", 1, 0)'


def test_arithmetic_argument(grouped_ctx):
    expr = _call("sum", {"op": "/", "left": {"col": "H"}, "right": {"col": "AB"}})
    r = _resolve(grouped_ctx, expr)
    assert r.function_sql == 'SUM("H" / "AB")'
