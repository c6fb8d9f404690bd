"""Integration tests: compile → execute against a real SQLite in-memory DB.

Covers ranking filters (subquery rewrite), cumulative and recycled
aggregates, offsets and rolling frames over a small batting table.
"""
from __future__ import annotations

import sqlite3

import pytest

import overql
from overql.classify.registry import DEFAULT_CLASSIFIER, rolling
from overql.schema.context import QueryContext
from overql.schema.dialect import DialectProfile
from tests.fixtures import BATTING_ROWS, load_ddl

pytestmark = pytest.mark.integration

SQLITE = DialectProfile.builder("sqlite").build()
BY_PLAYER = QueryContext(partition_columns=("playerID",), dialect=SQLITE)
BY_SEASON = BY_PLAYER.arrange("yearID")


@pytest.fixture()
def db() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.executescript(load_ddl("sqlite"))
    conn.executemany("INSERT INTO batting VALUES (?,?,?,?,?,?)", BATTING_ROWS)
    conn.commit()
    yield conn
    conn.close()


def _run(db: sqlite3.Connection, stmt: dict, ctx: QueryContext, **kwargs) -> list[sqlite3.Row]:
    compiled = overql.compile_statement(stmt, ctx, **kwargs)
    return db.execute(compiled.sql).fetchall()


def _mutate(alias: str, expr: dict) -> dict:
    return {
        "select_list": [{"alias": alias, "expr": expr}],
        "select_all": True,
        "from": "batting",
    }


def _filter(predicate: dict) -> dict:
    return {"from": "batting", "predicate": predicate, "is_filter": True}


def test_best_season_per_player(db):
    predicate = {
        "op": "==",
        "left": {"func": "min_rank", "args": [{"desc": {"col": "G"}}]},
        "right": {"value": 1},
    }
    rows = _run(db, _filter(predicate), BY_PLAYER)
    assert sorted((r["playerID"], r["yearID"]) for r in rows) == [
        ("aaronha01", 1955),
        ("aaronha01", 1956),
        ("cobbty01", 1907),
        ("ruthba01", 1920),
    ]
    assert all(r["rank_1"] == 1 for r in rows)


def test_top_two_seasons_with_row_number(db):
    predicate = {
        "op": "<=",
        "left": {"func": "row_number", "args": [{"desc": {"col": "G"}}]},
        "right": {"value": 2},
    }
    rows = _run(db, _filter(predicate), BY_PLAYER)
    by_player: dict[str, list[int]] = {}
    for r in rows:
        by_player.setdefault(r["playerID"], []).append(r["G"])
    assert {p: sorted(g) for p, g in by_player.items()} == {
        "aaronha01": [153, 153],
        "cobbty01": [98, 150],
        "ruthba01": [67, 142],
    }


def test_cumulative_sum(db):
    rows = _run(db, _mutate("cs", {"func": "cumsum", "args": [{"col": "G"}]}), BY_SEASON)
    totals = {(r["playerID"], r["yearID"]): r["cs"] for r in rows}
    assert [totals[("aaronha01", y)] for y in (1954, 1955, 1956, 1957)] == [122, 275, 428, 579]
    assert totals[("cobbty01", 1907)] == 289


def test_above_player_average(db):
    predicate = {
        "op": ">",
        "left": {"col": "G"},
        "right": {"func": "mean", "args": [{"col": "G"}]},
    }
    rows = _run(db, _filter(predicate), BY_PLAYER)
    assert sorted((r["playerID"], r["yearID"]) for r in rows) == [
        ("aaronha01", 1955),
        ("aaronha01", 1956),
        ("aaronha01", 1957),
        ("cobbty01", 1906),
        ("cobbty01", 1907),
        ("ruthba01", 1916),
        ("ruthba01", 1920),
    ]


def test_above_overall_average_ungrouped(db):
    predicate = {
        "op": ">",
        "left": {"col": "G"},
        "right": {"func": "mean", "args": [{"col": "G"}]},
    }
    rows = _run(db, _filter(predicate), QueryContext(dialect=SQLITE))
    # Overall mean is 1124 / 11 ~ 102.2
    assert {r["G"] for r in rows} == {122, 153, 151, 142, 150}


def test_season_over_season_change(db):
    expr = {
        "op": "-",
        "left": {"col": "G"},
        "right": {"func": "lag", "args": [{"col": "G"}]},
    }
    rows = _run(db, _mutate("delta", expr), BY_SEASON)
    deltas = {(r["playerID"], r["yearID"]): r["delta"] for r in rows}
    assert [deltas[("aaronha01", y)] for y in (1954, 1955, 1956, 1957)] == [None, 31, 0, -2]


def test_rolling_mean(db):
    classifier = DEFAULT_CLASSIFIER.extend(rolling("roll_mean3", "AVG", 1))
    rows = _run(
        db,
        _mutate("rm", {"func": "roll_mean3", "args": [{"col": "G"}]}),
        BY_SEASON,
        classifier=classifier,
    )
    means = {(r["playerID"], r["yearID"]): r["rm"] for r in rows}
    assert [means[("ruthba01", y)] for y in (1914, 1915, 1916, 1920)] == pytest.approx(
        [23.5, 38.0, 251 / 3, 104.5]
    )


def test_filter_on_cumulative_flag(db):
    # Seasons from the first 150-game season onward.
    predicate = {
        "op": "==",
        "left": {
            "func": "cumany",
            "args": [{"op": ">=", "left": {"col": "G"}, "right": {"value": 150}}],
        },
        "right": {"value": True},
    }
    rows = _run(db, _filter(predicate), BY_SEASON)
    assert sorted((r["playerID"], r["yearID"]) for r in rows) == [
        ("aaronha01", 1955),
        ("aaronha01", 1956),
        ("aaronha01", 1957),
        ("cobbty01", 1907),
    ]


def test_count_per_player(db):
    rows = _run(db, _mutate("seasons", {"func": "n", "args": []}), BY_PLAYER)
    counts = {r["playerID"]: r["seasons"] for r in rows}
    assert counts == {"aaronha01": 4, "ruthba01": 4, "cobbty01": 3}


def test_best_season_on_aliased_relation(db):
    predicate = {
        "op": "&",
        "left": {"op": ">", "left": {"col": "b.G"}, "right": {"value": 0}},
        "right": {
            "op": "==",
            "left": {"func": "min_rank", "args": [{"desc": {"col": "b.G"}}]},
            "right": {"value": 1},
        },
    }
    stmt = {"from": {"table": "batting", "alias": "b"}, "predicate": predicate, "is_filter": True}
    rows = _run(db, stmt, BY_PLAYER)
    assert sorted((r["playerID"], r["yearID"]) for r in rows) == [
        ("aaronha01", 1955),
        ("aaronha01", 1956),
        ("cobbty01", 1907),
        ("ruthba01", 1920),
    ]


def test_filter_inside_subquery_source(db):
    best = _filter(
        {
            "op": "==",
            "left": {"func": "min_rank", "args": [{"desc": {"col": "G"}}]},
            "right": {"value": 1},
        }
    )
    stmt = {
        "select_all": True,
        "from": {"subquery": best, "alias": "best"},
        "predicate": {"op": ">=", "left": {"col": "best.G"}, "right": {"value": 150}},
    }
    rows = _run(db, stmt, BY_PLAYER)
    assert sorted((r["playerID"], r["yearID"]) for r in rows) == [
        ("aaronha01", 1955),
        ("aaronha01", 1956),
        ("cobbty01", 1907),
    ]
