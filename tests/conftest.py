"""Shared pytest fixtures for overql unit and integration tests."""
from __future__ import annotations

import pytest

from overql.schema.context import QueryContext
from overql.schema.dialect import DialectProfile


@pytest.fixture(scope="session")
def batting_ctx() -> QueryContext:
    """Batting rows grouped by player and arranged by season (PostgreSQL)."""
    return QueryContext(partition_columns=("playerID",), default_order=("yearID",))


@pytest.fixture(scope="session")
def grouped_ctx() -> QueryContext:
    """Grouped by player, no default ordering."""
    return QueryContext(partition_columns=("playerID",))


@pytest.fixture(scope="session")
def ungrouped_ctx() -> QueryContext:
    """No grouping, no ordering."""
    return QueryContext()


@pytest.fixture(scope="session")
def dialect_sq() -> DialectProfile:
    return DialectProfile.builder("sqlite").build()


@pytest.fixture(scope="session")
def dialect_my() -> DialectProfile:
    return DialectProfile.builder("mysql").build()


@pytest.fixture(scope="session")
def dialect_duck() -> DialectProfile:
    return DialectProfile.builder("duckdb").build()


@pytest.fixture(scope="session")
def dialect_no_frames() -> DialectProfile:
    """A PostgreSQL target profiled without frame clause support."""
    return DialectProfile.builder("postgres").without_frames().build()
