"""overql – window expressions compiled to SQL.

Turns data-manipulation expressions that use window functions (ranks,
leads and lags, cumulative, rolling and grouped aggregates) into SQL
``OVER (PARTITION BY … ORDER BY … ROWS BETWEEN …)`` clauses, and rewrites
filters on window results into subqueries.

Public API
----------
``compile_statement``
    Validate, rewrite and compile a Statement (or its dict form) to SQL.

``compile_json``
    Same, from a JSON string.

Re-exported types
-----------------
``Statement``, ``QueryContext``, ``DialectProfile``, ``CompiledStatement``,
the classifier types, and all error classes.

Extensibility
-------------
New dialect compilers can be registered via::

    from overql.compile.registry import CompilerFactory

    @CompilerFactory.register("trino")
    class TrinoCompiler(SQLCompiler):
        ...

After registration, ``compile_statement`` picks it up automatically for any
``DialectProfile`` with that target.  Extra window functions (for example
rolling aggregates) are added with ``DEFAULT_CLASSIFIER.extend(...)``.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from overql.classify.registry import (
    DEFAULT_CLASSIFIER,
    FunctionClassifier,
    OrderSource,
    WindowCategory,
    WindowFunctionSpec,
    classify,
    rolling,
)
from overql.compile.base import CompiledStatement, SQLCompiler
from overql.compile.builder import StatementCompiler
from overql.compile.duckdb import DuckDBCompiler
from overql.compile.mysql import MySQLCompiler
from overql.compile.postgres import PostgresCompiler
from overql.compile.registry import CompilerFactory
from overql.compile.sqlite import SQLiteCompiler
from overql.config import CompileOptions, enable_debug, get_logger, set_log_level
from overql.errors import (
    AmbiguousPartitionError,
    CompilationError,
    ConfigError,
    InvalidArgumentsError,
    MissingOrderError,
    NotAWindowContextError,
    OverQLError,
    ParseError,
    UnknownFunctionError,
    UnsupportedFrameError,
    UnsupportedNestingError,
)
from overql.schema.context import GroupedRelation, QueryContext
from overql.schema.converters import context_from_sqlalchemy, relation_from_sqlalchemy
from overql.schema.dialect import DialectProfile, DialectProfileBuilder
from overql.schema.expressions import (
    BinaryOpExpr,
    CallExpr,
    ColumnExpr,
    DescExpr,
    Expr,
    LiteralExpr,
    OrderKey,
)
from overql.schema.statement import Relation, SelectItem, Statement

# ---------------------------------------------------------------------------
# Register built-in compilers with CompilerFactory
# ---------------------------------------------------------------------------

CompilerFactory.register_class("postgres", PostgresCompiler)
CompilerFactory.register_class("sqlite", SQLiteCompiler)
CompilerFactory.register_class("mysql", MySQLCompiler)
CompilerFactory.register_class("duckdb", DuckDBCompiler)

__all__ = [
    # Core pipeline
    "compile_statement",
    "compile_json",
    "StatementCompiler",
    # Schema types
    "Statement",
    "SelectItem",
    "Relation",
    "Expr",
    "ColumnExpr",
    "LiteralExpr",
    "CallExpr",
    "BinaryOpExpr",
    "DescExpr",
    "OrderKey",
    # Contexts
    "QueryContext",
    "GroupedRelation",
    "DialectProfile",
    "DialectProfileBuilder",
    "CompileOptions",
    # Converters
    "context_from_sqlalchemy",
    "relation_from_sqlalchemy",
    # Classification
    "DEFAULT_CLASSIFIER",
    "FunctionClassifier",
    "WindowFunctionSpec",
    "WindowCategory",
    "OrderSource",
    "classify",
    "rolling",
    # Compilation
    "CompiledStatement",
    "CompilerFactory",
    "SQLCompiler",
    "PostgresCompiler",
    "SQLiteCompiler",
    "MySQLCompiler",
    "DuckDBCompiler",
    # Logging
    "get_logger",
    "set_log_level",
    "enable_debug",
    # Errors
    "OverQLError",
    "ParseError",
    "ConfigError",
    "CompilationError",
    "UnknownFunctionError",
    "InvalidArgumentsError",
    "MissingOrderError",
    "NotAWindowContextError",
    "UnsupportedNestingError",
    "AmbiguousPartitionError",
    "UnsupportedFrameError",
]


def compile_statement(
    statement: Statement | dict[str, Any],
    context: QueryContext,
    *,
    classifier: FunctionClassifier | None = None,
    options: CompileOptions | None = None,
) -> CompiledStatement:
    """Validate, rewrite and compile a statement to SQL.

    Pipeline:
    1. Parse ``statement`` into a :class:`Statement` when given as a dict.
    2. Validate every window call against the classifier.
    3. Rewrite filters on window results into a subquery.
    4. Emit SQL for ``context.dialect``.

    Args:
        statement: A :class:`Statement` or its dict form.
        context: Partition columns, default ordering and dialect.
        classifier: Window function classifier; defaults to the built-in one.
        options: Alias naming options.

    Returns:
        :class:`CompiledStatement` with ``sql``, ``aliases``, ``dialect`` and
        the compiled ``statement``.

    Raises:
        ParseError: If the dict does not describe a valid Statement.
        CompilationError: (or subclass) if compilation fails.
    """
    if not isinstance(statement, Statement):
        try:
            statement = Statement.model_validate(statement)
        except PydanticValidationError as exc:
            raise ParseError(f"Statement does not match schema: {exc}") from exc

    return StatementCompiler(context, classifier=classifier, options=options).compile(statement)


def compile_json(
    statement_json: str,
    context: QueryContext,
    *,
    classifier: FunctionClassifier | None = None,
    options: CompileOptions | None = None,
) -> CompiledStatement:
    """Parse a JSON statement and compile it.

    Args:
        statement_json: JSON string describing a :class:`Statement`.
        context: Partition columns, default ordering and dialect.
        classifier: Window function classifier.
        options: Alias naming options.

    Raises:
        ParseError: If the JSON is malformed or does not match the schema.
        CompilationError: (or subclass) if compilation fails.
    """
    try:
        raw = json.loads(statement_json)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc}", raw=statement_json) from exc

    try:
        statement = Statement.model_validate(raw)
    except PydanticValidationError as exc:
        raise ParseError(f"Statement does not match schema: {exc}", raw=statement_json) from exc

    return compile_statement(statement, context, classifier=classifier, options=options)
