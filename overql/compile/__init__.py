"""overql compilation layer: Statement → SQL with window clauses."""
from overql.compile.base import CompiledStatement, SQLCompiler
from overql.compile.builder import StatementCompiler
from overql.compile.clause_resolver import ClauseResolver, ResolvedWindow
from overql.compile.duckdb import DuckDBCompiler
from overql.compile.mysql import MySQLCompiler
from overql.compile.postgres import PostgresCompiler
from overql.compile.rewriter import QueryRewriter
from overql.compile.sqlite import SQLiteCompiler

__all__ = [
    "ClauseResolver",
    "CompiledStatement",
    "DuckDBCompiler",
    "MySQLCompiler",
    "PostgresCompiler",
    "QueryRewriter",
    "ResolvedWindow",
    "SQLCompiler",
    "SQLiteCompiler",
    "StatementCompiler",
]
