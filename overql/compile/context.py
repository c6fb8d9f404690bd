"""Compilation context value object.

Packages the ``(compiler, query context, classifier, options)`` data clump
shared by the validator, clause resolver, expression builder, rewriter and
emitter into a single cohesive object.
"""
from __future__ import annotations

from dataclasses import dataclass

from overql.classify.registry import DEFAULT_CLASSIFIER, FunctionClassifier
from overql.compile.base import SQLCompiler
from overql.compile.registry import CompilerFactory
from overql.config import CompileOptions
from overql.schema.context import QueryContext


@dataclass(frozen=True)
class CompilationContext:
    """Immutable context for a single compilation run.

    Attributes:
        compiler: Dialect-specific SQL compiler instance.
        query: The statement's query context (partitions, ordering, dialect).
        classifier: Window function classifier.
        options: Compile options (alias naming, subquery alias).
    """

    compiler: SQLCompiler
    query: QueryContext
    classifier: FunctionClassifier = DEFAULT_CLASSIFIER
    options: CompileOptions = CompileOptions()

    @classmethod
    def create(
        cls,
        query: QueryContext,
        classifier: FunctionClassifier | None = None,
        options: CompileOptions | None = None,
    ) -> CompilationContext:
        """Build a context, picking the compiler registered for the query's dialect target."""
        return cls(
            compiler=CompilerFactory.create(query.dialect.target),
            query=query,
            classifier=classifier or DEFAULT_CLASSIFIER,
            options=options or CompileOptions(),
        )
