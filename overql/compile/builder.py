"""Statement → SQL compilation pipeline.

``StatementCompiler`` is the top-level orchestrator.  It wires together the
validator, the expression builder / clause resolver pair, the rewriter and
the emitter, then drives the compilation algorithm::

    validate → rewrite → validate_rewritten → emit

Sub-builder hierarchy
---------------------
StatementCompiler
  ├── StatementValidator  (validate/validator.py)
  ├── ExpressionBuilder   (expression_builder.py)
  ├── ClauseResolver      (clause_resolver.py)
  ├── QueryRewriter       (rewriter.py)
  └── SQLEmitter          (emitter.py)

A compiler instance holds no per-statement state; one instance may compile
any number of statements against the same context.
"""
from __future__ import annotations

from overql.classify.registry import FunctionClassifier
from overql.compile.base import CompiledStatement, SQLCompiler
from overql.compile.clause_resolver import ClauseResolver
from overql.compile.context import CompilationContext
from overql.compile.emitter import SQLEmitter
from overql.compile.expression_builder import ExpressionBuilder
from overql.compile.rewriter import QueryRewriter
from overql.config import CompileOptions, get_logger
from overql.schema.context import QueryContext
from overql.schema.statement import Statement
from overql.validate.validator import StatementValidator

logger = get_logger()


class StatementCompiler:
    """Compiles a Statement to SQL for the dialect of its query context.

    Args:
        context: Query context (partitions, default ordering, dialect).
        classifier: Window function classifier; defaults to the built-in one.
        options: Alias naming options.
        compiler: Dialect compiler override.  Defaults to the compiler
            registered for ``context.dialect.target``.
    """

    def __init__(
        self,
        context: QueryContext,
        classifier: FunctionClassifier | None = None,
        options: CompileOptions | None = None,
        compiler: SQLCompiler | None = None,
    ) -> None:
        ctx = CompilationContext.create(context, classifier, options)
        if compiler is not None:
            ctx = CompilationContext(
                compiler=compiler,
                query=ctx.query,
                classifier=ctx.classifier,
                options=ctx.options,
            )
        self._ctx = ctx

    @property
    def context(self) -> CompilationContext:
        return self._ctx

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile(self, statement: Statement) -> CompiledStatement:
        """Compile ``statement``.

        Returns:
            :class:`~overql.compile.base.CompiledStatement` with the SQL, the
            generated aliases and the (possibly rewritten) statement.

        Raises:
            CompilationError: (or subclass) on the first failure.
        """
        logger.debug(
            "Compiling statement for %s (partition=%s, order=%s)",
            self._ctx.compiler.dialect_name,
            list(self._ctx.query.partition_columns),
            [key.describe() for key in self._ctx.query.default_order],
        )
        sub_builders = self._make_sub_builders()

        sub_builders["validator"].validate(statement)
        rewritten = sub_builders["rewriter"].rewrite(statement)
        if rewritten is not statement:
            sub_builders["validator"].validate_rewritten(rewritten)

        sql = sub_builders["emitter"].emit(rewritten)
        logger.debug("Compiled SQL:\n%s", sql)
        return CompiledStatement(
            sql=sql,
            dialect=self._ctx.compiler.dialect_name,
            statement=rewritten,
            aliases=rewritten.promoted_columns(),
        )

    # ------------------------------------------------------------------
    # Sub-builder wiring
    # ------------------------------------------------------------------

    def _make_sub_builders(self) -> dict:
        """Construct and wire the sub-builder graph for one compilation run."""
        # The expression builder and resolver are mutually dependent.
        expr_builder = ExpressionBuilder.__new__(ExpressionBuilder)
        resolver = ClauseResolver(self._ctx, expr_builder.build)
        expr_builder.__init__(self._ctx, resolver)  # type: ignore[misc]

        return {
            "validator": StatementValidator(self._ctx),
            "expr": expr_builder,
            "resolver": resolver,
            "rewriter": QueryRewriter(self._ctx, resolver),
            "emitter": SQLEmitter(self._ctx, expr_builder),
        }
