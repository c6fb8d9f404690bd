"""Dialect target → compiler class lookup.

The built-in targets are registered by ``overql/__init__.py``.  A custom
dialect only needs a :class:`~overql.compile.base.SQLCompiler` subclass and
one registration::

    @CompilerFactory.register("trino")
    class TrinoCompiler(SQLCompiler):
        ...

    QueryContext(dialect=DialectProfile(target="trino"))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

from overql.compile.base import SQLCompiler
from overql.errors import CompilationError


class CompilerFactory:
    """Process-wide table of compiler classes keyed by ``DialectProfile.target``."""

    _compilers: ClassVar[dict[str, type[SQLCompiler]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[SQLCompiler]], type[SQLCompiler]]:
        """Class decorator form of :meth:`register_class`."""

        def decorator(compiler_cls: type[SQLCompiler]) -> type[SQLCompiler]:
            cls.register_class(name, compiler_cls)
            return compiler_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, compiler_cls: type[SQLCompiler]) -> None:
        """Bind ``name`` to ``compiler_cls``, replacing any earlier binding."""
        cls._compilers[name] = compiler_cls

    @classmethod
    def create(cls, name: str) -> SQLCompiler:
        """Return a new compiler for the ``name`` target.

        Raises:
            CompilationError: ``UNSUPPORTED_DIALECT`` when nothing is bound
                to ``name``.
        """
        try:
            compiler_cls = cls._compilers[name]
        except KeyError:
            known = cls.registered_targets()
            raise CompilationError(
                f"No compiler registered for dialect '{name}' (known: {', '.join(known)}).",
                code="UNSUPPORTED_DIALECT",
                details={"target": name, "registered_targets": known},
            ) from None
        return compiler_cls()

    @classmethod
    def registered_targets(cls) -> list[str]:
        return sorted(cls._compilers)
