"""Custom exception hierarchy for overql.

All public errors inherit from :class:`OverQLError` so callers can catch the
base class for any overql-specific failure.

Every :class:`CompilationError` is a compile-time, non-retryable failure for
the statement being compiled.  Each subclass carries a machine-readable
``code`` and a ``details`` dict (function name, argument position, statement
fragment) so callers can build an actionable diagnostic.
"""
from __future__ import annotations

from typing import Any


class OverQLError(Exception):
    """Base exception for all overql errors."""


class ParseError(OverQLError):
    """Raised when input cannot be parsed as a valid Statement.

    Args:
        message: Human-readable description.
        raw: The raw string that failed to parse.
    """

    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class ConfigError(OverQLError):
    """Raised when a DialectProfile, QueryContext or CompileOptions is misconfigured.

    Detected when the configuration object is built, before any statement is
    compiled, so the developer gets a clear message instead of a confusing
    compilation failure later.

    Args:
        message: Human-readable description.
        missing: Setting(s) that must be added or changed.
        reason: Why the constraint exists.
    """

    def __init__(
        self,
        message: str,
        missing: list[str] | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message)
        self.missing = missing or []
        self.reason = reason or ""


class CompilationError(OverQLError):
    """Raised when a statement cannot be compiled.

    Args:
        message: Human-readable description.
        code: Machine-readable error code (e.g. ``MISSING_ORDER``).
        details: Structured context for the diagnostic.
        clause: The statement clause being compiled when the error occurred.
    """

    def __init__(
        self,
        message: str,
        code: str = "COMPILATION_ERROR",
        details: dict[str, Any] | None = None,
        clause: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details: dict[str, Any] = details or {}
        self.clause = clause

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured error response suitable for diagnostics."""
        response: dict[str, Any] = {
            "error": self.code,
            "message": str(self),
            "details": self.details,
        }
        if self.clause is not None:
            response["clause"] = self.clause
        return response


class UnknownFunctionError(CompilationError):
    """Raised when a call names a function the classifier (or dialect) does not know."""

    def __init__(
        self,
        function: str,
        known_functions: list[str] | None = None,
        dialect: str | None = None,
    ) -> None:
        if dialect is None:
            message = f"Unknown window function '{function}'."
        else:
            message = f"Window function '{function}' is not available in dialect '{dialect}'."
        details: dict[str, Any] = {"function": function}
        if known_functions is not None:
            details["known_functions"] = known_functions
        if dialect is not None:
            details["dialect"] = dialect
        super().__init__(message, code="UNKNOWN_FUNCTION", details=details)


class InvalidArgumentsError(CompilationError):
    """Raised when a call's arguments do not fit the function's signature."""

    def __init__(
        self,
        function: str,
        message: str,
        position: int | None = None,
        fragment: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code="INVALID_ARGUMENTS",
            details={"function": function, "position": position, "fragment": fragment},
        )


class MissingOrderError(CompilationError):
    """Raised when an order-dependent function has no ordering from any source."""

    def __init__(self, function: str, fragment: str | None = None) -> None:
        super().__init__(
            f"Window function '{function}' requires an ordering, but none was given "
            "as an argument, an order_by override, or a context default.",
            code="MISSING_ORDER",
            details={"function": function, "fragment": fragment},
        )


class NotAWindowContextError(CompilationError):
    """Raised when a plain aggregate is used where no window applies."""

    def __init__(self, function: str, fragment: str | None = None) -> None:
        super().__init__(
            f"Aggregate '{function}' is used outside a window context (no partition, "
            "no ordering, not in a filter); use ordinary aggregation instead.",
            code="NOT_A_WINDOW_CONTEXT",
            details={"function": function, "fragment": fragment},
        )


class UnsupportedNestingError(CompilationError):
    """Raised when a window function call appears inside another one."""

    def __init__(
        self,
        outer: str,
        inner: str,
        position: int | None = None,
        fragment: str | None = None,
    ) -> None:
        super().__init__(
            f"Window function '{inner}' cannot be nested inside window function '{outer}'.",
            code="UNSUPPORTED_NESTING",
            details={
                "function": outer,
                "nested_function": inner,
                "position": position,
                "fragment": fragment,
            },
        )


class AmbiguousPartitionError(CompilationError):
    """Raised when window clauses in one statement disagree on PARTITION BY."""

    def __init__(self, partitions: list[list[str]]) -> None:
        super().__init__(
            f"Window clauses in one statement use different partitions: {partitions}.",
            code="AMBIGUOUS_PARTITION",
            details={"partitions": partitions},
        )


class UnsupportedFrameError(CompilationError):
    """Raised when a window frame cannot be represented in the target dialect."""

    def __init__(
        self,
        function: str,
        reason: str,
        preceding: int | None = None,
        following: int | None = None,
    ) -> None:
        super().__init__(
            f"Frame for window function '{function}' is not supported: {reason}",
            code="UNSUPPORTED_FRAME",
            details={
                "function": function,
                "preceding": preceding,
                "following": following,
            },
        )
