"""Logging and compile-option configuration for overql.

Logging follows the module-level logger pattern: a single ``"overql"``
logger is created lazily, gets one stream handler, and its level can be
changed at runtime::

    import logging
    from overql import config

    config.set_log_level(logging.DEBUG)

Statement-level knobs live in :class:`CompileOptions`.  Dialect capabilities
are configured separately through
:class:`~overql.schema.dialect.DialectProfile`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from overql.errors import ConfigError

# Module-level logger for overql
_logger: logging.Logger | None = None
_log_level: int = logging.WARNING

LOGGER_NAME = "overql"

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger() -> logging.Logger:
    """Return the overql logger, creating and configuring it on first use."""
    global _logger

    if _logger is None:
        _logger = logging.getLogger(LOGGER_NAME)
        _logger.setLevel(_log_level)

        if not _logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(_log_level)
            handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
            _logger.addHandler(handler)

    return _logger


def set_log_level(level: int) -> None:
    """Set the logging level for overql.

    Args:
        level: Logging level (e.g. ``logging.DEBUG``, ``logging.WARNING``).
    """
    global _log_level

    _log_level = level

    if _logger is not None:
        _logger.setLevel(level)
        for handler in _logger.handlers:
            handler.setLevel(level)


def enable_debug() -> None:
    """Enable debug logging (shortcut for ``set_log_level(logging.DEBUG)``)."""
    set_log_level(logging.DEBUG)


@dataclass(frozen=True)
class CompileOptions:
    """Per-compilation settings.

    Attributes:
        subquery_alias: Alias given to the inner select when a filter is
            rewritten into a subquery.
        alias_template: Format string for generated window column aliases.
            Receives ``stem`` (e.g. ``"rank"``) and ``n`` (1-based counter
            per stem); must contain ``{n}`` so aliases stay unique.
    """

    subquery_alias: str = "tmp"
    alias_template: str = "{stem}_{n}"

    def __post_init__(self) -> None:
        if not self.subquery_alias:
            raise ConfigError(
                "subquery_alias must be a non-empty identifier.",
                missing=["subquery_alias"],
                reason="Every derived table needs an alias in MySQL and PostgreSQL.",
            )
        if "{n}" not in self.alias_template:
            raise ConfigError(
                f"alias_template {self.alias_template!r} must contain '{{n}}'.",
                missing=["alias_template"],
                reason="Without a counter, two calls sharing a stem would get the same alias.",
            )

    def make_alias(self, stem: str, n: int) -> str:
        """Render a generated column alias."""
        return self.alias_template.format(stem=stem, n=n)
