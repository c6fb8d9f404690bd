"""Pydantic model for the DialectProfile carried by every QueryContext.

The profile names the compiler target and the window-frame capabilities the
target engine offers.  Create a profile through the builder::

    from overql import DialectProfile

    # PostgreSQL with the default capabilities (ROWS frames, any offset)
    profile = DialectProfile.builder("postgres").build()

    # An engine that caps frame offsets
    profile = DialectProfile.builder("sqlite").max_frame_offset(1000).build()

    # An engine without frame clauses: only frame-free windows compile
    profile = DialectProfile.builder("mysql").without_frames().build()
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from overql.errors import ConfigError

#: Supported compiler targets.
DialectTarget = Literal["postgres", "sqlite", "mysql", "duckdb"]


class DialectProfile(BaseModel):
    """Combines the backend target with its window-frame capabilities.

    Attributes:
        target: Backend to compile for.
        frames: Whether ``ROWS BETWEEN … AND …`` frame clauses are supported.
        max_frame_offset: Largest ``n`` allowed in ``n PRECEDING`` /
            ``n FOLLOWING`` (``None`` = unlimited).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    target: DialectTarget = "postgres"
    frames: bool = True
    max_frame_offset: int | None = None

    @classmethod
    def builder(cls, target: DialectTarget = "postgres") -> DialectProfileBuilder:
        """Return a :class:`DialectProfileBuilder` for ``target``.

        Args:
            target: Compiler backend.

        Returns:
            A fresh :class:`DialectProfileBuilder`.
        """
        return DialectProfileBuilder(target=target)


class DialectProfileBuilder:
    """Fluent builder for :class:`DialectProfile`.

    Always obtained via :meth:`DialectProfile.builder`.
    """

    def __init__(self, target: DialectTarget) -> None:
        self._target = target
        self._frames: bool = True
        self._max_frame_offset: int | None = None

    def max_frame_offset(self, offset: int) -> DialectProfileBuilder:
        """Cap the row offset accepted in rolling frames."""
        self._max_frame_offset = offset
        return self

    def without_frames(self) -> DialectProfileBuilder:
        """Declare that the target has no frame clause support."""
        self._frames = False
        return self

    def build(self) -> DialectProfile:
        """Validate the configuration and return the :class:`DialectProfile`.

        Raises:
            ConfigError: When the combination of settings is contradictory.
        """
        self._validate()
        return DialectProfile(
            target=self._target,
            frames=self._frames,
            max_frame_offset=self._max_frame_offset,
        )

    # ------------------------------------------------------------------
    # Internal validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        """Raise :class:`ConfigError` for invalid configurations.

        Rules
        -----
        ``max_frame_offset`` must not be negative
            A negative cap would reject every rolling frame, including zero
            width ones.

        ``max_frame_offset`` requires frames
            An offset cap on a frame-less profile can never apply.
        """
        if self._max_frame_offset is not None and self._max_frame_offset < 0:
            raise ConfigError(
                f"max_frame_offset must be >= 0, got {self._max_frame_offset}.",
                missing=["max_frame_offset"],
                reason="Frame offsets are row counts.",
            )
        if self._max_frame_offset is not None and not self._frames:
            raise ConfigError(
                "max_frame_offset() cannot be combined with without_frames(). "
                "Remove one of the two calls.",
                missing=["frames"],
                reason="An offset cap only applies to profiles that support frames.",
            )
