"""Exceptions raised by the spacing engine and its store adapters."""

from __future__ import annotations


class SpacingError(Exception):
    """Base class for engine errors."""


class StoreUnavailableError(SpacingError):
    """The association store could not be read or written."""


class InvalidDecisionError(SpacingError, ValueError):
    """A grading decision string was not RIGHT, WRONG or SKIP."""
