"""
Error types for operations that must fail as a whole.

Per-item problems (one broken feed event, an event that fits no slot) are
skipped instead, and "no school day" is a plain None, never an exception.
"""

from __future__ import annotations


class TimetableError(ValueError):
    """Base class for fatal errors of one import or correction."""


class FeedParseError(TimetableError):
    """The feed text is not a calendar document."""


class TemplateBuildError(TimetableError):
    """The parsed events do not contain a usable fortnight."""


class MappingError(TimetableError):
    """A mapping correction was requested but cannot be applied."""
