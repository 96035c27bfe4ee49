"""Error taxonomy for the alignment engine."""

from __future__ import annotations


class AlignmentError(Exception):
    """Base class for engine errors."""


class SourceUnavailableError(AlignmentError):
    """A goal or activity source query failed; nothing was persisted."""

    def __init__(self, source: str, message: str = "") -> None:
        self.source = source
        super().__init__(f"Source '{source}' unavailable" + (f": {message}" if message else ""))


class InvalidDateError(AlignmentError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid date: {value!r}")
