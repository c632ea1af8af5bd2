"""
Exceptions raised by the Airfare Watch pipeline.

Every error is fatal for a run: nothing is retried and no partial report is
written.
"""

from typing import Optional, Sequence


class AirfareError(Exception):
    """Base class for pipeline failures."""


class LoadError(AirfareError):
    """A source file is missing, unreadable or lacks an expected column."""

    def __init__(self, source: str, reason: str):
        self.source = str(source)
        self.reason = reason
        super().__init__(f"Cannot load '{self.source}': {reason}")


class ParseError(AirfareError, ValueError):
    """A date_recorded value does not match MM/DD/YYYY."""

    def __init__(self, value, source: Optional[str] = None, row: Optional[int] = None):
        self.value = value
        self.source = str(source) if source is not None else None
        self.row = row

        message = f"Cannot parse recorded date {value!r}. Expected 'MM/DD/YYYY'"
        if self.source is not None:
            location = self.source if row is None else f"{self.source}, row {row}"
            message = f"{message} ({location})"
        super().__init__(message)


class OrderingViolation(AirfareError):
    """A flight date's observations cannot be put in strict chronological order."""

    def __init__(
        self,
        flight_date: str,
        dates: Sequence,
        problem: str = "has more than one observation recorded on",
    ):
        self.flight_date = flight_date
        self.dates = list(dates)
        self.problem = problem
        listed = ", ".join(str(d) for d in self.dates)
        super().__init__(f"Flight date {flight_date} {problem}: {listed}")
