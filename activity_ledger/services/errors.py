"""Errors and non-fatal warnings produced by the statement pipeline.

Only ``FatalParseError`` is raised. Everything else is a value that is
collected alongside a still-usable partial result, so a statement with a few
bad rows still imports its valid majority.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


class FatalParseError(Exception):
    """The buffer could not be tokenized into rows at all."""


@dataclass(frozen=True)
class RowError:
    """A single row that was skipped."""

    line_number: int
    section: str | None
    message: str

    def __str__(self) -> str:
        where = f"{self.section} " if self.section else ""
        return f"{where}line {self.line_number}: {self.message}"


@dataclass(frozen=True)
class RateFallbackWarning:
    """No forex trade was observed for a currency on a day; a default rate was used."""

    currency: str
    date: date
    rate: Decimal

    def __str__(self) -> str:
        return f"No observed {self.currency} rate on {self.date}, used default {self.rate}"


@dataclass(frozen=True)
class ClampWarning:
    """A sell exceeded the held quantity and was clamped to it."""

    symbol: str
    date: date
    requested: Decimal
    applied: Decimal

    @property
    def discarded(self) -> Decimal:
        return self.requested - self.applied

    def __str__(self) -> str:
        return (
            f"SELL {self.requested} {self.symbol} on {self.date} exceeds holding, "
            f"applied {self.applied}"
        )
