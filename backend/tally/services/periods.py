"""
Calendar month arithmetic and half-open date ranges (UTC).
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_iso_datetime(value: str) -> datetime:
    """
    Parse an ISO-8601 date or timestamp into a naive UTC datetime.
    Date-only values become midnight. Raises ValueError on garbage.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError("expected an ISO-8601 date")
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_iso_timestamp(value: Optional[datetime]) -> str:
    """Full ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-15T00:00:00.000Z."""
    if value is None:
        return ""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


@dataclass(frozen=True, order=True)
class Month:
    """A calendar month."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError("month must be between 1 and 12")
        if not 1 <= self.year <= 9999:
            raise ValueError("year out of range")

    @classmethod
    def of(cls, value: date) -> "Month":
        return cls(value.year, value.month)

    @classmethod
    def parse(cls, key: str) -> "Month":
        """Parse a "YYYY-MM" key."""
        match = MONTH_KEY_RE.match(key.strip()) if isinstance(key, str) else None
        if not match:
            raise ValueError("expected a YYYY-MM month")
        return cls(int(match.group(1)), int(match.group(2)))

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def shift(self, months: int) -> "Month":
        index = self.year * 12 + (self.month - 1) + months
        return Month(index // 12, index % 12 + 1)

    @property
    def start(self) -> datetime:
        return datetime(self.year, self.month, 1)

    @property
    def end(self) -> datetime:
        """Exclusive upper bound: first instant of the next month."""
        return self.shift(1).start

    def range(self) -> "PeriodRange":
        return PeriodRange(self.start, self.end)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class PeriodRange:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    @classmethod
    def from_bounds(cls, start: datetime, end: datetime) -> "PeriodRange":
        """
        Build a half-open range from caller bounds. A calendar-day upper bound
        (zero time component) is advanced one day so that day is included.
        """
        if end.time() == time(0, 0):
            try:
                end = end + timedelta(days=1)
            except OverflowError as e:
                raise ValueError("to is out of range") from e
        if start >= end:
            raise ValueError("from must be before to")
        return cls(start, end)

    def contains(self, value: datetime) -> bool:
        return self.start <= value < self.end


def month_window(anchor: Month, count: int) -> list[Month]:
    """The `count` consecutive months ending at `anchor`, oldest first."""
    return [anchor.shift(offset) for offset in range(-(count - 1), 1)]
