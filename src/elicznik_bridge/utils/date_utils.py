from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from typing import Iterator

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
PORTAL_DATE_PATTERN = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")
PORTAL_DATE_FORMAT = "%d.%m.%Y"


@dataclass(frozen=True)
class DateRange:
    """Immutable inclusive date range sent to the portal.

    The portal expects ``DD.MM.YYYY`` while callers and result files use ISO
    dates, so both renderings are exposed.

    Attributes:
        start: Start date (inclusive).
        end: End date (inclusive).

    Examples:
        >>> date_range = DateRange(
        ...     start=dt.date(2025, 8, 10),
        ...     end=dt.date(2025, 8, 15)
        ... )
        >>> date_range.days
        6
        >>> date_range.portal_start
        '10.08.2025'
    """
    start: dt.date
    end: dt.date

    def __post_init__(self) -> None:
        """Validate that start date is not after end date."""
        if self.start > self.end:
            raise ValueError(
                f"Start date ({self.start}) must not be after end date ({self.end})"
            )

    @property
    def days(self) -> int:
        """Return the number of calendar days covered, both ends included."""
        return (self.end - self.start).days + 1

    @property
    def iso_start(self) -> str:
        return self.start.isoformat()

    @property
    def iso_end(self) -> str:
        return self.end.isoformat()

    @property
    def portal_start(self) -> str:
        return format_portal_date(self.start)

    @property
    def portal_end(self) -> str:
        return format_portal_date(self.end)

    def iter_days(self) -> Iterator[dt.date]:
        """Yield every calendar day in the range, start and end included."""
        cursor = self.start
        step = dt.timedelta(days=1)
        while cursor <= self.end:
            yield cursor
            cursor += step


def format_portal_date(value: dt.date) -> str:
    """Render a date as DD.MM.YYYY."""
    return value.strftime(PORTAL_DATE_FORMAT)


def parse_flexible_date(value: str) -> dt.date:
    """Parse a date written as YYYY-MM-DD or DD.MM.YYYY.

    Args:
        value: Date string; surrounding whitespace is ignored.

    Returns:
        Parsed date object.

    Raises:
        ValueError: If the text matches neither format or is not a real
            calendar date (e.g. 2025-02-29).

    Examples:
        >>> parse_flexible_date("29.02.2024")
        datetime.date(2024, 2, 29)
    """
    text = (value or "").strip()
    try:
        if ISO_DATE_PATTERN.match(text):
            return dt.date.fromisoformat(text)
        if PORTAL_DATE_PATTERN.match(text):
            return dt.datetime.strptime(text, PORTAL_DATE_FORMAT).date()
    except ValueError as exc:
        raise ValueError(f"Invalid date '{value}'. Not a calendar date.") from exc
    raise ValueError(f"Invalid date '{value}'. Use YYYY-MM-DD or DD.MM.YYYY")


def to_portal_date(value: str) -> str:
    """Convert YYYY-MM-DD (or an already portal-native date) to DD.MM.YYYY."""
    return format_portal_date(parse_flexible_date(value))


def to_iso_date(value: str) -> str:
    """Convert DD.MM.YYYY (or an already ISO date) to YYYY-MM-DD."""
    return parse_flexible_date(value).isoformat()


def first_day_of_month(value: dt.date) -> dt.date:
    return value.replace(day=1)


def last_day_of_month(value: dt.date) -> dt.date:
    """Return the last calendar day of the month containing ``value``."""
    if value.month == 12:
        return dt.date(value.year, 12, 31)
    return dt.date(value.year, value.month + 1, 1) - dt.timedelta(days=1)


def shift_months(value: dt.date, months: int) -> dt.date:
    """Move a first-of-month date by a whole number of months."""
    index = value.year * 12 + (value.month - 1) + months
    return dt.date(index // 12, index % 12 + 1, 1)


__all__ = [
    "DateRange",
    "ISO_DATE_PATTERN",
    "PORTAL_DATE_PATTERN",
    "format_portal_date",
    "parse_flexible_date",
    "to_portal_date",
    "to_iso_date",
    "first_day_of_month",
    "last_day_of_month",
    "shift_months",
]
