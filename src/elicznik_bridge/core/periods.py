"""Resolve logical period descriptors into concrete date ranges."""
from __future__ import annotations

import datetime as dt
import re
from typing import Optional
from zoneinfo import ZoneInfo

from elicznik_bridge.clients.tauron.constants import ALLOWED_PERIODS
from elicznik_bridge.clients.tauron.models import InvalidInputError
from elicznik_bridge.utils.date_utils import (
    DateRange,
    first_day_of_month,
    last_day_of_month,
    parse_flexible_date,
    shift_months,
)

DEFAULT_TIMEZONE = "Europe/Warsaw"
MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
YEAR_PATTERN = re.compile(r"^\d{4}$")


def current_date(timezone: str = DEFAULT_TIMEZONE) -> dt.date:
    """Today in the portal's home timezone."""
    return dt.datetime.now(ZoneInfo(timezone)).date()


def _parse_month(value: Optional[str]) -> Optional[dt.date]:
    match = MONTH_PATTERN.match((value or "").strip())
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12 or year < 1:
        return None
    return dt.date(year, month, 1)


def _parse_year(value: Optional[str]) -> Optional[int]:
    text = (value or "").strip()
    if not YEAR_PATTERN.match(text) or int(text) < 1:
        return None
    return int(text)


def resolve_period(
    period: str,
    *,
    month: Optional[str] = None,
    year: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    today: Optional[dt.date] = None,
    timezone: str = DEFAULT_TIMEZONE,
) -> DateRange:
    """Turn a period descriptor into an inclusive DateRange.

    Args:
        period: One of ``range``, ``monthly``, ``yearly``, ``last_12_months``.
        month: ``YYYY-MM`` hint for ``monthly``; malformed hints fall back to
            the current month.
        year: ``YYYY`` hint for ``yearly``; malformed hints fall back to the
            current year.
        date_from: Range start for ``range`` (ISO or DD.MM.YYYY).
        date_to: Range end for ``range`` (ISO or DD.MM.YYYY).
        today: Override for the current date.
        timezone: Timezone used to determine the current date.

    Returns:
        The resolved DateRange.

    Raises:
        InvalidInputError: For an unknown period, missing or malformed range
            bounds, or a start after the end.
    """
    kind = (period or "").strip().lower()
    if kind not in ALLOWED_PERIODS:
        raise InvalidInputError(
            f"Invalid period '{period}'. Allowed: {','.join(ALLOWED_PERIODS)}"
        )

    if kind == "range":
        if not date_from or not date_to:
            raise InvalidInputError('Missing "from" and/or "to" parameters for period=range.')
        try:
            start = parse_flexible_date(date_from)
            end = parse_flexible_date(date_to)
        except ValueError as exc:
            raise InvalidInputError("Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY") from exc
        if start > end:
            raise InvalidInputError("'from' must be earlier than or equal to 'to'")
        return DateRange(start=start, end=end)

    today = today or current_date(timezone)

    if kind == "monthly":
        first = _parse_month(month) or first_day_of_month(today)
        return DateRange(start=first, end=last_day_of_month(first))

    if kind == "yearly":
        resolved_year = _parse_year(year) or today.year
        return DateRange(start=dt.date(resolved_year, 1, 1), end=dt.date(resolved_year, 12, 31))

    # last_12_months: eleven full months back plus the current one
    this_month = first_day_of_month(today)
    return DateRange(start=shift_months(this_month, -11), end=last_day_of_month(this_month))


__all__ = [
    "DEFAULT_TIMEZONE",
    "current_date",
    "resolve_period",
]
