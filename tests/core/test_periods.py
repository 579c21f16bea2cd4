"""Tests for period resolution."""

from __future__ import annotations

import datetime as dt
from unittest.mock import patch

import pytest

from elicznik_bridge.clients.tauron.models import InvalidInputError
from elicznik_bridge.core.periods import current_date, resolve_period
from elicznik_bridge.utils.date_utils import DateRange

TODAY = dt.date(2025, 3, 15)


class TestRangePeriod:
    def test_iso_bounds(self):
        assert resolve_period("range", date_from="2024-01-01", date_to="2024-01-31") == DateRange(
            start=dt.date(2024, 1, 1), end=dt.date(2024, 1, 31)
        )

    def test_portal_bounds(self):
        result = resolve_period("range", date_from="01.02.2024", date_to="29.02.2024")
        assert result.iso_start == "2024-02-01"
        assert result.iso_end == "2024-02-29"

    def test_single_day(self):
        assert resolve_period("range", date_from="2024-01-01", date_to="2024-01-01").days == 1

    @pytest.mark.parametrize("date_from, date_to", [(None, "2024-01-01"), ("2024-01-01", None), ("", "")])
    def test_missing_bounds(self, date_from, date_to):
        with pytest.raises(InvalidInputError, match='Missing "from" and/or "to"'):
            resolve_period("range", date_from=date_from, date_to=date_to)

    def test_malformed_bound(self):
        with pytest.raises(InvalidInputError, match="Invalid date format"):
            resolve_period("range", date_from="2024/01/01", date_to="2024-01-02")

    def test_impossible_date(self):
        with pytest.raises(InvalidInputError, match="Invalid date format"):
            resolve_period("range", date_from="2025-02-29", date_to="2025-03-01")

    def test_reversed_bounds(self):
        with pytest.raises(InvalidInputError, match="'from' must be earlier than or equal to 'to'") as exc_info:
            resolve_period("range", date_from="2024-01-31", date_to="2024-01-01")
        assert exc_info.value.status_code == 400


class TestCalendarPeriods:
    def test_monthly_with_hint(self):
        result = resolve_period("monthly", month="2024-02", today=TODAY)
        assert (result.start, result.end) == (dt.date(2024, 2, 1), dt.date(2024, 2, 29))

    @pytest.mark.parametrize("hint", [None, "", "2024-13", "2024-1", "garbage"])
    def test_monthly_falls_back_to_current_month(self, hint):
        result = resolve_period("monthly", month=hint, today=TODAY)
        assert (result.start, result.end) == (dt.date(2025, 3, 1), dt.date(2025, 3, 31))

    def test_yearly_with_hint(self):
        result = resolve_period("yearly", year="2023", today=TODAY)
        assert (result.start, result.end) == (dt.date(2023, 1, 1), dt.date(2023, 12, 31))

    @pytest.mark.parametrize("hint", [None, "23", "abcd", "0000"])
    def test_yearly_falls_back_to_current_year(self, hint):
        result = resolve_period("yearly", year=hint, today=TODAY)
        assert (result.start, result.end) == (dt.date(2025, 1, 1), dt.date(2025, 12, 31))

    def test_last_12_months(self):
        result = resolve_period("last_12_months", today=TODAY)
        assert (result.start, result.end) == (dt.date(2024, 4, 1), dt.date(2025, 3, 31))

    def test_last_12_months_in_january(self):
        result = resolve_period("last_12_months", today=dt.date(2025, 1, 2))
        assert (result.start, result.end) == (dt.date(2024, 2, 1), dt.date(2025, 1, 31))

    def test_calendar_periods_ignore_range_bounds(self):
        result = resolve_period("monthly", month="2024-02", date_from="bad", date_to="bad", today=TODAY)
        assert result.iso_start == "2024-02-01"

    def test_period_is_case_insensitive(self):
        assert resolve_period("MONTHLY", month="2024-02", today=TODAY).days == 29

    def test_unknown_period(self):
        with pytest.raises(InvalidInputError, match="Invalid period 'weekly'"):
            resolve_period("weekly", today=TODAY)

    def test_today_defaults_to_portal_timezone(self):
        with patch("elicznik_bridge.core.periods.current_date", return_value=TODAY) as mock_today:
            result = resolve_period("monthly", timezone="Europe/Warsaw")
        mock_today.assert_called_once_with("Europe/Warsaw")
        assert result.start == dt.date(2025, 3, 1)


def test_current_date_returns_date():
    assert isinstance(current_date("Europe/Warsaw"), dt.date)
