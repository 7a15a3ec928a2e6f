"""
Tests for turning date specs into date ranges.
"""

from datetime import date

import pytest

from cal import (
    Quarter,
    Year,
    YearMonthSpec,
    YearQuarterSpec,
    YearSpec,
    YearStyle,
    add_months,
    last_day_of_month,
    parse_date_spec,
    resolve_range,
)

TODAY = date(2024, 3, 15)


def spec(token):
    return parse_date_spec(token, TODAY)


class TestMonthArithmetic:
    """add_months / last_day_of_month."""

    def test_add_months_within_year(self):
        assert add_months(2024, 3, 2) == (2024, 5)

    def test_add_months_forward_rollover(self):
        assert add_months(2024, 11, 3) == (2025, 2)
        assert add_months(2024, 12, 12) == (2025, 12)

    def test_add_months_backward_rollover(self):
        assert add_months(2024, 1, -1) == (2023, 12)
        assert add_months(2024, 3, -2) == (2024, 1)
        assert add_months(2024, 2, -12) == (2023, 2)

    def test_last_day_of_month(self):
        assert last_day_of_month(2024, 2) == date(2024, 2, 29)
        assert last_day_of_month(2023, 2) == date(2023, 2, 28)
        assert last_day_of_month(2024, 4) == date(2024, 4, 30)
        assert last_day_of_month(2024, 12) == date(2024, 12, 31)

    def test_last_day_of_invalid_month(self):
        with pytest.raises(ValueError):
            last_day_of_month(2024, 13)


class TestBaseRanges:
    """Ranges covered by each kind of spec."""

    def test_year(self):
        assert resolve_range(TODAY, spec("2023")) == (date(2023, 1, 1), date(2023, 12, 31))

    def test_year_month(self):
        assert resolve_range(TODAY, spec("2024-02")) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_year_month_december(self):
        assert resolve_range(TODAY, spec("202312")) == (date(2023, 12, 1), date(2023, 12, 31))

    def test_calendar_quarter(self):
        result = resolve_range(TODAY, YearQuarterSpec(Year(YearStyle.CALENDAR, 2024), Quarter.Q1))
        assert result == (date(2024, 1, 1), date(2024, 3, 31))

    def test_calendar_q4(self):
        assert resolve_range(TODAY, spec("2024Q4")) == (date(2024, 10, 1), date(2024, 12, 31))

    def test_fiscal_year(self):
        assert resolve_range(TODAY, spec("FY2024")) == (date(2023, 7, 1), date(2024, 6, 30))

    @pytest.mark.parametrize("token, expected", [
        ("FY2024Q1", (date(2023, 7, 1), date(2023, 9, 30))),
        ("FY2024Q2", (date(2023, 10, 1), date(2023, 12, 31))),
        ("FY2024Q3", (date(2024, 1, 1), date(2024, 3, 31))),
        ("FY2024Q4", (date(2024, 4, 1), date(2024, 6, 30))),
        ("FY2090Q3", (date(2090, 1, 1), date(2090, 3, 31))),
    ])
    def test_fiscal_quarters(self, token, expected):
        assert resolve_range(TODAY, spec(token)) == expected

    def test_fiscal_year_month(self):
        """August of fiscal 2024 is August 2023."""
        assert resolve_range(TODAY, spec("FY2024-08")) == (date(2023, 8, 1), date(2023, 8, 31))
        assert resolve_range(TODAY, spec("FY2024-02")) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_fiscal_compact_year_month(self):
        assert resolve_range(TODAY, spec("FY202408")) == (date(2023, 8, 1), date(2023, 8, 31))
        assert resolve_range(TODAY, spec("FY202403")) == (date(2024, 3, 1), date(2024, 3, 31))


class TestExplicitValues:
    """Explicit year/month and the default."""

    def test_default_is_current_month(self):
        assert resolve_range(TODAY) == (date(2024, 3, 1), date(2024, 3, 31))

    def test_year_and_month(self):
        assert resolve_range(TODAY, year=2020, month=2) == (date(2020, 2, 1), date(2020, 2, 29))

    def test_year_alone(self):
        assert resolve_range(TODAY, year=2020) == (date(2020, 1, 1), date(2020, 12, 31))

    def test_month_alone_uses_current_year(self):
        assert resolve_range(TODAY, month=7) == (date(2024, 7, 1), date(2024, 7, 31))

    def test_explicit_values_win_over_spec(self):
        assert resolve_range(TODAY, spec("2023Q1"), year=2020) == (date(2020, 1, 1), date(2020, 12, 31))

    def test_invalid_month_is_fatal(self):
        with pytest.raises(ValueError):
            resolve_range(TODAY, year=2024, month=13)

    def test_invalid_spec_month_is_fatal(self):
        with pytest.raises(ValueError):
            resolve_range(TODAY, YearMonthSpec(Year(YearStyle.CALENDAR, 2024), 13))


class TestOffsets:
    """months before / after."""

    def test_before_and_after(self):
        result = resolve_range(TODAY, spec("2024-03"), before=1, after=1)
        assert result == (date(2024, 2, 1), date(2024, 4, 30))

    def test_before_within_year(self):
        assert resolve_range(TODAY, spec("2024-03"), before=2)[0] == date(2024, 1, 1)

    def test_before_crosses_year(self):
        assert resolve_range(TODAY, spec("2024-01"), before=1)[0] == date(2023, 12, 1)

    def test_after_crosses_year(self):
        assert resolve_range(TODAY, spec("2024-11"), after=2)[1] == date(2025, 1, 31)

    def test_after_snaps_to_month_end(self):
        """Moving from a 31-day month into February lands on Feb's last day."""
        assert resolve_range(TODAY, spec("2024-01"), after=1)[1] == date(2024, 2, 29)

    def test_full_year_offsets(self):
        result = resolve_range(TODAY, YearSpec(Year(YearStyle.CALENDAR, 2024)), before=12, after=12)
        assert result == (date(2023, 1, 1), date(2025, 12, 31))

    def test_offset_past_supported_dates_is_fatal(self):
        with pytest.raises(ValueError):
            resolve_range(TODAY, spec("9999-12"), after=1)
