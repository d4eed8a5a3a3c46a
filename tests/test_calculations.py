#!/usr/bin/env python3
"""Tests for calculation helper functions."""
from datetime import datetime

from ledger import Status
from ledger.calculations import calc_due_date, calc_due_km, check_status, days_between, worst_status


class TestCalcDueKm:
    """Tests for calc_due_km helper function."""

    def test_with_baseline(self):
        """last_km + interval when a baseline exists."""
        assert calc_due_km(5000, 10000) == 15000

    def test_without_baseline(self):
        """None when the interval was never done."""
        assert calc_due_km(None, 10000) is None

    def test_no_interval(self):
        """None when no interval defined."""
        assert calc_due_km(5000, None) is None
        assert calc_due_km(None, None) is None


class TestCalcDueDate:
    """Tests for calc_due_date helper function."""

    def test_adds_calendar_months(self):
        """last_date + interval_months as calendar months."""
        assert calc_due_date(datetime(2025, 1, 15, 10, 30), 6) == datetime(2025, 7, 15, 10, 30)

    def test_clamps_to_month_end(self):
        """Jan 31 + 1 month lands on the last day of February."""
        assert calc_due_date(datetime(2025, 1, 31), 1) == datetime(2025, 2, 28)

    def test_without_baseline(self):
        """None when the interval was never done."""
        assert calc_due_date(None, 6) is None

    def test_no_interval(self):
        """None when no interval defined."""
        assert calc_due_date(datetime(2025, 1, 15), None) is None


class TestDaysBetween:
    """Tests for days_between."""

    def test_counts_calendar_days(self):
        """Time of day does not matter."""
        assert days_between(datetime(2025, 1, 1, 23, 59), datetime(2025, 1, 2, 0, 1)) == 1

    def test_negative_when_end_is_earlier(self):
        """Negative day count when the end precedes the start."""
        assert days_between(datetime(2025, 1, 10), datetime(2025, 1, 3)) == -7


class TestCheckStatus:
    """Tests for check_status helper function."""

    def test_overdue(self):
        """OVERDUE when remaining is negative."""
        assert check_status(-1, 500) == Status.OVERDUE

    def test_warning(self):
        """WARNING when remaining is within the lead, inclusive."""
        assert check_status(400, 500) == Status.WARNING
        assert check_status(500, 500) == Status.WARNING
        assert check_status(0, 500) == Status.WARNING

    def test_ok(self):
        assert check_status(501, 500) == Status.OK


class TestWorstStatus:
    """Tests for worst_status."""

    def test_picks_most_urgent(self):
        """OVERDUE beats WARNING beats OK."""
        assert worst_status([Status.OK, Status.WARNING]) == Status.WARNING
        assert worst_status([Status.OVERDUE, None, Status.OK]) == Status.OVERDUE

    def test_unknown_when_nothing_known(self):
        """UNKNOWN when every channel is None."""
        assert worst_status([None, None]) == Status.UNKNOWN
        assert worst_status([]) == Status.UNKNOWN
