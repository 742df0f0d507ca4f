"""Tests for display formats and month boundaries."""

from datetime import date, datetime
from uuid import UUID

import pytest

from expense_desk.formatting import (
    format_display_date,
    format_report_label,
    month_bounds,
    short_transaction_id,
)


class TestReportLabel:
    def test_zero_padded_to_three_digits(self):
        assert format_report_label(1) == "Rep#001"
        assert format_report_label(42) == "Rep#042"
        assert format_report_label(999) == "Rep#999"

    def test_grows_past_three_digits(self):
        assert format_report_label(1000) == "Rep#1000"

    def test_rejects_non_positive(self):
        with pytest.raises(ValueError):
            format_report_label(0)


class TestDisplayFormats:
    def test_display_date(self):
        assert format_display_date(datetime(2026, 1, 5, 13, 45)) == "Jan 05 2026"
        assert format_display_date(date(2025, 12, 31)) == "Dec 31 2025"
        assert format_display_date(None) is None

    def test_short_transaction_id(self):
        record_id = UUID("a1b2c3d4-0000-0000-0000-000000000000")
        assert short_transaction_id(record_id) == "#transaction_a1b2c3"


class TestMonthBounds:
    def test_mid_month(self):
        start, end = month_bounds(datetime(2026, 3, 17, 8, 30, 12, 5))
        assert start == datetime(2026, 3, 1)
        assert end == datetime(2026, 4, 1)

    def test_december_rolls_over_year(self):
        start, end = month_bounds(datetime(2025, 12, 31, 23, 59, 59))
        assert start == datetime(2025, 12, 1)
        assert end == datetime(2026, 1, 1)

    def test_first_instant_belongs_to_month(self):
        start, end = month_bounds(datetime(2026, 2, 1))
        assert start == datetime(2026, 2, 1)
        assert end == datetime(2026, 3, 1)
