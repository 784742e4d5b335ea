from datetime import date

import pytest

from tr4ck.backend.parsers import resolve_date_phrase
from tr4ck.backend.utils import DateRange, is_iso_date, preset_range, week_start


def test_resolve_relative_today_and_yesterday():
    base = "2025-09-09"  # Tuesday
    assert resolve_date_phrase("today", base_date=base) == "2025-09-09"
    assert resolve_date_phrase("yesterday", base_date=base) == "2025-09-08"
    assert resolve_date_phrase("tomorrow", base_date=base) == "2025-09-10"


def test_resolve_weekday_phrases():
    base = "2025-09-09"  # Tuesday
    assert resolve_date_phrase("last friday", base_date=base) == "2025-09-05"
    assert resolve_date_phrase("this friday", base_date=base) == "2025-09-12"
    assert resolve_date_phrase("next monday", base_date=base) == "2025-09-22"


def test_resolve_month_name_formats():
    assert resolve_date_phrase("September 9 2025") == "2025-09-09"
    assert resolve_date_phrase("9 September 2025") == "2025-09-09"
    assert resolve_date_phrase("February 30 2025") == ""
    assert resolve_date_phrase("Sept. 9th, 2025") == "2025-09-09"
    assert resolve_date_phrase("  Today ", base_date="2025-09-09") == "2025-09-09"
    assert resolve_date_phrase("2025-09-09") == "2025-09-09"


def test_resolve_numeric_mdy_and_unknown():
    assert resolve_date_phrase("09/09/2025") == "2025-09-09"
    assert resolve_date_phrase("sometime") == ""
    assert resolve_date_phrase("") == ""


def test_is_iso_date():
    assert is_iso_date("2024-01-05")
    assert not is_iso_date("2024-1-5")
    assert not is_iso_date("2024-02-30")


def test_week_start_is_monday():
    assert week_start(date(2024, 1, 5)) == date(2024, 1, 1)  # Friday
    assert week_start(date(2024, 1, 7)) == date(2024, 1, 1)  # Sunday
    assert week_start(date(2024, 1, 1)) == date(2024, 1, 1)


def test_preset_ranges():
    today = date(2024, 1, 5)
    assert preset_range("all", today) == DateRange()
    assert preset_range("today", today) == DateRange("2024-01-05", "2024-01-05")
    assert preset_range("week", today) == DateRange("2024-01-01", "2024-01-07")
    with pytest.raises(ValueError):
        preset_range("year", today)
