from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date as _date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

RANGE_PRESETS = ("all", "week", "today")


def coerce_number(value: Any) -> float:
    """Return ``value`` as a finite float, or 0.0 when it is not one."""
    if isinstance(value, bool):
        return float(value)
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def coerce_hours(value: Any) -> float:
    """Hours as counted in totals: finite and non-negative, else 0."""
    num = coerce_number(value)
    return num if num > 0 else 0.0


def format_hours(value: Any) -> str:
    """One decimal place with a trailing ``.0`` dropped (4.0 -> "4")."""
    try:
        num = float(value)
    except (TypeError, ValueError):
        return "0"
    if not math.isfinite(num):
        return "0"
    s = format(round_half_up(num, 1), "f")
    if s.endswith(".0"):
        s = s[:-2]
    return "0" if s == "-0" else s


def round_half_up(value: float, places: int) -> Decimal:
    """Round the exact binary value of ``value``, halves away from zero (2.25 -> 2.3)."""
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def to_fixed(value: Any, places: int = 2) -> str:
    return format(round_half_up(coerce_number(value), places), "f")


def format_money(value: Any) -> str:
    """Display format for amounts, e.g. ``$1,234.50``."""
    num = coerce_number(value)
    sign = "-" if num < 0 else ""
    return f"{sign}${round_half_up(abs(num), 2):,.2f}"


def is_iso_date(s: str) -> bool:
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", s or ""):
        return False
    return parse_iso_date(s) is not None


def parse_iso_date(s: str | None) -> _date | None:
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


def week_start(day: _date) -> _date:
    """Monday of the week containing ``day``."""
    # isoweekday: Monday=1 .. Sunday=7; Sunday-first weekday is isoweekday % 7
    sunday_first = day.isoweekday() % 7
    return day - timedelta(days=(sunday_first + 6) % 7)


@dataclass(frozen=True)
class DateRange:
    """Inclusive ISO date range; either bound may be open."""

    start: str | None = None
    end: str | None = None

    @property
    def is_open(self) -> bool:
        return not self.start and not self.end

    def contains(self, day: str) -> bool:
        if self.start and day < self.start:
            return False
        if self.end and day > self.end:
            return False
        return True

    def label(self) -> str:
        if self.is_open:
            return "all-time"
        return f"{self.start or 'start'}_to_{self.end or 'today'}"


def in_range(day: str, date_range: DateRange | None) -> bool:
    return date_range is None or date_range.contains(day)


def preset_range(preset: str, today: _date) -> DateRange:
    """Resolve an ``all``/``week``/``today`` preset against ``today``."""
    if preset == "today":
        iso = today.isoformat()
        return DateRange(iso, iso)
    if preset == "week":
        start = week_start(today)
        return DateRange(start.isoformat(), (start + timedelta(days=6)).isoformat())
    if preset == "all":
        return DateRange()
    raise ValueError(f"Unknown range preset: {preset}")
