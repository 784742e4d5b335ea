"""Week and month grids for the calendar view.

Month grids are laid out Sunday-first with ``None`` placeholders before the
1st; week grids are the Monday-anchored seven days around the reference date.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date as _date, timedelta
from typing import Literal

from .forms import Entry
from .totals import hours_by_date
from .utils import format_hours, format_money, week_start

Mode = Literal["week", "month"]
MODES: tuple[str, ...] = ("week", "month")

SUNDAY_FIRST = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
MONDAY_FIRST = SUNDAY_FIRST[1:] + SUNDAY_FIRST[:1]


@dataclass(frozen=True)
class CalendarCell:
    day: _date
    hours: float
    earned: float
    is_today: bool = False

    @property
    def key(self) -> str:
        return self.day.isoformat()

    @property
    def has_entry(self) -> bool:
        return self.hours > 0


def month_days(ref: _date) -> list[_date | None]:
    """Placeholders for the days before the 1st, then every day of the month."""
    first = ref.replace(day=1)
    # date.weekday() is Monday=0; shift to Sunday=0
    lead = (first.weekday() + 1) % 7
    days_in_month = calendar.monthrange(ref.year, ref.month)[1]
    cells: list[_date | None] = [None] * lead
    cells.extend(first.replace(day=d) for d in range(1, days_in_month + 1))
    return cells


def week_days(ref: _date) -> list[_date]:
    start = week_start(ref)
    return [start + timedelta(days=i) for i in range(7)]


def grid_days(ref: _date, mode: str) -> list[_date | None]:
    if mode == "month":
        return month_days(ref)
    if mode == "week":
        return list(week_days(ref))
    raise ValueError(f"Unknown calendar mode: {mode}")


def build_grid(
    ref: _date,
    mode: str,
    entries: Iterable[Entry],
    rate: float,
    today: _date | None = None,
) -> list[CalendarCell | None]:
    """Resolve each grid day to its hours and earnings."""
    by_date = hours_by_date(entries)
    cells: list[CalendarCell | None] = []
    for day in grid_days(ref, mode):
        if day is None:
            cells.append(None)
            continue
        hours = by_date.get(day.isoformat(), 0.0)
        cells.append(
            CalendarCell(day=day, hours=hours, earned=hours * rate, is_today=(day == today))
        )
    return cells


def shift(ref: _date, mode: str, step: int) -> _date:
    """Move by ``step`` months (to the 1st) or ``step`` weeks, keeping the mode."""
    if mode == "month":
        month_index = ref.year * 12 + (ref.month - 1) + step
        return _date(month_index // 12, month_index % 12 + 1, 1)
    if mode == "week":
        return ref + timedelta(days=7 * step)
    raise ValueError(f"Unknown calendar mode: {mode}")


def weekday_headers(mode: str) -> tuple[str, ...]:
    return SUNDAY_FIRST if mode == "month" else MONDAY_FIRST


def range_label(ref: _date, mode: str) -> str:
    """``January 2024`` for months, ``Jan 1 - Jan 7, 2024`` for weeks."""
    if mode == "month":
        return f"{calendar.month_name[ref.month]} {ref.year}"
    days = week_days(ref)
    first, last = days[0], days[-1]
    return (
        f"{calendar.month_abbr[first.month]} {first.day} - "
        f"{calendar.month_abbr[last.month]} {last.day}, {last.year}"
    )


def render_grid(cells: list[CalendarCell | None], mode: str) -> str:
    """Plain-text rendering, seven columns per row."""
    width = 14
    lines = ["".join(h.ljust(width) for h in weekday_headers(mode)).rstrip()]
    for i in range(0, len(cells), 7):
        top, bottom = [], []
        for cell in cells[i : i + 7]:
            if cell is None:
                top.append("".ljust(width))
                bottom.append("".ljust(width))
                continue
            mark = "*" if cell.is_today else ""
            top.append(f"{cell.day.day}{mark}".ljust(width))
            if cell.has_entry:
                text = f"{format_hours(cell.hours)}h {format_money(cell.earned)}"
            else:
                text = "+"
            bottom.append(text.ljust(width))
        lines.append("".join(top).rstrip())
        lines.append("".join(bottom).rstrip())
    return "\n".join(lines)


class CellEditor:
    """Single-cell hours editor.

    Opening a cell while another is being edited saves the other first. An
    empty draft saves as 0, which removes the entry for that date.
    """

    def __init__(self, on_save: Callable[[str, float | str], None]) -> None:
        self._on_save = on_save
        self.editing_date: str | None = None
        self.draft: str = ""

    def begin(self, day: str, current_hours: float = 0.0) -> None:
        if self.editing_date == day:
            return
        if self.editing_date is not None:
            self.save()
        self.editing_date = day
        self.draft = f"{current_hours:g}" if current_hours else ""

    def set_draft(self, text: str) -> None:
        self.draft = text

    def save(self) -> None:
        if self.editing_date is None:
            return
        value: float | str = 0.0 if self.draft.strip() == "" else self.draft.strip()
        day = self.editing_date
        self.editing_date = None
        self._on_save(day, value)

    def cancel(self) -> None:
        self.editing_date = None
        self.draft = ""
