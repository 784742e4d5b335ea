"""Natural-language date resolution for logging hours.

Lets the assistant turn phrases like "yesterday" or "last friday" into the
ISO dates the document stores.
"""

from __future__ import annotations

import re
from datetime import date as _date, datetime, timedelta, tzinfo as _tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .utils import is_iso_date, parse_iso_date

_RELATIVE_DAYS = {"yesterday": -1, "today": 0, "tomorrow": 1}
_DATE_FORMATS = ("%B %d %Y", "%b %d %Y", "%d %B %Y", "%d %b %Y", "%m/%d/%Y")
_WEEKDAY_PHRASE = re.compile(
    r"(this|next|last)\s+(monday|tuesday|wednesday|thursday|friday|saturday|sunday)"
)
_WEEK_SHIFT = {"this": 0, "next": 7, "last": -7}
_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def resolve_timezone(timezone: str | None = None) -> _tzinfo:
    """IANA zone if given and known, else the local zone, else UTC."""
    if timezone:
        try:
            return ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError):
            pass
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else ZoneInfo("UTC")


def today_in(timezone: str | None = None) -> _date:
    return datetime.now(resolve_timezone(timezone)).date()


def _clean(phrase: str) -> str:
    # "Sept. 9th, 2025" -> "sep 9 2025"
    s = re.sub(r"(\d)(st|nd|rd|th)\b", r"\1", phrase.strip().lower())
    s = re.sub(r"[,.]", " ", s).replace("sept ", "sep ")
    return " ".join(s.split())


def resolve_date_phrase(
    phrase: str,
    *,
    timezone: str | None = None,
    base_date: str | None = None,
) -> str:
    """Turn a phrase the user typed into an ISO ``YYYY-MM-DD`` date.

    Understands today/yesterday/tomorrow, "this|next|last <weekday>" (weeks
    counted from ``base_date``), month-name dates with a year and
    ``MM/DD/YYYY``. Returns ``""`` for anything else, including impossible
    dates such as February 30.
    """
    s = _clean(phrase or "")
    if not s:
        return ""
    if is_iso_date(s):
        return s
    today = parse_iso_date(base_date) or today_in(timezone)

    if s in _RELATIVE_DAYS:
        return (today + timedelta(days=_RELATIVE_DAYS[s])).isoformat()

    match = _WEEKDAY_PHRASE.fullmatch(s)
    if match:
        offset = (_WEEKDAYS.index(match.group(2)) - today.weekday()) % 7
        return (today + timedelta(days=offset + _WEEK_SHIFT[match.group(1)])).isoformat()

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue
    return ""
