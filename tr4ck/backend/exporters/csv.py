"""CSV export of tracked hours."""

from __future__ import annotations

import csv
import io
from collections.abc import Collection, Iterable, Sequence

from ..forms import Document
from ..totals import effective_rate
from ..utils import DateRange, coerce_number, in_range, to_fixed

HEADERS = ("Project", "Date", "Hours", "Rate", "Earned")


def render_csv(rows: Iterable[Sequence[object]], headers: Sequence[str]) -> str:
    """Render rows to CSV text with every field quoted.

    - Rows are separated by ``\\n`` and the text has no trailing newline.
    - Embedded quotes are doubled by the csv module.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return buf.getvalue().rstrip("\n")


def export_rows(
    document: Document,
    project_ids: Collection[str] | None = None,
    date_range: DateRange | None = None,
) -> list[tuple[str, str, str, str, str]]:
    """One row per (project, entry) passing both filters, in document order."""
    rows: list[tuple[str, str, str, str, str]] = []
    for project in document.projects:
        if project_ids is not None and project.id not in project_ids:
            continue
        rate = effective_rate(project, document.profile)
        for entry in project.entries:
            if not in_range(entry.date, date_range):
                continue
            hours = coerce_number(entry.hours)
            rows.append(
                (
                    project.name,
                    entry.date,
                    to_fixed(hours),
                    to_fixed(rate),
                    to_fixed(hours * rate),
                )
            )
    return rows


def build_csv(
    document: Document,
    project_ids: Collection[str] | None = None,
    date_range: DateRange | None = None,
) -> str:
    """Export the document as ``Project,Date,Hours,Rate,Earned`` CSV text."""
    return render_csv(export_rows(document, project_ids, date_range), HEADERS)


def export_filename(date_range: DateRange | None = None) -> str:
    """Download name embedding the range, e.g. ``tr4ck-export_all-time.csv``."""
    label = (date_range or DateRange()).label()
    return f"tr4ck-export_{label}.csv"
