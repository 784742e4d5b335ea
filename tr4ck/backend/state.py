"""Pure document transitions.

Every function takes a `Document` and returns a new one; nothing is mutated
in place. Unknown project or entry ids leave the document unchanged.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date as _date
from typing import Any

from .forms import DEFAULT_PROJECT_NAME, Document, Entry, Project, new_id
from .utils import coerce_number


def _map_project(
    document: Document, project_id: str, fn: Callable[[Project], Project]
) -> Document:
    return replace(
        document,
        projects=tuple(fn(p) if p.id == project_id else p for p in document.projects),
    )


def set_profile(document: Document, *, name: str | None = None, rate: Any = None) -> Document:
    profile = document.profile
    if name is not None:
        profile = replace(profile, name=str(name))
    if rate is not None:
        profile = replace(profile, rate=coerce_number(rate))
    return replace(document, profile=profile)


def add_project(
    document: Document, name: str = DEFAULT_PROJECT_NAME, rate: float | None = None
) -> tuple[Document, Project]:
    """Append a new active project. A ``None`` rate follows the profile rate."""
    project = Project(id=new_id(), name=name, rate=rate, archived=False, entries=())
    return replace(document, projects=document.projects + (project,)), project


def rename_project(document: Document, project_id: str, name: str) -> Document:
    return _map_project(document, project_id, lambda p: replace(p, name=str(name)))


def set_project_rate(document: Document, project_id: str, rate: Any) -> Document:
    """Set an explicit rate; ``None`` clears it back to the profile default."""
    value = None if rate is None else coerce_number(rate)
    return _map_project(document, project_id, lambda p: replace(p, rate=value))


def archive_project(document: Document, project_id: str) -> Document:
    return _map_project(document, project_id, lambda p: replace(p, archived=True))


def restore_project(document: Document, project_id: str) -> Document:
    return _map_project(document, project_id, lambda p: replace(p, archived=False))


def delete_project(document: Document, project_id: str) -> Document:
    """Remove the project together with all of its entries."""
    return replace(
        document, projects=tuple(p for p in document.projects if p.id != project_id)
    )


def add_entry(
    document: Document,
    project_id: str,
    date: str | None = None,
    hours: float = 1.0,
    today: _date | None = None,
) -> tuple[Document, Entry | None]:
    """Append an entry (default: today, 1 hour). Returns None for unknown projects."""
    if document.find_project(project_id) is None:
        return document, None
    entry = Entry(
        id=new_id("entry"),
        date=date or (today or _date.today()).isoformat(),
        hours=coerce_number(hours),
    )
    doc = _map_project(document, project_id, lambda p: replace(p, entries=p.entries + (entry,)))
    return doc, entry


def update_entry(
    document: Document,
    project_id: str,
    entry_id: str,
    *,
    date: str | None = None,
    hours: Any = None,
) -> Document:
    """Row-editor update. Zero or negative hours are stored as given."""

    def _update(e: Entry) -> Entry:
        if e.id != entry_id:
            return e
        if date is not None:
            e = replace(e, date=date)
        if hours is not None:
            e = replace(e, hours=coerce_number(hours))
        return e

    return _map_project(
        document,
        project_id,
        lambda p: replace(p, entries=tuple(_update(e) for e in p.entries)),
    )


def delete_entry(document: Document, project_id: str, entry_id: str) -> Document:
    return _map_project(
        document,
        project_id,
        lambda p: replace(p, entries=tuple(e for e in p.entries if e.id != entry_id)),
    )


def set_hours_for_date(document: Document, project_id: str, date: str, hours: Any) -> Document:
    """Calendar cell upsert: update, create, or delete the entry for ``date``.

    Zero, negative or non-numeric hours delete the first entry on that date
    (or do nothing when there is none).
    """
    value = coerce_number(hours)

    def _apply(p: Project) -> Project:
        existing = next((e for e in p.entries if e.date == date), None)
        if existing is not None:
            if value <= 0:
                return replace(p, entries=tuple(e for e in p.entries if e.id != existing.id))
            return replace(
                p,
                entries=tuple(
                    replace(e, hours=value) if e.id == existing.id else e for e in p.entries
                ),
            )
        if value <= 0:
            return p
        return replace(p, entries=p.entries + (Entry(id=new_id("entry"), date=date, hours=value),))

    return _map_project(document, project_id, _apply)
