"""Schemas and validation for the tracked document.

The whole application state is one JSON object (profile + projects + entries).
This module provides immutable dataclasses for it, coercion from the wire
shape, and the normalization applied to whatever the store hands back.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date as _date
from typing import Any

from .utils import coerce_number, is_iso_date

logger = logging.getLogger(__name__)

DEFAULT_RATE = 85.0
DEFAULT_PROJECT_NAME = "Untitled project"


def new_id(prefix: str = "proj") -> str:
    """Return a fresh opaque identifier, e.g. ``proj_3f2a...``."""
    return f"{prefix}_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Profile:
    name: str = ""
    rate: float = DEFAULT_RATE


@dataclass(frozen=True)
class Entry:
    """Hours worked on one calendar date."""

    id: str
    date: str
    hours: float


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    rate: float | None = None  # None falls back to the profile rate
    archived: bool = False
    entries: tuple[Entry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Document:
    profile: Profile = field(default_factory=Profile)
    projects: tuple[Project, ...] = field(default_factory=tuple)

    def find_project(self, project_id: str | None) -> Project | None:
        for p in self.projects:
            if p.id == project_id:
                return p
        return None

    @property
    def active_projects(self) -> tuple[Project, ...]:
        return tuple(p for p in self.projects if not p.archived)

    @property
    def archived_projects(self) -> tuple[Project, ...]:
        return tuple(p for p in self.projects if p.archived)


def default_document(today: _date | None = None) -> Document:
    """The document used on first run or when stored state is unusable."""
    day = (today or _date.today()).isoformat()
    return Document(
        profile=Profile(name="", rate=DEFAULT_RATE),
        projects=(
            Project(
                id=new_id(),
                name="Atlas redesign",
                rate=DEFAULT_RATE,
                archived=False,
                entries=(Entry(id=new_id("entry"), date=day, hours=4.5),),
            ),
        ),
    )


def entry_from_dict(data: dict[str, Any]) -> Entry:
    """Convert a dictionary to an `Entry` with basic coercion."""
    return Entry(
        id=str(data.get("id") or new_id("entry")),
        date=str(data.get("date") or ""),
        hours=coerce_number(data.get("hours")),
    )


def project_from_dict(data: dict[str, Any]) -> Project:
    raw_rate = data.get("rate")
    rate = coerce_number(raw_rate) if raw_rate is not None else None
    raw_entries = data.get("entries")
    entries = tuple(
        entry_from_dict(e) for e in (raw_entries if isinstance(raw_entries, list) else [])
        if isinstance(e, dict)
    )
    return Project(
        id=str(data.get("id") or new_id()),
        name=str(data.get("name") or ""),
        rate=rate,
        archived=bool(data.get("archived")),
        entries=entries,
    )


def from_dict(data: dict[str, Any]) -> Document:
    """Convert a wire dictionary to a `Document`.

    Raises ValueError when the top-level shape is wrong; use
    `normalize_document` for the forgiving variant.
    """
    profile = data.get("profile")
    projects = data.get("projects")
    if not isinstance(profile, dict) or not isinstance(projects, list):
        raise ValueError("document needs a profile object and a projects list")
    return Document(
        profile=Profile(
            name=str(profile.get("name") or ""),
            rate=coerce_number(profile.get("rate")),
        ),
        projects=tuple(project_from_dict(p) for p in projects if isinstance(p, dict)),
    )


def to_dict(document: Document) -> dict[str, Any]:
    """Serialize a `Document` to its JSON-compatible wire shape."""
    projects: list[dict[str, Any]] = []
    for p in document.projects:
        item: dict[str, Any] = {"id": p.id, "name": p.name}
        if p.rate is not None:
            item["rate"] = p.rate
        item["archived"] = p.archived
        item["entries"] = [{"id": e.id, "date": e.date, "hours": e.hours} for e in p.entries]
        projects.append(item)
    return {
        "profile": {"name": document.profile.name, "rate": document.profile.rate},
        "projects": projects,
    }


def normalize_document(value: Any, today: _date | None = None) -> Document:
    """Return a usable document for whatever was loaded.

    Anything that is not a mapping with a ``profile`` object and a ``projects``
    list falls back to `default_document`. Duplicate ids are replaced.
    """
    if not isinstance(value, dict):
        return default_document(today)
    try:
        document = from_dict(value)
    except ValueError as exc:
        logger.warning("Stored state rejected, using defaults: %s", exc)
        return default_document(today)
    issues = validate(document)
    if issues:
        logger.warning("Stored state has issues: %s", "; ".join(issues))
        document = assign_unique_ids(document)
    return document


def assign_unique_ids(document: Document) -> Document:
    """Give fresh ids to every project or entry whose id was already seen."""
    seen_projects: set[str] = set()
    seen_entries: set[str] = set()
    projects: list[Project] = []
    for p in document.projects:
        if p.id in seen_projects:
            p = replace(p, id=new_id())
        seen_projects.add(p.id)
        entries: list[Entry] = []
        for e in p.entries:
            if e.id in seen_entries:
                e = replace(e, id=new_id("entry"))
            seen_entries.add(e.id)
            entries.append(e)
        projects.append(replace(p, entries=tuple(entries)))
    return replace(document, projects=tuple(projects))


def validate(document: Document) -> list[str]:
    """Return a list of human-readable issues if validation fails."""
    issues: list[str] = []
    seen_projects: set[str] = set()
    seen_entries: set[str] = set()
    for p in document.projects:
        if p.id in seen_projects:
            issues.append(f"Duplicate project id: {p.id}")
        seen_projects.add(p.id)
        for e in p.entries:
            if e.id in seen_entries:
                issues.append(f"Duplicate entry id in {p.name or p.id}: {e.id}")
            seen_entries.add(e.id)
            if not is_iso_date(e.date):
                issues.append(f"Entry {e.id} has an invalid date: {e.date!r}")
    return issues
