"""Aggregate hours and earnings over the document."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .forms import Document, Entry, Profile, Project
from .utils import DateRange, coerce_hours, coerce_number, in_range


def sum_hours(entries: Iterable[Entry], date_range: DateRange | None = None) -> float:
    """Sum hours over entries whose date falls in ``date_range`` (inclusive).

    Negative or non-numeric hours count as zero.
    """
    return sum(
        (coerce_hours(e.hours) for e in entries if in_range(e.date, date_range)),
        0.0,
    )


def effective_rate(project: Project | None, profile: Profile | None) -> float:
    """The project's own rate, else the profile default, else 0."""
    if project is not None and project.rate is not None:
        return coerce_number(project.rate)
    if profile is not None and profile.rate is not None:
        return coerce_number(profile.rate)
    return 0.0


def earned(entries: Iterable[Entry], rate: float, date_range: DateRange | None = None) -> float:
    return sum_hours(entries, date_range) * coerce_number(rate)


def hours_by_date(entries: Iterable[Entry]) -> dict[str, float]:
    """Map ISO date -> hours, summing entries that share a date."""
    out: dict[str, float] = {}
    for e in entries:
        out[e.date] = out.get(e.date, 0.0) + coerce_hours(e.hours)
    return out


@dataclass(frozen=True)
class ProjectSummary:
    project_id: str
    name: str
    hours: float
    rate: float
    earned: float


@dataclass(frozen=True)
class Totals:
    hours: float
    earned: float
    project_count: int


def summarize_project(
    project: Project, profile: Profile, date_range: DateRange | None = None
) -> ProjectSummary:
    rate = effective_rate(project, profile)
    hours = sum_hours(project.entries, date_range)
    return ProjectSummary(
        project_id=project.id, name=project.name, hours=hours, rate=rate, earned=hours * rate
    )


def compute_totals(document: Document, date_range: DateRange | None = None) -> Totals:
    """Totals across active projects; archived projects are excluded."""
    summaries = [
        summarize_project(p, document.profile, date_range) for p in document.active_projects
    ]
    return Totals(
        hours=sum((s.hours for s in summaries), 0.0),
        earned=sum((s.earned for s in summaries), 0.0),
        project_count=sum(1 for s in summaries if s.hours > 0),
    )
