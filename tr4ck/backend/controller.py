"""View state controller.

Owns the document and every UI selection, applies edits through the pure
transitions in `state`, and debounces persistence to the backend. The local
document stays authoritative: a failed write never rolls an edit back, it is
simply retried by the write scheduled for the next edit.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import date as _date
from typing import Any, Protocol

from . import state as transitions
from .calendar_grid import CalendarCell, CellEditor, build_grid, shift
from .client import SyncError
from .exporters.csv import build_csv, export_filename
from .forms import (
    DEFAULT_PROJECT_NAME,
    Document,
    Entry,
    Project,
    default_document,
    normalize_document,
    to_dict,
)
from .totals import ProjectSummary, Totals, compute_totals, effective_rate, summarize_project
from .utils import DateRange, preset_range

logger = logging.getLogger(__name__)

LOADING_MESSAGE = "Loading storage..."
LOAD_FAILED_MESSAGE = "Storage unavailable. Working locally."
SYNC_FAILED_MESSAGE = "Failed to sync. Changes will retry."


class StateBackend(Protocol):
    def load(self) -> Any | None: ...

    def save(self, document: dict[str, Any]) -> None: ...


class DebouncedWriter:
    """One owned pending-write slot.

    `schedule` cancels whatever is pending and starts a new timer, so only the
    settled payload after a burst is written. Writes run one at a time, and a
    payload older than the last one written is dropped.
    """

    def __init__(
        self,
        write: Callable[[Any], None],
        delay: float,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self._write = write
        self.delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._seq = 0
        self._written_seq = 0
        self._slot: tuple[threading.Timer, int, Any] | None = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._slot is not None

    def schedule(self, payload: Any) -> None:
        with self._lock:
            if self._slot is not None:
                self._slot[0].cancel()
            self._seq += 1
            timer = self._timer_factory(self.delay, self._fire, args=(self._seq,))
            timer.daemon = True
            self._slot = (timer, self._seq, payload)
            timer.start()

    def _fire(self, seq: int) -> None:
        with self._lock:
            slot = self._slot
            # a cancelled timer can still fire if it was already running
            if slot is None or slot[1] != seq:
                return
            self._slot = None
        self._run(seq, slot[2])

    def _run(self, seq: int, payload: Any) -> None:
        with self._write_lock:
            if seq <= self._written_seq:
                logger.debug("Skipping superseded write %s", seq)
                return
            self._written_seq = seq
            self._write(payload)

    def flush(self) -> bool:
        """Write the pending payload now, after any write already in flight.

        Returns False if nothing was pending.
        """
        with self._lock:
            slot = self._slot
            self._slot = None
        if slot is None:
            return False
        slot[0].cancel()
        self._run(slot[1], slot[2])
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._slot is not None:
                self._slot[0].cancel()
            self._slot = None


class ViewStateController:
    def __init__(
        self,
        backend: StateBackend,
        *,
        delay: float = 0.5,
        document: Document | None = None,
        today: Callable[[], _date] = _date.today,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.backend = backend
        self.today = today
        self._document = document or default_document(today())
        self._lock = threading.Lock()
        self._writer = DebouncedWriter(self._write, delay, timer_factory)
        self._generation = 0
        self._status = ""
        self.loading = False
        self.loaded = False

        # selections
        self.active_project_id: str | None = None
        self.view = "calendar"
        self.calendar_mode = "week"
        self.calendar_date = today()
        self.summary_range = "all"
        self.archived_open = False
        self.confirm_project_id: str | None = None
        self.export_open = False
        self.export_project_ids: set[str] = {p.id for p in self._document.projects}
        self.export_range = DateRange()
        self._reconcile_selection()

    # --- Document access ---

    @property
    def document(self) -> Document:
        return self._document

    @property
    def active_project(self) -> Project | None:
        project = self._document.find_project(self.active_project_id)
        return project if project is not None and not project.archived else None

    @property
    def status(self) -> str:
        with self._lock:
            status = self._status
        return status or (LOADING_MESSAGE if self.loading else "")

    def _set_status(self, message: str) -> None:
        with self._lock:
            self._status = message

    # --- Loading ---

    def begin_load(self) -> int:
        with self._lock:
            self._generation += 1
            self._status = ""
            generation = self._generation
        self.loading = True
        return generation

    def finish_load(self, generation: int, raw: Any | None) -> bool:
        """Merge a loaded payload unless a newer load or a log-out superseded it."""
        if generation != self._generation:
            logger.debug("Discarding stale load (generation %s)", generation)
            return False
        if raw is not None:
            self._document = normalize_document(raw, self.today())
            self.export_project_ids = {p.id for p in self._document.projects}
            self._reconcile_selection()
        self.loaded = True
        self.loading = False
        return True

    def fail_load(self, generation: int, exc: Exception) -> bool:
        if generation != self._generation:
            return False
        logger.warning("Loading state failed: %s", exc)
        self._set_status(LOAD_FAILED_MESSAGE)
        self.loading = False
        return False

    def load(self) -> bool:
        generation = self.begin_load()
        try:
            raw = self.backend.load()
        except SyncError as exc:
            return self.fail_load(generation, exc)
        return self.finish_load(generation, raw)

    def invalidate(self) -> None:
        """Stop syncing (e.g. on log-out); in-flight loads become stale."""
        with self._lock:
            self._generation += 1
        self._writer.cancel()
        self.loaded = False
        self.loading = False

    # --- Persistence ---

    def _write(self, payload: dict[str, Any]) -> None:
        try:
            self.backend.save(payload)
        except SyncError as exc:
            logger.warning("Saving state failed: %s", exc)
            self._set_status(SYNC_FAILED_MESSAGE)
            return
        self._set_status("")

    def _commit(self, document: Document) -> None:
        self._document = document
        self._reconcile_selection()
        existing = {p.id for p in document.projects}
        self.export_project_ids &= existing
        if self.loaded:
            self._writer.schedule(to_dict(document))

    @property
    def write_pending(self) -> bool:
        return self._writer.pending

    def flush(self) -> bool:
        return self._writer.flush()

    def close(self) -> None:
        self._writer.cancel()

    def _reconcile_selection(self) -> None:
        active = self._document.active_projects
        if not any(p.id == self.active_project_id for p in active):
            self.active_project_id = active[0].id if active else None

    # --- Profile & projects ---

    def set_profile(self, *, name: str | None = None, rate: Any = None) -> None:
        self._commit(transitions.set_profile(self._document, name=name, rate=rate))

    def add_project(self, name: str = DEFAULT_PROJECT_NAME, rate: float | None = None) -> Project:
        document, project = transitions.add_project(self._document, name, rate)
        self.active_project_id = project.id
        self._commit(document)
        return project

    def rename_project(self, project_id: str, name: str) -> None:
        self._commit(transitions.rename_project(self._document, project_id, name))

    def set_project_rate(self, project_id: str, rate: Any) -> None:
        self._commit(transitions.set_project_rate(self._document, project_id, rate))

    def archive_project(self, project_id: str) -> None:
        self._commit(transitions.archive_project(self._document, project_id))

    def restore_project(self, project_id: str) -> None:
        self._commit(transitions.restore_project(self._document, project_id))

    def delete_project(self, project_id: str) -> None:
        self._commit(transitions.delete_project(self._document, project_id))

    def select_project(self, project_id: str) -> bool:
        project = self._document.find_project(project_id)
        if project is None or project.archived:
            return False
        self.active_project_id = project_id
        return True

    def request_delete(self, project_id: str) -> None:
        if self._document.find_project(project_id) is not None:
            self.confirm_project_id = project_id

    def confirm_delete(self) -> None:
        if self.confirm_project_id:
            self.delete_project(self.confirm_project_id)
        self.confirm_project_id = None

    def cancel_delete(self) -> None:
        self.confirm_project_id = None

    # --- Entries ---

    def add_entry(self, project_id: str, date: str | None = None, hours: float = 1.0) -> Entry | None:
        document, entry = transitions.add_entry(
            self._document, project_id, date, hours, today=self.today()
        )
        if entry is not None:
            self._commit(document)
        return entry

    def update_entry(
        self, project_id: str, entry_id: str, *, date: str | None = None, hours: Any = None
    ) -> None:
        self._commit(
            transitions.update_entry(self._document, project_id, entry_id, date=date, hours=hours)
        )

    def delete_entry(self, project_id: str, entry_id: str) -> None:
        self._commit(transitions.delete_entry(self._document, project_id, entry_id))

    def set_hours_for_date(self, project_id: str, date: str, hours: Any) -> None:
        self._commit(transitions.set_hours_for_date(self._document, project_id, date, hours))

    # --- Derived views ---

    def summary_date_range(self) -> DateRange:
        return preset_range(self.summary_range, self.today())

    def set_summary_range(self, preset: str) -> None:
        preset_range(preset, self.today())
        self.summary_range = preset

    def totals(self) -> Totals:
        return compute_totals(self._document, self.summary_date_range())

    def project_summaries(self, archived: bool = False) -> list[ProjectSummary]:
        projects = (
            self._document.archived_projects if archived else self._document.active_projects
        )
        rng = self.summary_date_range()
        return [summarize_project(p, self._document.profile, rng) for p in projects]

    def set_view(self, view: str) -> None:
        if view not in ("calendar", "rows"):
            raise ValueError(f"Unknown view: {view}")
        self.view = view

    def set_calendar_mode(self, mode: str) -> None:
        shift(self.calendar_date, mode, 0)
        self.calendar_mode = mode

    def calendar_prev(self) -> None:
        self.calendar_date = shift(self.calendar_date, self.calendar_mode, -1)

    def calendar_next(self) -> None:
        self.calendar_date = shift(self.calendar_date, self.calendar_mode, 1)

    def calendar_cells(self) -> list[CalendarCell | None]:
        project = self.active_project
        if project is None:
            return []
        rate = effective_rate(project, self._document.profile)
        return build_grid(
            self.calendar_date, self.calendar_mode, project.entries, rate, today=self.today()
        )

    def cell_editor(self) -> CellEditor:
        """Editor bound to whichever project is active when a cell is saved."""

        def _save(day: str, hours: Any) -> None:
            if self.active_project_id:
                self.set_hours_for_date(self.active_project_id, day, hours)

        return CellEditor(_save)

    # --- Export ---

    def open_export(self) -> None:
        self.export_project_ids = {p.id for p in self._document.projects}
        self.export_range = DateRange()
        self.export_open = True

    def close_export(self) -> None:
        self.export_open = False

    def toggle_export_project(self, project_id: str) -> None:
        if project_id in self.export_project_ids:
            self.export_project_ids.discard(project_id)
        elif self._document.find_project(project_id) is not None:
            self.export_project_ids.add(project_id)

    def set_export_range(self, start: str | None = None, end: str | None = None) -> None:
        self.export_range = DateRange(start or None, end or None)

    def set_export_preset(self, preset: str) -> None:
        self.export_range = preset_range(preset, self.today())

    def export(self) -> tuple[str, str]:
        """Return ``(filename, csv_text)`` for the current export selection."""
        text = build_csv(self._document, set(self.export_project_ids), self.export_range)
        self.export_open = False
        return export_filename(self.export_range), text
