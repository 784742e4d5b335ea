from __future__ import annotations

import asyncio
import getpass
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Any

from agents import Agent, ModelSettings, RunContextWrapper, function_tool, run_demo_loop
from dotenv import load_dotenv

from .backend.auth import AuthGate, AuthState, FlagStore
from .backend.calendar_grid import MODES, range_label, render_grid
from .backend.client import StateClient
from .backend.config import Settings, configure_logging, load_from_env
from .backend.controller import ViewStateController
from .backend.forms import Project
from .backend.parsers import resolve_date_phrase, today_in
from .backend.utils import RANGE_PRESETS, coerce_number, format_hours, format_money, is_iso_date

logger = logging.getLogger(__name__)


@dataclass
class TrackerContext:
    """Per-session context shared by every tool."""

    controller: ViewStateController
    gate: AuthGate
    settings: Settings = field(default_factory=Settings)


def _find_project(ctx: TrackerContext, value: str | None) -> Project | None:
    """Match a project by id or (case-insensitive) name; empty means the active one."""
    controller = ctx.controller
    v = (value or "").strip().lower()
    if not v:
        return controller.active_project
    for p in controller.document.projects:
        if p.id.lower() == v or p.name.strip().lower() == v:
            return p
    return None


def _signed_out(ctx: TrackerContext) -> dict[str, Any] | None:
    if not ctx.gate.is_authenticated:
        return {"status": "error", "problems": ["Signed out. Restart to sign in again."]}
    return None


def _sync_info(ctx: TrackerContext) -> dict[str, Any]:
    return {"sync": ctx.controller.status, "unsaved_changes": ctx.controller.write_pending}


def _project_info(ctx: TrackerContext, p: Project) -> dict[str, Any]:
    s = next(
        (x for x in ctx.controller.project_summaries(archived=p.archived) if x.project_id == p.id),
        None,
    )
    return {
        "id": p.id,
        "name": p.name,
        "archived": p.archived,
        "rate": s.rate if s else None,
        "hours": format_hours(s.hours if s else 0),
        "earned": format_money(s.earned if s else 0),
        "active": p.id == ctx.controller.active_project_id,
    }


@function_tool
def list_projects(
    ctx: RunContextWrapper[TrackerContext], include_archived: bool = False
) -> dict[str, Any]:
    """List projects with hours and earnings for the current summary range.

    Args:
        include_archived: Also list archived projects.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    doc = c.controller.document
    projects = [_project_info(c, p) for p in doc.active_projects]
    if include_archived:
        projects += [_project_info(c, p) for p in doc.archived_projects]
    return {
        "status": "ok",
        "profile": {"name": doc.profile.name, "rate": doc.profile.rate},
        "summary_range": c.controller.summary_range,
        "projects": projects,
        **_sync_info(c),
    }


@function_tool
def show_totals(
    ctx: RunContextWrapper[TrackerContext], period: str | None = None
) -> dict[str, Any]:
    """Total hours, earnings and number of projects with hours (active projects only).

    Args:
        period: Optional summary range: "all", "week" or "today". Keeps the current one if omitted.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    if period:
        if period not in RANGE_PRESETS:
            return {"status": "error", "problems": [f"Unknown range: {period}"]}
        c.controller.set_summary_range(period)
    totals = c.controller.totals()
    return {
        "status": "ok",
        "range": c.controller.summary_range,
        "hours": format_hours(totals.hours),
        "earned": format_money(totals.earned),
        "projects": totals.project_count,
    }


@function_tool
def set_profile(
    ctx: RunContextWrapper[TrackerContext], name: str | None = None, rate: float | None = None
) -> dict[str, Any]:
    """Update the client name and/or default hourly rate.

    Args:
        name: Client/display name.
        rate: Default hourly rate used by projects without their own rate.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    if rate is not None and coerce_number(rate) < 0:
        return {"status": "error", "problems": ["Rate must not be negative."]}
    c.controller.set_profile(name=name, rate=rate)
    profile = c.controller.document.profile
    return {"status": "ok", "profile": {"name": profile.name, "rate": profile.rate}}


@function_tool
def add_project(
    ctx: RunContextWrapper[TrackerContext], name: str | None = None, rate: float | None = None
) -> dict[str, Any]:
    """Create a project and make it the active one.

    Args:
        name: Project name (defaults to "Untitled project").
        rate: Optional hourly rate; omit to follow the profile default.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    project = (
        c.controller.add_project(name, rate) if name else c.controller.add_project(rate=rate)
    )
    return {"status": "ok", "project": _project_info(c, project)}


@function_tool
def update_project(
    ctx: RunContextWrapper[TrackerContext],
    project: str,
    name: str | None = None,
    rate: float | None = None,
) -> dict[str, Any]:
    """Rename a project and/or change its hourly rate.

    Args:
        project: Project id or name.
        name: New name.
        rate: New hourly rate.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    p = _find_project(c, project)
    if p is None:
        return {"status": "error", "problems": [f"Unknown project: {project}"]}
    if name:
        c.controller.rename_project(p.id, name)
    if rate is not None:
        c.controller.set_project_rate(p.id, rate)
    updated = c.controller.document.find_project(p.id)
    return {"status": "ok", "project": _project_info(c, updated)}


@function_tool
def select_project(ctx: RunContextWrapper[TrackerContext], project: str) -> dict[str, Any]:
    """Make an active (non-archived) project the current one.

    Args:
        project: Project id or name.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    p = _find_project(c, project)
    if p is None or not c.controller.select_project(p.id):
        return {"status": "error", "problems": [f"No active project named {project}"]}
    return {"status": "ok", "project": _project_info(c, p)}


@function_tool
def archive_project(
    ctx: RunContextWrapper[TrackerContext], project: str, restore: bool = False
) -> dict[str, Any]:
    """Archive a project (hidden from totals) or restore it.

    Args:
        project: Project id or name.
        restore: True to restore an archived project.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    p = _find_project(c, project)
    if p is None:
        return {"status": "error", "problems": [f"Unknown project: {project}"]}
    if restore:
        c.controller.restore_project(p.id)
    else:
        c.controller.archive_project(p.id)
    active = c.controller.active_project
    return {
        "status": "ok",
        "project": _project_info(c, c.controller.document.find_project(p.id)),
        "active_project": active.name if active else None,
    }


@function_tool
def delete_project(
    ctx: RunContextWrapper[TrackerContext], project: str, confirm: bool = False
) -> dict[str, Any]:
    """Delete a project and all of its entries. Ask the user first, then call with confirm=True.

    Args:
        project: Project id or name.
        confirm: Must be True to actually delete.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    p = _find_project(c, project)
    if p is None:
        return {"status": "error", "problems": [f"Unknown project: {project}"]}
    c.controller.request_delete(p.id)
    if not confirm:
        c.controller.cancel_delete()
        return {
            "status": "needs_confirmation",
            "message": f'This will remove "{p.name}" and all entries.',
        }
    c.controller.confirm_delete()
    return {"status": "ok", "deleted": p.name, "entries_removed": len(p.entries)}


@function_tool
def list_entries(ctx: RunContextWrapper[TrackerContext], project: str | None = None) -> dict[str, Any]:
    """List a project's entries in row order.

    Args:
        project: Project id or name; defaults to the active project.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    p = _find_project(c, project)
    if p is None:
        return {"status": "error", "problems": ["No such project."]}
    rate = next(
        (s.rate for s in c.controller.project_summaries(archived=p.archived) if s.project_id == p.id),
        0.0,
    )
    return {
        "status": "ok",
        "project": p.name,
        "entries": [
            {
                "id": e.id,
                "date": e.date,
                "hours": e.hours,
                "earned": format_money(coerce_number(e.hours) * rate),
            }
            for e in p.entries
        ],
    }


@function_tool
def log_hours(
    ctx: RunContextWrapper[TrackerContext], date: str, hours: float, project: str | None = None
) -> dict[str, Any]:
    """Set the hours worked on a date (calendar cell). 0 removes that day's entry.

    Args:
        date: Work date in YYYY-MM-DD format.
        hours: Hours as a decimal (e.g., 4.5); 0 clears the day.
        project: Project id or name; defaults to the active project.
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    problems: list[str] = []
    if not is_iso_date(date):
        problems.append(f"Date must be YYYY-MM-DD: {date}")
    p = _find_project(c, project)
    if p is None:
        problems.append(f"Unknown project: {project or '(none active)'}")
    if problems:
        return {"status": "error", "problems": problems}
    c.controller.set_hours_for_date(p.id, date, hours)
    updated = c.controller.document.find_project(p.id)
    day_hours = sum(coerce_number(e.hours) for e in updated.entries if e.date == date)
    return {"status": "ok", "project": p.name, "date": date, "hours": format_hours(day_hours)}


@function_tool
def edit_entry(
    ctx: RunContextWrapper[TrackerContext],
    action: str,
    project: str | None = None,
    entry_id: str | None = None,
    date: str | None = None,
    hours: float | None = None,
) -> dict[str, Any]:
    """Row editing: add, update or delete an individual entry.

    Args:
        action: "add", "update" or "delete".
        project: Project id or name; defaults to the active project.
        entry_id: Entry id (required for update/delete).
        date: YYYY-MM-DD (add defaults to today).
        hours: Decimal hours (add defaults to 1).
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    p = _find_project(c, project)
    if p is None:
        return {"status": "error", "problems": ["No such project."]}
    if date is not None and not is_iso_date(date):
        return {"status": "error", "problems": [f"Date must be YYYY-MM-DD: {date}"]}
    if action == "add":
        entry = c.controller.add_entry(p.id, date, 1.0 if hours is None else hours)
        return {"status": "ok", "entry": asdict(entry) if entry else None}
    if not entry_id or not any(e.id == entry_id for e in p.entries):
        return {"status": "error", "problems": [f"Unknown entry: {entry_id}"]}
    if action == "update":
        c.controller.update_entry(p.id, entry_id, date=date, hours=hours)
        return {"status": "ok"}
    if action == "delete":
        c.controller.delete_entry(p.id, entry_id)
        return {"status": "ok"}
    return {"status": "error", "problems": [f"Unknown action: {action}"]}


@function_tool
def show_calendar(
    ctx: RunContextWrapper[TrackerContext], mode: str | None = None, move: int = 0
) -> str:
    """Render the active project's calendar as text.

    Args:
        mode: "week" or "month"; keeps the current mode if omitted.
        move: Pages to move: -1 previous, 1 next, 0 stay.
    """
    c = ctx.context
    if _signed_out(c):
        return "Signed out."
    if mode:
        if mode not in MODES:
            return f"Unknown mode: {mode}"
        c.controller.set_calendar_mode(mode)
    for _ in range(abs(move)):
        if move < 0:
            c.controller.calendar_prev()
        else:
            c.controller.calendar_next()
    project = c.controller.active_project
    if project is None:
        return "Create a project to get started."
    label = range_label(c.controller.calendar_date, c.controller.calendar_mode)
    grid = render_grid(c.controller.calendar_cells(), c.controller.calendar_mode)
    return f"{project.name} - {label}\n{grid}"


@function_tool
def export_csv(
    ctx: RunContextWrapper[TrackerContext],
    projects: list[str] | None = None,
    preset: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> dict[str, Any]:
    """Export entries as CSV (Project,Date,Hours,Rate,Earned) and save the file.

    Args:
        projects: Optional project ids or names; all projects (archived included) if omitted.
        preset: Optional range preset: "all", "week" or "today".
        start: Optional YYYY-MM-DD start (inclusive).
        end: Optional YYYY-MM-DD end (inclusive).
    """
    c = ctx.context
    blocked = _signed_out(c)
    if blocked:
        return blocked
    controller = c.controller
    controller.open_export()
    problems: list[str] = []
    if projects:
        wanted: set[str] = set()
        for name in projects:
            p = _find_project(c, name)
            if p is None:
                problems.append(f"Unknown project: {name}")
            else:
                wanted.add(p.id)
        for pid in list(controller.export_project_ids):
            if pid not in wanted:
                controller.toggle_export_project(pid)
    for value in (start, end):
        if value and not is_iso_date(value):
            problems.append(f"Date must be YYYY-MM-DD: {value}")
    if preset and preset not in RANGE_PRESETS:
        problems.append(f"Unknown preset: {preset}")
    if not controller.export_project_ids:
        problems.append("Select at least one project.")
    if problems:
        controller.close_export()
        return {"status": "error", "problems": problems}
    if preset:
        controller.set_export_preset(preset)
    if start or end:
        controller.set_export_range(start, end)
    filename, csv_text = controller.export()
    folder = os.environ.get("TR4CK_EXPORT_DIR") or os.getcwd()
    path = os.path.join(folder, filename)
    try:
        os.makedirs(folder, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(csv_text)
    except OSError as exc:
        logger.warning("Could not write %s: %s", path, exc)
        return {"status": "partial", "filename": filename, "csv": csv_text, "problems": [str(exc)]}
    return {"status": "ok", "filename": filename, "path": path, "csv": csv_text}


@function_tool
def resolve_date(phrase: str, timezone: str | None = None, base_date: str | None = None) -> str:
    """Resolve a relative or natural-language date to ISO YYYY-MM-DD.

    Args:
        phrase: A date like "today", "yesterday", or "September 9 2025".
        timezone: Optional IANA timezone (e.g., America/Toronto). Defaults to env TR4CK_TZ or system tz.
        base_date: Optional YYYY-MM-DD used as an anchor for relative phrases.
    Returns:
        ISO date string (YYYY-MM-DD), or empty string if not understood.
    """
    tz = timezone or os.environ.get("TR4CK_TZ")
    return resolve_date_phrase(phrase, timezone=tz, base_date=base_date)


@function_tool
def log_out(ctx: RunContextWrapper[TrackerContext]) -> str:
    """Sign out. Pending changes are written first."""
    c = ctx.context
    if not c.gate.required:
        return "Sign-in is not configured; nothing to do."
    c.controller.flush()
    c.gate.log_out()
    c.controller.invalidate()
    return "Signed out."


def build_agent(model_name: str) -> Agent[TrackerContext]:
    instructions = (
        "You are a concise time-tracking assistant for a freelancer. "
        "The user logs hours per project per day; earnings are hours times the project's hourly rate "
        "(projects without their own rate use the profile's default rate). "
        "When the user mentions a relative or natural-language date (e.g., 'today', 'yesterday', 'last friday'), "
        "use resolve_date to convert it to YYYY-MM-DD; do not guess. "
        "To record hours for a day use log_hours; it replaces that day's hours, and 0 clears the day. "
        "Use edit_entry only when the user wants to manage individual entry rows. "
        "Use list_projects to find project names and ids; if a project is ambiguous, ask. "
        "Never delete a project without explicit confirmation: call delete_project without confirm first, "
        "relay the warning, and only call it again with confirm=True when the user agrees. "
        "Archived projects are excluded from totals but still exported. "
        "Use show_calendar to display a week or month grid, show_totals for totals, "
        "and export_csv when asked for a CSV export. "
        "If a tool reports a sync problem, mention it briefly; local changes are kept and retried. "
        "Be concise and ask one question at a time."
    )

    return Agent[TrackerContext](
        name="TR4CK",
        instructions=instructions,
        tools=[
            list_projects,
            show_totals,
            set_profile,
            add_project,
            update_project,
            select_project,
            archive_project,
            delete_project,
            list_entries,
            log_hours,
            edit_entry,
            show_calendar,
            export_csv,
            resolve_date,
            log_out,
        ],
        model=model_name,
        model_settings=ModelSettings(),
    )


def sign_in(gate: AuthGate) -> bool:
    """Prompt until the gate opens. Returns False if the user gives up (Ctrl+D)."""
    while not gate.is_authenticated:
        if gate.state is AuthState.LOCKED_OUT:
            print(f"Too many attempts. Try again in {gate.remaining_seconds()}s.")
        try:
            username = input("Username: ") if gate.expected_user else ""
            password = getpass.getpass("Password: ") if gate.expected_pass else ""
        except EOFError:
            return False
        result = gate.submit(username, password)
        if not result.ok and result.message:
            print(result.message)
    return True


def build_context(settings: Settings, today: Any = None) -> TrackerContext:
    gate = AuthGate(settings.login_user, settings.login_pass, FlagStore(settings.flags_path))
    controller = ViewStateController(
        StateClient(settings.api_url),
        delay=settings.save_delay,
        today=today or (lambda: today_in(settings.timezone)),
    )
    return TrackerContext(controller=controller, gate=gate, settings=settings)


async def main() -> None:
    load_dotenv()
    settings = load_from_env()
    configure_logging(settings.log_level)

    if not os.environ.get("OPENAI_API_KEY"):
        print("Warning: OPENAI_API_KEY is not set. Set it in your shell or a .env file.")

    context = build_context(settings)
    if not sign_in(context.gate):
        return
    context.controller.load()
    if context.controller.status:
        print(context.controller.status)

    agent = build_agent(settings.model)
    print("TR4CK ready. Log hours, ask for totals or an export. Ctrl+C to exit.")
    try:
        await run_demo_loop(agent, stream=True, context=context)
    finally:
        context.controller.flush()
        context.controller.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
