"""
Checklist Service.

Company-scoped orchestration over the checklist engine and the store. This
is the only layer that commits.

Functions:
    - create_company / get_company:     company registration and lookup
    - create_board_from_blueprint:      seed a board from a registered blueprint
    - list_boards / get_board:          boards with progress, metrics, ranked tasks
    - add_task / update_task /
      update_task_status / delete_task: task mutations with audit trail
    - refresh_notifications:            rebuild the feed, preserving read state
    - list_notifications / mark_notification_read /
      mark_all_notifications_read:      notification feed access
    - company_overview:                 progress, metrics, top tasks, unread count
    - list_task_audits:                 change history for one task
    - calendar_month / calendar_agenda: due dates projected onto the calendar

Every task mutation stamps ``updated_at``, writes a ChecklistTaskAudit row,
refreshes Company.checklist_progress and re-derives the notification feed
inside the same transaction.
"""

import logging
import uuid
from datetime import date

from checklist_platform.core.exceptions import ConflictError, NotFoundError, ValidationError
from checklist_platform.models import db
from checklist_platform.models.checklist import ChecklistBoardRecord, ChecklistTaskAudit
from checklist_platform.models.company import Company
from checklist_platform.models.notification import ChecklistNotificationRecord
from checklist_platform.services import calendar_helpers as cal
from checklist_platform.services import checklist_store as store
from checklist_platform.services.checklist_blueprint import (
    create_default_board,
    default_board_id,
    default_registry,
)
from checklist_platform.services.checklist_normalizers import sanitize_task
from checklist_platform.services.checklist_notifications import (
    build_notifications,
    merge_notifications,
    unread_count,
)
from checklist_platform.services.checklist_progress import (
    analyze_boards,
    group_tasks_by_status,
    progress_for_board,
    progress_for_boards,
    sort_tasks_by_priority,
)
from checklist_platform.services.checklist_types import (
    Category,
    Phase,
    Pillar,
    Priority,
    Severity,
    TaskStatus,
)
from checklist_platform.utils.helpers import format_date_only, parse_date_input, utc_now_iso

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "title", "description", "severity", "status", "owner", "category", "due_date",
    "phase", "pillar", "priority", "references", "evidences", "notes", "tags",
)

_ENUM_FIELDS = {
    "severity": Severity,
    "status": TaskStatus,
    "category": Category,
    "priority": Priority,
    "phase": Phase,
    "pillar": Pillar,
}
_NULLABLE_ENUM_FIELDS = {"phase", "pillar"}


# ── Validation helpers ───────────────────────────────────────────────────────


def _validate_task_changes(changes: dict) -> dict:
    """Reject unknown enum values and malformed dates; return the editable subset."""
    if not isinstance(changes, dict):
        raise ValidationError("Task payload must be an object")

    errors = {}
    cleaned = {}
    for key in EDITABLE_FIELDS:
        if key not in changes:
            continue
        value = changes[key]

        if key in _ENUM_FIELDS:
            if value is None and key in _NULLABLE_ENUM_FIELDS:
                cleaned[key] = None
                continue
            allowed = [m.value for m in _ENUM_FIELDS[key]]
            if value not in allowed:
                errors[key] = f"must be one of: {', '.join(allowed)}"
                continue
        elif key == "due_date":
            try:
                value = format_date_only(parse_date_input(value))
            except ValueError as exc:
                errors[key] = str(exc)
                continue
        elif key == "title":
            value = (value or "").strip() if isinstance(value, str) else ""
            if not value:
                errors[key] = "title is required"
                continue
        cleaned[key] = value

    if errors:
        raise ValidationError("Invalid task payload", details=errors)
    return cleaned


def _actor_fields(actor: dict | None) -> dict:
    actor = actor or {}
    return {"actor_id": actor.get("id"), "actor_name": actor.get("name")}


def _diff(before: dict, after: dict, fields) -> dict:
    changes = {}
    for key in fields:
        if before.get(key) != after.get(key):
            changes[key] = {"from": before.get(key), "to": after.get(key)}
    return changes


def _audit_event(changes: dict) -> str:
    status = changes.get("status")
    if not status:
        return "updated"
    if status["to"] == TaskStatus.DONE.value:
        return "completed"
    if status["from"] == TaskStatus.DONE.value:
        return "reopened"
    return "status_changed"


def _record_audit(company_id, board_id, task_id, event, summary, changes=None, actor=None):
    audit = ChecklistTaskAudit(
        company_id=company_id,
        checklist_id=board_id,
        task_id=task_id,
        event=event,
        summary=summary[:500],
        changes=changes or {},
        **_actor_fields(actor),
    )
    db.session.add(audit)
    return audit


# ── Company ──────────────────────────────────────────────────────────────────


def _get_company_or_404(company_id: str) -> Company:
    company = db.session.get(Company, company_id)
    if not company:
        raise NotFoundError(resource="Company", resource_id=company_id)
    return company


def create_company(data: dict, *, seed_blueprint: bool = True, reference_date=None) -> dict:
    """Register a company and, by default, seed its essential checklist board."""
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Company name is required", details={"name": "required"})

    company = Company(
        name=name[:200],
        cnpj=(data.get("cnpj") or "")[:20] or None,
        regime=(data.get("regime") or "")[:60],
        sector=(data.get("sector") or "")[:100],
    )
    db.session.add(company)
    db.session.flush()

    if seed_blueprint:
        board = create_default_board(company.id, reference_date=reference_date)
        store.insert_board(board)
        _sync_company_state(company.id)

    db.session.commit()
    logger.info("Company created", extra={"company_id": company.id, "seeded": seed_blueprint})
    return company.to_dict()


def get_company(company_id: str) -> dict:
    return _get_company_or_404(company_id).to_dict()


# ── Derived state ────────────────────────────────────────────────────────────


def _sync_company_state(company_id: str, today: date | None = None) -> dict:
    """Recompute progress and the notification feed for a company (no commit)."""
    boards = store.fetch_boards(company_id)
    company = _get_company_or_404(company_id)
    company.checklist_progress = progress_for_boards(boards)

    previous = store.fetch_notifications(company_id)
    derived = build_notifications(boards, previous, today=today)
    merged = merge_notifications(previous, derived)
    summary = store.save_notifications(company_id, merged, remove_missing=True)
    return {"progress": company.checklist_progress, "notifications": merged, **summary}


def refresh_notifications(company_id: str, today: date | None = None) -> dict:
    """Rebuild and persist the company's notification feed."""
    _get_company_or_404(company_id)
    state = _sync_company_state(company_id, today=today)
    db.session.commit()
    return {
        "progress": state["progress"],
        "inserted": state["inserted"],
        "updated": state["updated"],
        "removed": state["removed"],
        "items": [n.to_dict() for n in state["notifications"]],
        "unread": unread_count(state["notifications"]),
    }


# ── Boards ───────────────────────────────────────────────────────────────────


def create_board_from_blueprint(company_id: str, name: str | None = None, reference_date=None,
                                version: str | None = None, today: date | None = None) -> dict:
    """Instantiate a registered blueprint into a new board for the company."""
    _get_company_or_404(company_id)
    registry = default_registry()
    blueprint = registry.get_blueprint(version)
    if blueprint is None:
        raise ValidationError(
            f"Unknown blueprint version: {version}",
            details={"version": f"must be one of: {', '.join(registry.versions())}"},
        )

    if reference_date is not None:
        try:
            reference_date = parse_date_input(reference_date)
        except ValueError as exc:
            raise ValidationError(str(exc), details={"reference_date": "invalid"}) from exc

    board_id = default_board_id(company_id)
    if db.session.get(ChecklistBoardRecord, board_id) is not None:
        board_id = f"{company_id}-checklist-{uuid.uuid4().hex[:8]}"

    board = create_default_board(
        company_id, blueprint=blueprint, reference_date=reference_date,
        board_id=board_id, name=(name or "").strip() or None,
    )
    store.insert_board(board)
    _sync_company_state(company_id, today=today)
    db.session.commit()

    logger.info(
        "Checklist board created from blueprint %s", blueprint.version,
        extra={"company_id": company_id, "board_id": board.id},
    )
    payload = board.to_dict()
    payload["progress"] = progress_for_board(board)
    payload["blueprint_version"] = blueprint.version
    return payload


def list_boards(company_id: str) -> list[dict]:
    _get_company_or_404(company_id)
    result = []
    for board in store.fetch_boards(company_id):
        payload = board.to_dict(include_tasks=False)
        payload["progress"] = progress_for_board(board)
        result.append(payload)
    return result


def _load_board(company_id: str, board_id: str):
    boards = store.fetch_boards(company_id, board_id=board_id)
    if not boards:
        raise NotFoundError(resource="ChecklistBoard", resource_id=board_id, company_id=company_id)
    return boards[0]


def get_board(company_id: str, board_id: str, today: date | None = None) -> dict:
    """Board with tasks ranked by priority, kanban columns, progress and metrics."""
    _get_company_or_404(company_id)
    board = _load_board(company_id, board_id)
    today = today or date.today()

    payload = board.to_dict(include_tasks=False)
    payload["tasks"] = [t.to_dict() for t in sort_tasks_by_priority(board.tasks, today)]
    payload["columns"] = {
        status.value: [t.id for t in tasks]
        for status, tasks in group_tasks_by_status(board.tasks).items()
    }
    payload["progress"] = progress_for_board(board)
    payload["metrics"] = analyze_boards([board], today).to_dict()
    return payload


# ── Tasks ────────────────────────────────────────────────────────────────────


def _find_task(board, task_id: str):
    for task in board.tasks:
        if task.id == task_id:
            return task
    raise NotFoundError(resource="ChecklistTask", resource_id=task_id, company_id=board.company_id)


def add_task(company_id: str, board_id: str, data: dict, actor: dict | None = None,
             today: date | None = None) -> dict:
    """Add an ad hoc task to a board."""
    board = _load_board(company_id, board_id)
    if "title" not in data:
        raise ValidationError("Invalid task payload", details={"title": "title is required"})
    cleaned = _validate_task_changes(data)

    task_id = (data.get("id") or "").strip() if isinstance(data.get("id"), str) else ""
    if task_id and any(t.id == task_id for t in board.tasks):
        raise ConflictError(resource="ChecklistTask", field="id", value=task_id)

    now = utc_now_iso()
    task = sanitize_task(
        {**cleaned, "id": task_id or str(uuid.uuid4()), "created_at": now, "updated_at": now},
        board_id, now,
    )
    store.insert_tasks(board_id, [task])
    _record_audit(company_id, board_id, task.id, "created", f"Task created: {task.title}", actor=actor)
    _sync_company_state(company_id, today=today)
    db.session.commit()

    logger.info("Checklist task created", extra={"company_id": company_id, "board_id": board_id, "task_id": task.id})
    return task.to_dict()


def update_task(company_id: str, board_id: str, task_id: str, changes: dict,
                actor: dict | None = None, today: date | None = None) -> dict:
    """
    Apply a partial update to a task.

    Returns the updated task. A payload that changes nothing writes no
    audit entry.
    """
    board = _load_board(company_id, board_id)
    current = _find_task(board, task_id)
    cleaned = _validate_task_changes(changes)

    before = current.to_dict()
    now = utc_now_iso()
    merged = {**before, **cleaned, "updated_at": now}
    if merged.get("due_date") is None:
        merged.pop("due_date", None)
    updated = sanitize_task(merged, board_id, current.created_at)

    after = updated.to_dict()
    diff = _diff(before, after, cleaned.keys())
    if not diff:
        return before

    record = store.get_task_record(board_id, task_id)
    store.apply_task_to_record(record, updated)
    event = _audit_event(diff)
    _record_audit(
        company_id, board_id, task_id, event,
        f"{event.replace('_', ' ').capitalize()}: {', '.join(sorted(diff))}",
        changes=diff, actor=actor,
    )
    _sync_company_state(company_id, today=today)
    db.session.commit()

    logger.info(
        "Checklist task %s", event,
        extra={"company_id": company_id, "board_id": board_id, "task_id": task_id},
    )
    return after


def update_task_status(company_id: str, board_id: str, task_id: str, status: str,
                       actor: dict | None = None, today: date | None = None) -> dict:
    return update_task(company_id, board_id, task_id, {"status": status}, actor=actor, today=today)


def delete_task(company_id: str, board_id: str, task_id: str, actor: dict | None = None,
                today: date | None = None) -> None:
    board = _load_board(company_id, board_id)
    task = _find_task(board, task_id)

    record = store.get_task_record(board_id, task_id)
    db.session.delete(record)
    db.session.flush()
    _record_audit(
        company_id, board_id, task_id, "deleted", f"Task deleted: {task.title}",
        changes={"task": {"from": task.to_dict(), "to": None}}, actor=actor,
    )
    _sync_company_state(company_id, today=today)
    db.session.commit()
    logger.info("Checklist task deleted", extra={"company_id": company_id, "board_id": board_id, "task_id": task_id})


def list_task_audits(company_id: str, board_id: str, task_id: str) -> list[dict]:
    _load_board(company_id, board_id)
    audits = (
        ChecklistTaskAudit.query_for_company(company_id)
        .filter_by(checklist_id=board_id, task_id=task_id)
        .order_by(ChecklistTaskAudit.created_at.desc())
        .all()
    )
    return [a.to_dict() for a in audits]


# ── Notifications ────────────────────────────────────────────────────────────


def list_notifications(company_id: str, unread_only: bool = False) -> dict:
    _get_company_or_404(company_id)
    notifications = store.fetch_notifications(company_id)
    if unread_only:
        notifications = [n for n in notifications if not n.read]
    return {
        "items": [n.to_dict() for n in notifications],
        "total": len(notifications),
        "unread": unread_count(notifications),
    }


def mark_notification_read(company_id: str, notification_id: str, read: bool = True) -> dict:
    record = ChecklistNotificationRecord.query_for_company(company_id).filter_by(id=notification_id).first()
    if not record:
        raise NotFoundError(resource="ChecklistNotification", resource_id=notification_id, company_id=company_id)
    store.mark_notifications_read(company_id, [notification_id], read=read)
    db.session.commit()
    return {"id": notification_id, "read": read}


def mark_all_notifications_read(company_id: str) -> dict:
    _get_company_or_404(company_id)
    changed = store.mark_notifications_read(company_id, None, read=True)
    db.session.commit()
    return {"marked_read": changed}


# ── Overview ─────────────────────────────────────────────────────────────────


def company_overview(company_id: str, today: date | None = None, top: int = 5) -> dict:
    """Dashboard snapshot: progress, metrics, most urgent open tasks, unread count."""
    company = _get_company_or_404(company_id)
    today = today or date.today()
    boards = store.fetch_boards(company_id)

    open_tasks = [t for b in boards for t in b.tasks if t.status != TaskStatus.DONE]
    stored = store.fetch_notifications(company_id)
    return {
        "company": company.to_dict(),
        "progress": progress_for_boards(boards),
        "metrics": analyze_boards(boards, today).to_dict(),
        "priority_tasks": [t.to_dict() for t in sort_tasks_by_priority(open_tasks, today)[:top]],
        "unread_notifications": unread_count(stored),
        "blueprint_version": default_registry().default_version,
    }


# ── Calendar ─────────────────────────────────────────────────────────────────


def calendar_month(company_id: str, base_date: date | None = None) -> dict:
    """Month grid: cells, task events with collision-free rows and per-day task lists."""
    _get_company_or_404(company_id)
    base = base_date or date.today()
    tasks = [t for b in store.fetch_boards(company_id) for t in b.tasks]

    events = cal.tasks_to_calendar_events(tasks)
    multi = [e for e in events if e.is_multi_day]
    single = [e for e in events if not e.is_multi_day]
    positions = cal.calculate_month_event_positions(multi, single, base)

    cells = []
    for cell in cal.get_calendar_cells(base):
        payload = cell.to_dict()
        payload["events"] = [
            {**event.to_dict(), "position": position}
            for event, position in cal.get_month_cell_events(cell.date, events, positions)
        ]
        cells.append(payload)

    return {
        "label": cal.range_text(cal.CalendarView.MONTH, base),
        "previous": cal.navigate_date(base, cal.CalendarView.MONTH, "previous").isoformat(),
        "next": cal.navigate_date(base, cal.CalendarView.MONTH, "next").isoformat(),
        "event_count": cal.get_events_count(events, base, cal.CalendarView.MONTH),
        "cells": cells,
        "days": [entry.to_dict() for entry in cal.build_monthly_calendar(tasks, base)],
    }


def calendar_agenda(company_id: str, base_date: date | None = None) -> dict:
    """Dated tasks of the month in chronological order."""
    _get_company_or_404(company_id)
    base = base_date or date.today()
    tasks = [t for b in store.fetch_boards(company_id) for t in b.tasks]
    events = [
        e for e in cal.tasks_to_calendar_events(tasks)
        if (e.start.year, e.start.month) == (base.year, base.month)
    ]
    return {
        "label": cal.range_text(cal.CalendarView.AGENDA, base),
        "events": [e.to_dict() for e in events],
    }
