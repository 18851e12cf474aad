"""
Checklist persistence.

Maps ChecklistBoardRecord / ChecklistTaskRecord / ChecklistNotificationRecord
rows to the engine dataclasses and back. Every row read goes through the
sanitizers, so a partially migrated database still yields well-formed
records.

Deployments that predate the ``blueprint_id`` (or richer task) columns are
handled by ``ProjectionFallback``: reads start from the richest column set
and step down one level whenever the database reports a missing column,
remembering the level that worked. Task inserts retry once without
``blueprint_id`` for the same reason.

Nothing here commits; callers own the transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import and_, insert, select
from sqlalchemy.exc import DBAPIError

from checklist_platform.models import db
from checklist_platform.models.checklist import ChecklistBoardRecord, ChecklistTaskRecord
from checklist_platform.models.notification import ChecklistNotificationRecord
from checklist_platform.services.checklist_blueprint import BlueprintRegistry
from checklist_platform.services.checklist_normalizers import sanitize_board, sanitize_notification
from checklist_platform.services.checklist_types import ChecklistBoard, ChecklistNotification, ChecklistTask
from checklist_platform.utils.helpers import (
    format_date_only,
    parse_date,
    parse_timestamp,
    to_iso_timestamp,
)

logger = logging.getLogger(__name__)

_MISSING_COLUMN_MARKERS = (
    "no such column",
    "has no column named",
    "does not exist",
    "undefinedcolumn",
    "unknown column",
)


def is_missing_column_error(exc: Exception) -> bool:
    """True when the database rejected a statement over an unknown column."""
    text = f"{type(getattr(exc, 'orig', exc)).__name__} {exc}".lower()
    return "column" in text and any(marker in text for marker in _MISSING_COLUMN_MARKERS)


def _utcnow():
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════════════
# Projection fallback
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProjectionLevel:
    name: str
    board_columns: tuple[str, ...]
    task_columns: tuple[str, ...]


_BASE_BOARD_COLUMNS = ("id", "company_id", "name", "description", "created_at", "updated_at")
_BASE_TASK_COLUMNS = (
    "task_id", "board_id", "title", "description", "severity", "status",
    "owner", "category", "due_date", "created_at", "updated_at",
)
_RICH_TASK_COLUMNS = (
    "phase", "pillar", "priority", "reference_items", "evidence_items", "note_items", "tags",
)

PROJECTION_LEVELS = (
    ProjectionLevel(
        "full",
        _BASE_BOARD_COLUMNS + ("reference_date",),
        _BASE_TASK_COLUMNS + _RICH_TASK_COLUMNS + ("blueprint_id",),
    ),
    ProjectionLevel(
        "legacy",
        _BASE_BOARD_COLUMNS + ("reference_date",),
        _BASE_TASK_COLUMNS + _RICH_TASK_COLUMNS,
    ),
    ProjectionLevel("minimal", _BASE_BOARD_COLUMNS, _BASE_TASK_COLUMNS),
)


class ProjectionFallback:
    """
    Run a read against the richest projection the schema supports.

    The preferred level only moves towards narrower projections and is
    shared by every caller holding the same instance.
    """

    def __init__(self, levels=PROJECTION_LEVELS):
        self.levels = tuple(levels)
        self.preferred = 0

    @property
    def current(self) -> ProjectionLevel:
        return self.levels[self.preferred]

    def reset(self):
        self.preferred = 0

    def run(self, execute: Callable[[ProjectionLevel], object]):
        last = len(self.levels) - 1
        for index in range(self.preferred, len(self.levels)):
            level = self.levels[index]
            try:
                with db.session.begin_nested():
                    result = execute(level)
            except DBAPIError as exc:
                if index == last or not is_missing_column_error(exc):
                    raise
                logger.warning(
                    "Projection '%s' rejected by schema, falling back to '%s': %s",
                    level.name, self.levels[index + 1].name, exc.orig,
                )
                self.preferred = index + 1
                continue
            self.preferred = index
            return result
        raise RuntimeError("no projection levels configured")


board_projection = ProjectionFallback()


# ═════════════════════════════════════════════════════════════════════════════
# Row mapping
# ═════════════════════════════════════════════════════════════════════════════

_TASK_FIELD_MAP = {
    "task_id": "id",
    "reference_items": "references",
    "evidence_items": "evidences",
    "note_items": "notes",
}


def _row_value(value):
    if isinstance(value, datetime):
        return to_iso_timestamp(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _task_row_to_mapping(row) -> dict:
    data = {}
    for key, value in row._mapping.items():
        data[_TASK_FIELD_MAP.get(key, key)] = _row_value(value)
    return data


def _board_row_to_mapping(row) -> dict:
    return {key: _row_value(value) for key, value in row._mapping.items()}


def _task_payload(board_id: str, task: ChecklistTask) -> dict:
    return {
        "task_id": task.id,
        "board_id": board_id,
        "blueprint_id": task.blueprint_id,
        "title": task.title,
        "description": task.description,
        "severity": task.severity.value,
        "status": task.status.value,
        "owner": task.owner,
        "category": task.category.value,
        "due_date": parse_date(task.due_date),
        "phase": task.phase.value if task.phase else None,
        "pillar": task.pillar.value if task.pillar else None,
        "priority": task.priority.value if task.priority else None,
        "reference_items": [r.to_dict() for r in task.references],
        "evidence_items": [e.to_dict() for e in task.evidences],
        "note_items": [n.to_dict() for n in task.notes],
        "tags": list(task.tags),
        "created_at": parse_timestamp(task.created_at) or _utcnow(),
        "updated_at": parse_timestamp(task.updated_at) or _utcnow(),
    }


def apply_task_to_record(record: ChecklistTaskRecord, task: ChecklistTask) -> ChecklistTaskRecord:
    """Copy a task's mutable fields onto an existing row."""
    payload = _task_payload(record.board_id, task)
    payload.pop("board_id")
    payload.pop("created_at")
    for key, value in payload.items():
        setattr(record, key, value)
    return record


# ═════════════════════════════════════════════════════════════════════════════
# Boards & tasks
# ═════════════════════════════════════════════════════════════════════════════

def fetch_boards(company_id: str, registry: BlueprintRegistry | None = None,
                 board_id: str | None = None) -> list[ChecklistBoard]:
    """All boards of a company (oldest first) with their tasks in insertion order."""

    def _execute(level: ProjectionLevel):
        board_stmt = (
            select(*[getattr(ChecklistBoardRecord, c) for c in level.board_columns])
            .where(ChecklistBoardRecord.company_id == company_id)
            .order_by(ChecklistBoardRecord.created_at.asc())
        )
        if board_id is not None:
            board_stmt = board_stmt.where(ChecklistBoardRecord.id == board_id)
        board_rows = db.session.execute(board_stmt).all()
        if not board_rows:
            return [], []

        task_stmt = (
            select(*[getattr(ChecklistTaskRecord, c) for c in level.task_columns])
            .where(ChecklistTaskRecord.board_id.in_([r.id for r in board_rows]))
            .order_by(ChecklistTaskRecord.row_id.asc())
        )
        return board_rows, db.session.execute(task_stmt).all()

    board_rows, task_rows = board_projection.run(_execute)

    tasks_by_board: dict[str, list[dict]] = {}
    for row in task_rows:
        tasks_by_board.setdefault(row.board_id, []).append(_task_row_to_mapping(row))

    boards = []
    for row in board_rows:
        data = _board_row_to_mapping(row)
        data["tasks"] = tasks_by_board.get(data["id"], [])
        boards.append(sanitize_board(data, company_id, registry=registry))
    return boards


def insert_board(board: ChecklistBoard) -> ChecklistBoardRecord:
    """Add the board row and its tasks to the session."""
    record = ChecklistBoardRecord(
        id=board.id,
        company_id=board.company_id,
        name=board.name,
        description=board.description,
        reference_date=parse_date(board.reference_date),
        created_at=parse_timestamp(board.created_at) or _utcnow(),
        updated_at=parse_timestamp(board.updated_at) or _utcnow(),
    )
    db.session.add(record)
    db.session.flush()

    if board.tasks:
        insert_tasks(board.id, board.tasks)
    logger.info("Inserted checklist board", extra={"company_id": board.company_id, "board_id": board.id})
    return record


def insert_tasks(board_id: str, tasks: Iterable[ChecklistTask]) -> int:
    """
    Bulk-insert task rows for ``board_id``.

    Retries once without ``blueprint_id`` when the column is missing.
    """
    payloads = [_task_payload(board_id, task) for task in tasks]
    if not payloads:
        return 0

    table = ChecklistTaskRecord.__table__
    try:
        with db.session.begin_nested():
            db.session.execute(insert(table), payloads)
    except DBAPIError as exc:
        if not is_missing_column_error(exc):
            raise
        logger.warning(
            "checklist_tasks has no blueprint_id column; retrying insert without it",
            extra={"board_id": board_id},
        )
        trimmed = [{k: v for k, v in p.items() if k != "blueprint_id"} for p in payloads]
        with db.session.begin_nested():
            db.session.execute(insert(table), trimmed)

    return len(payloads)


def get_task_record(board_id: str, task_id: str) -> ChecklistTaskRecord | None:
    return ChecklistTaskRecord.query.filter_by(board_id=board_id, task_id=task_id).first()


# ═════════════════════════════════════════════════════════════════════════════
# Notifications
# ═════════════════════════════════════════════════════════════════════════════

def _notification_to_mapping(record: ChecklistNotificationRecord) -> dict:
    return {
        "id": record.id,
        "checklist_id": record.checklist_id,
        "task_id": record.task_id,
        "kind": record.kind,
        "severity": record.severity,
        "title": record.title,
        "message": record.message,
        "read": record.read,
        "due_date": format_date_only(record.due_date),
        "phase": record.phase,
        "priority": record.priority,
        "pillar": record.pillar,
        "metadata": record.metadata_json,
        "created_at": to_iso_timestamp(record.created_at),
    }


def fetch_notifications(company_id: str) -> list[ChecklistNotification]:
    """Stored notifications for a company, newest first."""
    records = (
        ChecklistNotificationRecord.query_for_company(company_id)
        .order_by(ChecklistNotificationRecord.created_at.desc(), ChecklistNotificationRecord.id.asc())
        .all()
    )
    return [sanitize_notification(_notification_to_mapping(r)) for r in records]


def _apply_notification(record: ChecklistNotificationRecord, notification: ChecklistNotification):
    record.checklist_id = notification.checklist_id
    record.task_id = notification.task_id
    record.kind = notification.kind
    record.severity = notification.severity.value
    record.title = notification.title
    record.message = notification.message
    record.due_date = parse_date(notification.due_date)
    record.phase = notification.phase.value if notification.phase else None
    record.priority = notification.priority.value if notification.priority else None
    record.pillar = notification.pillar.value if notification.pillar else None
    record.metadata_json = dict(notification.metadata)
    if record.read != notification.read:
        record.mark_read(notification.read)


def save_notifications(company_id: str, notifications: Iterable[ChecklistNotification],
                       remove_missing: bool = True) -> dict:
    """
    Upsert ``notifications`` by id.

    With ``remove_missing`` every stored notification of the company absent
    from the incoming set is deleted, so the table mirrors the derived feed.
    """
    existing = {r.id: r for r in ChecklistNotificationRecord.query_for_company(company_id).all()}
    summary = {"inserted": 0, "updated": 0, "removed": 0}
    seen = set()

    for notification in notifications:
        seen.add(notification.id)
        record = existing.get(notification.id)
        if record is None:
            record = ChecklistNotificationRecord(
                id=notification.id,
                company_id=company_id,
                read=False,
                created_at=parse_timestamp(notification.created_at) or _utcnow(),
            )
            db.session.add(record)
            summary["inserted"] += 1
        else:
            summary["updated"] += 1
        _apply_notification(record, notification)

    if remove_missing:
        for nid, record in existing.items():
            if nid not in seen:
                db.session.delete(record)
                summary["removed"] += 1

    db.session.flush()
    logger.info(
        "Synced notifications: %d inserted, %d updated, %d removed",
        summary["inserted"], summary["updated"], summary["removed"],
        extra={"company_id": company_id},
    )
    return summary


def mark_notifications_read(company_id: str, ids: Iterable[str] | None = None, read: bool = True) -> int:
    """Set ``read`` on the given ids (all of the company's when None); returns rows changed."""
    q = ChecklistNotificationRecord.query_for_company(company_id).filter(
        ChecklistNotificationRecord.read == (not read)
    )
    if ids is not None:
        ids = list(ids)
        if not ids:
            return 0
        q = q.filter(ChecklistNotificationRecord.id.in_(ids))

    changed = 0
    for record in q.all():
        record.mark_read(read)
        changed += 1
    db.session.flush()
    return changed


def delete_notifications(company_id: str, ids: Iterable[str]) -> int:
    ids = list(ids)
    if not ids:
        return 0
    deleted = (
        ChecklistNotificationRecord.query_for_company(company_id)
        .filter(ChecklistNotificationRecord.id.in_(ids))
        .delete(synchronize_session=False)
    )
    db.session.flush()
    return deleted


def find_orphan_notifications(limit: int = 500, company_id: str | None = None) -> list[ChecklistNotificationRecord]:
    """Task notifications whose ``(checklist_id, task_id)`` no longer matches a task row."""
    task_exists = (
        select(ChecklistTaskRecord.row_id)
        .where(and_(
            ChecklistTaskRecord.board_id == ChecklistNotificationRecord.checklist_id,
            ChecklistTaskRecord.task_id == ChecklistNotificationRecord.task_id,
        ))
        .exists()
    )
    q = ChecklistNotificationRecord.query.filter(
        ChecklistNotificationRecord.task_id.isnot(None),
        ~task_exists,
    )
    if company_id is not None:
        q = q.filter(ChecklistNotificationRecord.company_id == company_id)
    return q.order_by(ChecklistNotificationRecord.created_at.asc()).limit(limit).all()


def cleanup_orphan_notifications(limit: int = 500, company_id: str | None = None) -> list[str]:
    """Delete up to ``limit`` orphan notifications; returns the deleted ids."""
    orphans = find_orphan_notifications(limit=limit, company_id=company_id)
    deleted = []
    for record in orphans:
        deleted.append(record.id)
        db.session.delete(record)
    db.session.flush()
    if deleted:
        logger.info("Removed %d orphan notifications", len(deleted))
    return deleted
