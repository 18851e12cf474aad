"""
Checklist record sanitizers.

Every task, board or notification entering the engine — API payload, DB
row, legacy migration — goes through these functions. Unknown enum values
fall back to safe defaults, malformed attachments are dropped and missing
arrays become empty lists. Nothing here raises on bad input.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from checklist_platform.services.checklist_blueprint import BlueprintRegistry, infer_blueprint_due_date
from checklist_platform.services.checklist_types import (
    Category,
    ChecklistBoard,
    ChecklistNotification,
    ChecklistTask,
    EvidenceStatus,
    Phase,
    Pillar,
    Priority,
    ReferenceType,
    Severity,
    TaskEvidence,
    TaskNote,
    TaskReference,
    TaskStatus,
)
from checklist_platform.utils.helpers import format_date_only, parse_date, utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_OWNER = "Team"
DEFAULT_TASK_TITLE = "Untitled task"
DEFAULT_BOARD_NAME = "Checklist"


def _coerce_enum(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return default


# ── Scalar fields ────────────────────────────────────────────────────────────

def sanitize_status(value: Any) -> TaskStatus:
    return _coerce_enum(TaskStatus, value, TaskStatus.TODO)


def sanitize_severity(value: Any) -> Severity:
    return _coerce_enum(Severity, value, Severity.AMBER)


def sanitize_category(value: Any) -> Category:
    return _coerce_enum(Category, value, Category.PLANNING)


def sanitize_priority(value: Any) -> Priority:
    return _coerce_enum(Priority, value, Priority.MEDIUM)


def sanitize_phase(value: Any) -> Phase | None:
    return _coerce_enum(Phase, value, None)


def sanitize_pillar(value: Any) -> Pillar | None:
    return _coerce_enum(Pillar, value, None)


def sanitize_due_date(value: Any) -> str | None:
    """Normalize to ``yyyy-MM-dd``; malformed dates count as absent."""
    if isinstance(value, str):
        value = value.strip()
    return format_date_only(parse_date(value))


def _clean_text(candidate: Mapping, key: str) -> str | None:
    raw = candidate.get(key)
    if not isinstance(raw, str):
        return None
    return raw.strip() or None


def _coerce_flag(value: Any) -> bool:
    """Booleans, 0/1 and "true"/"false" strings; anything else is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return False


# ── Attachments ──────────────────────────────────────────────────────────────

def sanitize_references(value: Any) -> list[TaskReference]:
    if not isinstance(value, (list, tuple)):
        return []

    references = []
    for candidate in value:
        if isinstance(candidate, TaskReference):
            references.append(candidate)
            continue
        if not isinstance(candidate, Mapping):
            continue
        label = _clean_text(candidate, "label")
        if not label:
            continue
        references.append(TaskReference(
            label=label,
            description=_clean_text(candidate, "description"),
            url=_clean_text(candidate, "url"),
            type=_coerce_enum(ReferenceType, _clean_text(candidate, "type"), None),
        ))
    return references


def sanitize_evidences(value: Any) -> list[TaskEvidence]:
    if not isinstance(value, (list, tuple)):
        return []

    evidences = []
    for candidate in value:
        if isinstance(candidate, TaskEvidence):
            evidences.append(candidate)
            continue
        if not isinstance(candidate, Mapping):
            continue
        label = _clean_text(candidate, "label")
        if not label:
            continue
        evidences.append(TaskEvidence(
            label=label,
            description=_clean_text(candidate, "description"),
            url=_clean_text(candidate, "url"),
            status=_coerce_enum(EvidenceStatus, _clean_text(candidate, "status"), None),
        ))
    return evidences


def sanitize_notes(value: Any) -> list[TaskNote]:
    """Keep notes with content; fill in author, timestamp and id when missing."""
    if not isinstance(value, (list, tuple)):
        return []

    notes = []
    for candidate in value:
        if isinstance(candidate, TaskNote):
            notes.append(candidate)
            continue
        if not isinstance(candidate, Mapping):
            continue
        content = _clean_text(candidate, "content")
        if not content:
            continue
        notes.append(TaskNote(
            id=_clean_text(candidate, "id") or str(uuid.uuid4()),
            author=_clean_text(candidate, "author") or DEFAULT_OWNER,
            content=content,
            created_at=_clean_text(candidate, "created_at") or _clean_text(candidate, "createdAt") or utc_now_iso(),
        ))
    return notes


def sanitize_tags(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [tag.strip() for tag in value if isinstance(tag, str) and tag.strip()]


# ── Records ──────────────────────────────────────────────────────────────────

def sanitize_task(task: Mapping[str, Any], board_id: str, fallback_timestamp: str,
                  registry: BlueprintRegistry | None = None) -> ChecklistTask:
    """
    Build a ChecklistTask from a partial mapping.

    A record without a due date whose id (or blueprint id) matches a
    blueprint template gets the template's offset applied to its
    ``created_at``, unless the record was edited after creation.
    """
    raw_created = task.get("created_at")
    raw_updated = task.get("updated_at")
    created_at = raw_created or fallback_timestamp
    updated_at = raw_updated or created_at
    task_id = task.get("id") or str(uuid.uuid4())
    blueprint_id = task.get("blueprint_id") or None

    due_date = sanitize_due_date(task.get("due_date"))
    if due_date is None:
        inferred = infer_blueprint_due_date(
            blueprint_id or task.get("id"),
            created_at,
            created_at=raw_created,
            updated_at=raw_updated,
            registry=registry,
        )
        if inferred:
            logger.debug("Inferred due date %s for task %s/%s", inferred, board_id, task_id)
            due_date = inferred

    return ChecklistTask(
        id=task_id,
        blueprint_id=blueprint_id,
        checklist_id=board_id,
        title=_clean_text(task, "title") or DEFAULT_TASK_TITLE,
        description=_clean_text(task, "description") or "",
        severity=sanitize_severity(task.get("severity")),
        status=sanitize_status(task.get("status")),
        owner=_clean_text(task, "owner") or DEFAULT_OWNER,
        category=sanitize_category(task.get("category")),
        due_date=due_date,
        phase=sanitize_phase(task.get("phase")),
        pillar=sanitize_pillar(task.get("pillar")),
        priority=sanitize_priority(task.get("priority")),
        references=sanitize_references(task.get("references")),
        evidences=sanitize_evidences(task.get("evidences")),
        notes=sanitize_notes(task.get("notes")),
        tags=sanitize_tags(task.get("tags")),
        created_at=created_at,
        updated_at=updated_at,
    )


def sanitize_board(board: Mapping[str, Any], company_id: str,
                   registry: BlueprintRegistry | None = None) -> ChecklistBoard:
    board_id = board.get("id") or str(uuid.uuid4())
    created_at = board.get("created_at") or utc_now_iso()
    updated_at = board.get("updated_at") or created_at

    raw_tasks = board.get("tasks")
    tasks = []
    if isinstance(raw_tasks, (list, tuple)):
        for raw in raw_tasks:
            if isinstance(raw, ChecklistTask):
                tasks.append(raw)
            elif isinstance(raw, Mapping):
                tasks.append(sanitize_task(raw, board_id, created_at, registry=registry))

    return ChecklistBoard(
        id=board_id,
        company_id=board.get("company_id") or company_id,
        name=board.get("name") or DEFAULT_BOARD_NAME,
        description=board.get("description") or None,
        reference_date=sanitize_due_date(board.get("reference_date")),
        created_at=created_at,
        updated_at=updated_at,
        tasks=tasks,
    )


def sanitize_notification(data: Mapping[str, Any]) -> ChecklistNotification:
    """Map a stored notification mapping back to the engine record."""
    metadata = data.get("metadata")
    return ChecklistNotification(
        id=str(data.get("id") or ""),
        checklist_id=data.get("checklist_id") or None,
        task_id=data.get("task_id") or None,
        severity=sanitize_severity(data.get("severity")),
        title=data.get("title") or "",
        message=data.get("message") or "",
        created_at=data.get("created_at") or utc_now_iso(),
        read=_coerce_flag(data.get("read")),
        due_date=sanitize_due_date(data.get("due_date")),
        phase=sanitize_phase(data.get("phase")),
        priority=_coerce_enum(Priority, data.get("priority"), None),
        pillar=sanitize_pillar(data.get("pillar")),
        kind=data.get("kind") or "task_deadline",
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
    )
