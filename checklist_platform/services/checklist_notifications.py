"""
Checklist notification deriver.

Notifications are a projection of the boards: one per non-completed task,
keyed ``{board_id}-{task_id}``. The only state that survives a rebuild is
the ``read`` flag, carried over by id from the previous set. Building twice
from the same boards therefore yields the same ids and read flags.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import date

from checklist_platform.services.checklist_progress import DUE_SOON_DAYS, days_until
from checklist_platform.services.checklist_types import (
    ChecklistBoard,
    ChecklistNotification,
    ChecklistTask,
    Severity,
    TaskStatus,
)
from checklist_platform.utils.helpers import parse_date

logger = logging.getLogger(__name__)

NO_DEADLINE_LABEL = "No deadline"
NO_DEADLINE_MESSAGE = "No deadline set"


def notification_id(board_id: str, task_id: str) -> str:
    return f"{board_id}-{task_id}"


def format_due_date_label(due_date: str | None) -> str:
    """``dd/MM`` for a valid date; the raw value when it cannot be parsed."""
    if not due_date:
        return NO_DEADLINE_LABEL
    parsed = parse_date(due_date)
    if parsed is None:
        return str(due_date)
    return parsed.strftime("%d/%m")


def resolve_notification_severity(task: ChecklistTask, today: date | None = None) -> Severity:
    """Escalate the task's static severity by deadline proximity."""
    if task.status == TaskStatus.DONE:
        return Severity.GREEN
    remaining = days_until(task.due_date, today or date.today())
    if remaining is not None:
        if remaining < 0:
            return Severity.RED
        if remaining <= DUE_SOON_DAYS:
            return Severity.AMBER
    return task.severity


def _message(task: ChecklistTask, today: date) -> str:
    remaining = days_until(task.due_date, today)
    if remaining is None:
        if task.due_date:
            return f"Due {format_due_date_label(task.due_date)}"
        return NO_DEADLINE_MESSAGE
    if remaining < 0:
        return f"Overdue since {format_due_date_label(task.due_date)}"
    return f"Due {format_due_date_label(task.due_date)}"


def build_notifications(boards: Iterable[ChecklistBoard],
                        previous: Iterable[ChecklistNotification] = (),
                        today: date | None = None) -> list[ChecklistNotification]:
    """
    Derive the notification set for ``boards``.

    Done tasks never produce a notification. ``read`` is taken from
    ``previous`` by id and defaults to False for new ids.
    """
    today = today or date.today()
    read_map = {n.id: n.read for n in previous}

    notifications = []
    for board in boards:
        for task in board.tasks:
            if task.status == TaskStatus.DONE:
                continue
            nid = notification_id(board.id, task.id)
            notifications.append(ChecklistNotification(
                id=nid,
                checklist_id=board.id,
                task_id=task.id,
                severity=resolve_notification_severity(task, today),
                title=task.title,
                message=_message(task, today),
                due_date=task.due_date,
                created_at=task.created_at,
                read=read_map.get(nid, False),
                phase=task.phase,
                priority=task.priority,
                pillar=task.pillar,
            ))

    logger.debug("Derived %d notifications (%d previously known)", len(notifications), len(read_map))
    return notifications


def merge_notifications(current: Iterable[ChecklistNotification],
                        updated: Iterable[ChecklistNotification]) -> list[ChecklistNotification]:
    """Overlay read state from ``current`` onto ``updated``; ids only in ``current`` are dropped."""
    read_map = {n.id: n.read for n in current}
    return [replace(n, read=read_map.get(n.id, n.read)) for n in updated]


def unread_count(notifications: Iterable[ChecklistNotification]) -> int:
    return sum(1 for n in notifications if not n.read)
