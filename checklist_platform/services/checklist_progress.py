"""
Checklist progress, operational metrics and priority ordering.

Pure reducers over boards and tasks:
    - progress_for_board / progress_for_boards: completion percentage 0..100
    - analyze_boards: overdue / due-soon / critical counts in one pass
    - score_task / sort_tasks_by_priority: composite urgency ranking
    - group_tasks_by_status: kanban buckets

Every time-aware function takes an explicit ``today``; None reads the clock
once at the call boundary.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Iterable
from datetime import date

from checklist_platform.services.checklist_types import (
    ChecklistBoard,
    ChecklistMetrics,
    ChecklistTask,
    Priority,
    Severity,
    TaskStatus,
)
from checklist_platform.utils.helpers import parse_date

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 3

SEVERITY_WEIGHT: dict[Severity, int] = {
    Severity.GREEN: 1,
    Severity.AMBER: 2,
    Severity.RED: 3,
}

PRIORITY_WEIGHT: dict[Priority, int] = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


def _percentage(done: int, total: int) -> int:
    """Half-up rounded integer percentage; 0 for an empty total."""
    if total <= 0:
        return 0
    return (done * 200 + total) // (2 * total)


def days_until(due_date: str | None, today: date) -> int | None:
    """Calendar days from ``today`` to ``due_date``; None when absent or malformed."""
    due = parse_date(due_date)
    if due is None:
        return None
    return (due - today).days


# ═════════════════════════════════════════════════════════════════════════════
# Progress
# ═════════════════════════════════════════════════════════════════════════════

def progress_for_tasks(tasks: Iterable[ChecklistTask]) -> int:
    tasks = list(tasks)
    done = sum(1 for task in tasks if task.status == TaskStatus.DONE)
    return _percentage(done, len(tasks))


def progress_for_board(board: ChecklistBoard) -> int:
    return progress_for_tasks(board.tasks)


def progress_for_boards(boards: Iterable[ChecklistBoard]) -> int:
    return progress_for_tasks(task for board in boards for task in board.tasks)


# ═════════════════════════════════════════════════════════════════════════════
# Operational metrics
# ═════════════════════════════════════════════════════════════════════════════

def analyze_boards(boards: Iterable[ChecklistBoard], today: date | None = None) -> ChecklistMetrics:
    """Reduce boards into a ChecklistMetrics snapshot."""
    today = today or date.today()
    boards = list(boards)
    metrics = ChecklistMetrics(total_checklists=len(boards))

    for board in boards:
        for task in board.tasks:
            is_done = task.status == TaskStatus.DONE
            remaining = days_until(task.due_date, today)

            metrics.total_tasks += 1
            if is_done:
                metrics.completed_tasks += 1
            else:
                metrics.in_progress_tasks += 1

            if not is_done and remaining is not None:
                if remaining < 0:
                    metrics.overdue_tasks += 1
                elif remaining <= DUE_SOON_DAYS:
                    metrics.upcoming_three_days += 1

            if not is_done and task.severity == Severity.RED:
                metrics.critical_tasks += 1
            if not is_done and task.severity == Severity.AMBER:
                metrics.attention_tasks += 1

    return metrics


# ═════════════════════════════════════════════════════════════════════════════
# Priority scoring
# ═════════════════════════════════════════════════════════════════════════════

def score_task(task: ChecklistTask, today: date | None = None) -> float:
    """
    Composite urgency score.

    severity (green 1, amber 2, red 3) + priority (high 3, medium 2, low 1;
    missing counts as medium). Done tasks are halved; open tasks get +2 when
    overdue and +1 when due within three days.
    """
    base = SEVERITY_WEIGHT.get(task.severity, 0) + PRIORITY_WEIGHT.get(
        task.priority or Priority.MEDIUM, PRIORITY_WEIGHT[Priority.MEDIUM]
    )

    if task.status == TaskStatus.DONE:
        return base / 2
    remaining = days_until(task.due_date, today or date.today())
    if remaining is None:
        return base
    if remaining < 0:
        return base + 2
    if remaining <= DUE_SOON_DAYS:
        return base + 1
    return base


def _title_key(title: str) -> tuple[str, str]:
    # Accent-insensitive first, accents as tie-breaker (pt-BR collation order).
    stripped = "".join(
        ch for ch in unicodedata.normalize("NFD", title or "")
        if unicodedata.category(ch) != "Mn"
    )
    return stripped.casefold(), (title or "").casefold()


def sort_tasks_by_priority(tasks: Iterable[ChecklistTask], today: date | None = None) -> list[ChecklistTask]:
    """
    Return a new list ordered by descending score.

    Ties: both dated → earlier first; one dated → the dated one first;
    neither → title order. The sort is stable and the input is untouched.
    """
    today = today or date.today()

    def _key(task: ChecklistTask):
        due = parse_date(task.due_date)
        if due is not None:
            return (-score_task(task, today), 0, due.toordinal(), ("", ""))
        return (-score_task(task, today), 1, 0, _title_key(task.title))

    return sorted(tasks, key=_key)


def group_tasks_by_status(tasks: Iterable[ChecklistTask]) -> dict[TaskStatus, list[ChecklistTask]]:
    groups: dict[TaskStatus, list[ChecklistTask]] = {status: [] for status in TaskStatus}
    for task in tasks:
        groups.setdefault(task.status, []).append(task)
    return groups
