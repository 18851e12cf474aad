"""
Checklist Platform
Tests — notification derivation, read-state merge and labels.
"""

from dataclasses import replace
from datetime import date

from checklist_platform.services.checklist_notifications import (
    build_notifications,
    format_due_date_label,
    merge_notifications,
    notification_id,
    resolve_notification_severity,
    unread_count,
)
from checklist_platform.services.checklist_types import Severity, TaskStatus

TODAY = date(2026, 1, 10)


class TestBuildNotifications:

    def test_one_per_open_task_with_composite_id(self, make_task, make_board):
        board = make_board("board1", [make_task("task1"), make_task("task2", status=TaskStatus.DOING)])
        notifications = build_notifications([board], today=TODAY)
        assert [n.id for n in notifications] == ["board1-task1", "board1-task2"]
        assert all(n.read is False for n in notifications)

    def test_done_tasks_never_notify(self, make_task, make_board):
        board = make_board(tasks=[make_task("task1", status=TaskStatus.DONE, due_date="2026-01-01")])
        assert build_notifications([board], today=TODAY) == []

    def test_building_twice_is_idempotent(self, make_task, make_board):
        board = make_board(tasks=[make_task("task1", due_date="2026-01-08"), make_task("task2")])
        first = build_notifications([board], today=TODAY)
        second = build_notifications([board], first, today=TODAY)
        assert first == second

    def test_rebuilding_from_read_and_stale_seed_is_idempotent(self, make_task, make_board):
        board = make_board("board1", [make_task("task1", due_date="2026-01-08"), make_task("task2")])
        seed = build_notifications([make_board("board1", [make_task("task1"), make_task("gone")])], today=TODAY)
        seed = [replace(n, read=True) for n in seed]

        once = build_notifications([board], seed, today=TODAY)
        twice = build_notifications([board], once, today=TODAY)

        assert [(n.id, n.read) for n in once] == [("board1-task1", True), ("board1-task2", False)]
        assert [(n.id, n.read) for n in twice] == [(n.id, n.read) for n in once]

    def test_read_state_is_preserved_by_id(self, make_task, make_board):
        board = make_board("board1", [make_task("task1"), make_task("task2")])
        previous = build_notifications([board], today=TODAY)
        previous[0] = replace(previous[0], read=True)

        rebuilt = build_notifications([board], previous, today=TODAY)
        by_id = {n.id: n.read for n in rebuilt}
        assert by_id == {"board1-task1": True, "board1-task2": False}

    def test_completed_task_drops_its_notification(self, make_task, make_board):
        board = make_board("board1", [make_task("task1")])
        previous = build_notifications([board], today=TODAY)
        board.tasks[0] = replace(board.tasks[0], status=TaskStatus.DONE)
        assert build_notifications([board], previous, today=TODAY) == []

    def test_messages(self, make_task, make_board):
        board = make_board(tasks=[
            make_task("late", due_date="2026-01-05"),
            make_task("soon", due_date="2026-01-12"),
            make_task("none"),
        ])
        messages = {n.task_id: n.message for n in build_notifications([board], today=TODAY)}
        assert messages == {
            "late": "Overdue since 05/01",
            "soon": "Due 12/01",
            "none": "No deadline set",
        }

    def test_copies_task_context(self, make_task, make_board):
        task = make_task("task1", title="File SPED", due_date="2026-01-20")
        notification = build_notifications([make_board("board1", [task])], today=TODAY)[0]
        assert notification.title == "File SPED"
        assert notification.checklist_id == "board1"
        assert notification.due_date == "2026-01-20"
        assert notification.created_at == task.created_at
        assert notification.kind == "task_deadline"


class TestSeverityEscalation:

    def test_overdue_escalates_to_red(self, make_task):
        task = make_task(severity=Severity.GREEN, due_date="2026-01-09")
        assert resolve_notification_severity(task, TODAY) == Severity.RED

    def test_due_within_three_days_escalates_to_amber(self, make_task):
        task = make_task(severity=Severity.GREEN, due_date="2026-01-13")
        assert resolve_notification_severity(task, TODAY) == Severity.AMBER

    def test_due_today_is_amber_not_red(self, make_task):
        task = make_task(severity=Severity.GREEN, due_date="2026-01-10")
        assert resolve_notification_severity(task, TODAY) == Severity.AMBER

    def test_far_or_missing_deadline_keeps_task_severity(self, make_task):
        assert resolve_notification_severity(make_task(severity=Severity.GREEN, due_date="2026-02-01"), TODAY) == Severity.GREEN
        assert resolve_notification_severity(make_task(severity=Severity.RED), TODAY) == Severity.RED

    def test_done_is_green(self, make_task):
        task = make_task(severity=Severity.RED, status=TaskStatus.DONE, due_date="2026-01-01")
        assert resolve_notification_severity(task, TODAY) == Severity.GREEN


class TestMergeAndCount:

    def test_merge_overlays_read_and_drops_stale(self, make_task, make_board):
        board = make_board("board1", [make_task("task1"), make_task("task2")])
        current = build_notifications([board], today=TODAY)
        current = [replace(current[0], read=True), replace(current[1], id="board1-gone", read=True)]

        updated = build_notifications([board], today=TODAY)
        merged = merge_notifications(current, updated)
        assert [(n.id, n.read) for n in merged] == [("board1-task1", True), ("board1-task2", False)]

    def test_unread_count(self, make_task, make_board):
        notifications = build_notifications([make_board(tasks=[make_task("a"), make_task("b")])], today=TODAY)
        notifications[0] = replace(notifications[0], read=True)
        assert unread_count(notifications) == 1
        assert unread_count([]) == 0


class TestLabels:

    def test_notification_id(self):
        assert notification_id("board1", "task1") == "board1-task1"

    def test_format_due_date_label(self):
        assert format_due_date_label("2026-03-07") == "07/03"
        assert format_due_date_label(None) == "No deadline"
        assert format_due_date_label("") == "No deadline"
        assert format_due_date_label("someday") == "someday"
