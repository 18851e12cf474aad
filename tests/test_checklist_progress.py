"""
Checklist Platform
Tests — progress, metrics and priority ordering.
"""

from datetime import date, timedelta

from checklist_platform.services.checklist_progress import (
    analyze_boards,
    days_until,
    group_tasks_by_status,
    progress_for_board,
    progress_for_boards,
    progress_for_tasks,
    score_task,
    sort_tasks_by_priority,
)
from checklist_platform.services.checklist_types import Priority, Severity, TaskStatus

TODAY = date(2026, 1, 1)


def _iso(offset):
    return (TODAY + timedelta(days=offset)).isoformat()


# ═══════════════════════════════════════════════════════════════════════════
#  Progress
# ═══════════════════════════════════════════════════════════════════════════

class TestProgress:

    def _tasks(self, make_task, done, total):
        return [
            make_task(f"t{i}", status=TaskStatus.DONE if i < done else TaskStatus.TODO)
            for i in range(total)
        ]

    def test_empty_is_zero(self, make_board):
        assert progress_for_tasks([]) == 0
        assert progress_for_board(make_board()) == 0
        assert progress_for_boards([]) == 0

    def test_one_of_three_rounds_down(self, make_task):
        assert progress_for_tasks(self._tasks(make_task, 1, 3)) == 33

    def test_half_is_fifty(self, make_task):
        assert progress_for_tasks(self._tasks(make_task, 1, 2)) == 50

    def test_five_of_eight_rounds_half_up(self, make_task):
        assert progress_for_tasks(self._tasks(make_task, 5, 8)) == 63

    def test_all_done_is_hundred(self, make_task):
        assert progress_for_tasks(self._tasks(make_task, 4, 4)) == 100

    def test_doing_does_not_count(self, make_task):
        tasks = [make_task("a", status=TaskStatus.DOING), make_task("b", status=TaskStatus.DONE)]
        assert progress_for_tasks(tasks) == 50

    def test_boards_pool_tasks_not_percentages(self, make_task, make_board):
        board_a = make_board("a", [make_task("1", status=TaskStatus.DONE)])
        board_b = make_board("b", [make_task(str(i)) for i in range(3)])
        assert progress_for_boards([board_a, board_b]) == 25


# ═══════════════════════════════════════════════════════════════════════════
#  Metrics
# ═══════════════════════════════════════════════════════════════════════════

class TestAnalyzeBoards:

    def test_yesterday_open_task_is_overdue(self, make_task, make_board):
        board = make_board(tasks=[make_task(due_date=_iso(-1))])
        metrics = analyze_boards([board], TODAY)
        assert metrics.overdue_tasks == 1
        assert metrics.upcoming_three_days == 0

    def test_due_today_is_upcoming_not_overdue(self, make_task, make_board):
        board = make_board(tasks=[make_task(due_date=_iso(0))])
        metrics = analyze_boards([board], TODAY)
        assert metrics.overdue_tasks == 0
        assert metrics.upcoming_three_days == 1

    def test_upcoming_window_is_three_days_inclusive(self, make_task, make_board):
        board = make_board(tasks=[make_task("a", due_date=_iso(3)), make_task("b", due_date=_iso(4))])
        assert analyze_boards([board], TODAY).upcoming_three_days == 1

    def test_done_tasks_never_overdue_or_critical(self, make_task, make_board):
        board = make_board(tasks=[
            make_task(status=TaskStatus.DONE, severity=Severity.RED, due_date=_iso(-10)),
        ])
        metrics = analyze_boards([board], TODAY)
        assert metrics.completed_tasks == 1
        assert metrics.overdue_tasks == 0
        assert metrics.critical_tasks == 0

    def test_counts_by_severity_and_status(self, make_task, make_board):
        boards = [
            make_board("a", [
                make_task("1", severity=Severity.RED),
                make_task("2", severity=Severity.AMBER, status=TaskStatus.DOING),
                make_task("3", severity=Severity.GREEN, status=TaskStatus.DONE),
            ]),
            make_board("b", [make_task("4", severity=Severity.AMBER)]),
        ]
        metrics = analyze_boards(boards, TODAY).to_dict()
        assert metrics == {
            "total_checklists": 2,
            "total_tasks": 4,
            "completed_tasks": 1,
            "in_progress_tasks": 3,
            "overdue_tasks": 0,
            "upcoming_three_days": 0,
            "critical_tasks": 1,
            "attention_tasks": 2,
        }

    def test_malformed_due_date_counts_as_absent(self, make_task, make_board):
        board = make_board(tasks=[make_task(due_date="31/31/2026")])
        metrics = analyze_boards([board], TODAY)
        assert metrics.overdue_tasks == 0
        assert metrics.upcoming_three_days == 0

    def test_days_until(self):
        assert days_until("2026-01-03", TODAY) == 2
        assert days_until(None, TODAY) is None
        assert days_until("garbage", TODAY) is None


# ═══════════════════════════════════════════════════════════════════════════
#  Scoring & sorting
# ═══════════════════════════════════════════════════════════════════════════

class TestScoreTask:

    def test_overdue_red_high(self, make_task):
        task = make_task(severity=Severity.RED, priority=Priority.HIGH, due_date=_iso(-1))
        assert score_task(task, TODAY) == 8

    def test_due_soon_bonus(self, make_task):
        task = make_task(severity=Severity.AMBER, priority=Priority.LOW, due_date=_iso(2))
        assert score_task(task, TODAY) == 4

    def test_missing_priority_counts_as_medium(self, make_task):
        assert score_task(make_task(severity=Severity.GREEN), TODAY) == 3

    def test_done_is_halved_without_deadline_bonus(self, make_task):
        task = make_task(severity=Severity.RED, priority=Priority.HIGH,
                         status=TaskStatus.DONE, due_date=_iso(-5))
        assert score_task(task, TODAY) == 3


class TestSortTasksByPriority:

    def test_higher_score_first(self, make_task):
        low = make_task("low", severity=Severity.GREEN, priority=Priority.LOW)
        high = make_task("high", severity=Severity.RED, priority=Priority.HIGH)
        assert [t.id for t in sort_tasks_by_priority([low, high], TODAY)] == ["high", "low"]

    def test_tie_earlier_due_date_first(self, make_task):
        later = make_task("later", due_date="2026-01-10")
        earlier = make_task("earlier", due_date="2026-01-05")
        ordered = sort_tasks_by_priority([later, earlier], TODAY)
        assert [t.id for t in ordered] == ["earlier", "later"]

    def test_tie_dated_before_undated(self, make_task):
        undated = make_task("undated")
        dated = make_task("dated", due_date="2026-03-01")
        assert [t.id for t in sort_tasks_by_priority([undated, dated], TODAY)] == ["dated", "undated"]

    def test_tie_undated_by_title_ignoring_accents(self, make_task):
        tasks = [
            make_task("z", title="Azul"),
            make_task("a", title="Ávila"),
            make_task("b", title="abacaxi"),
        ]
        ordered = sort_tasks_by_priority(tasks, TODAY)
        assert [t.title for t in ordered] == ["abacaxi", "Ávila", "Azul"]

    def test_input_is_not_mutated(self, make_task):
        tasks = [make_task("a", severity=Severity.GREEN), make_task("b", severity=Severity.RED)]
        sort_tasks_by_priority(tasks, TODAY)
        assert [t.id for t in tasks] == ["a", "b"]


def test_group_tasks_by_status_has_every_column(make_task):
    groups = group_tasks_by_status([make_task("a", status=TaskStatus.DOING)])
    assert set(groups) == set(TaskStatus)
    assert [t.id for t in groups[TaskStatus.DOING]] == ["a"]
    assert groups[TaskStatus.TODO] == []
