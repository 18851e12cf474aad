"""
Checklist Platform
Tests — calendar date, layout and projection helpers.
"""

from datetime import date, datetime

import pytest

from checklist_platform.services.calendar_helpers import (
    UNASSIGNED_USER,
    CalendarEvent,
    CalendarView,
    EventColor,
    add_months,
    build_monthly_calendar,
    calculate_month_event_positions,
    end_of_week,
    get_calendar_cells,
    get_current_events,
    get_event_block_style,
    get_events_count,
    get_month_cell_events,
    get_visible_hours,
    group_events,
    is_working_hour,
    navigate_date,
    owner_to_user,
    range_text,
    start_of_week,
    task_to_calendar_event,
    tasks_to_calendar_events,
)
from checklist_platform.services.checklist_types import Severity


def _event(event_id, start, end, color=EventColor.BLUE):
    return CalendarEvent(id=event_id, title=event_id, start=start, end=end, color=color)


def _day_event(event_id, day, hour=9, minutes=60):
    start = datetime(2026, 1, day, hour)
    return _event(event_id, start, start.replace(hour=hour + minutes // 60, minute=minutes % 60))


# ═══════════════════════════════════════════════════════════════════════════
#  Date arithmetic & month grid
# ═══════════════════════════════════════════════════════════════════════════

class TestDateArithmetic:

    def test_weeks_start_on_monday(self):
        # 2026-01-01 is a Thursday
        assert start_of_week(date(2026, 1, 1)) == date(2025, 12, 29)
        assert end_of_week(date(2026, 1, 1)) == date(2026, 1, 4)

    def test_add_months_clamps_day(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2026, 3, 31), -1) == date(2026, 2, 28)
        assert add_months(date(2026, 12, 15), 1) == date(2027, 1, 15)

    def test_calendar_cells_cover_full_weeks(self):
        cells = get_calendar_cells(date(2026, 1, 15))
        assert len(cells) == 35
        assert cells[0].date == date(2025, 12, 29)
        assert cells[0].current_month is False
        assert cells[-1].date == date(2026, 2, 1)
        assert sum(1 for c in cells if c.current_month) == 31


class TestMonthEventPositions:

    def test_multi_day_events_claim_top_rows(self):
        multi = _event("multi", datetime(2026, 1, 5, 9), datetime(2026, 1, 7, 18))
        same_day = _day_event("single", 6)
        next_week = _day_event("later", 12)

        positions = calculate_month_event_positions([multi], [same_day, next_week], date(2026, 1, 1))
        assert positions == {"multi": 0, "single": 1, "later": 0}

    def test_event_placed_in_row_zero_is_not_reassigned(self):
        first = _day_event("first", 5)
        overlapping = _day_event("second", 5, hour=11)
        positions = calculate_month_event_positions([], [first, overlapping], date(2026, 1, 1))
        assert positions == {"first": 0, "second": 1}

    def test_cell_events_are_ordered_by_row(self):
        multi = _event("multi", datetime(2026, 1, 5, 9), datetime(2026, 1, 7, 18))
        single = _day_event("single", 6)
        positions = {"multi": 0, "single": 1}

        cell = get_month_cell_events(date(2026, 1, 6), [single, multi], positions)
        assert [(e.id, row) for e, row in cell] == [("multi", 0), ("single", 1)]
        assert get_month_cell_events(date(2026, 1, 8), [single, multi], positions) == []


# ═══════════════════════════════════════════════════════════════════════════
#  Time grid
# ═══════════════════════════════════════════════════════════════════════════

class TestTimeGrid:

    def test_group_events_greedy_tracks(self):
        a = _day_event("a", 6, hour=9)
        b = _event("b", datetime(2026, 1, 6, 9, 30), datetime(2026, 1, 6, 10, 30))
        c = _day_event("c", 6, hour=10)
        groups = group_events([c, b, a])
        assert [[e.id for e in g] for g in groups] == [["a", "c"], ["b"]]

    def test_block_style(self):
        style = get_event_block_style(_day_event("a", 6, hour=9), date(2026, 1, 6), 1, 2, (7, 18))
        assert style == {
            "top": "192px",
            "height": "88px",
            "left": "50%",
            "width": "50%",
            "is_start": True,
            "is_end": True,
        }

    def test_short_block_has_minimum_height(self):
        event = _event("a", datetime(2026, 1, 6, 9), datetime(2026, 1, 6, 9, 15))
        assert get_event_block_style(event, date(2026, 1, 6), 0, 1)["height"] == "32px"

    def test_working_hours_follow_sunday_zero_keys(self):
        assert is_working_hour(date(2026, 1, 4), 10) is False      # Sunday
        assert is_working_hour(date(2026, 1, 5), 8) is True        # Monday
        assert is_working_hour(date(2026, 1, 5), 17) is False
        assert is_working_hour(date(2026, 1, 10), 11) is True      # Saturday
        assert is_working_hour(date(2026, 1, 10), 12) is False

    def test_visible_hours_widen_to_fit_events(self):
        early = _event("early", datetime(2026, 1, 6, 6), datetime(2026, 1, 6, 7, 30))
        late = _event("late", datetime(2026, 1, 6, 18), datetime(2026, 1, 6, 19, 15))
        result = get_visible_hours((7, 18), [early, late])
        assert result["earliest_event_hour"] == 6
        assert result["latest_event_hour"] == 20
        assert result["hours"] == list(range(6, 20))

    def test_visible_hours_default_window(self):
        assert get_visible_hours(None, [])["hours"] == list(range(7, 18))

    def test_current_events(self):
        event = _day_event("a", 6, hour=9)
        assert get_current_events([event], datetime(2026, 1, 6, 9, 30)) == [event]
        assert get_current_events([event], datetime(2026, 1, 6, 11)) == []


# ═══════════════════════════════════════════════════════════════════════════
#  Navigation
# ═══════════════════════════════════════════════════════════════════════════

class TestNavigation:

    def test_navigate_month_clamps(self):
        assert navigate_date(date(2026, 1, 31), CalendarView.MONTH, "next") == date(2026, 2, 28)
        assert navigate_date(date(2026, 3, 31), "month", "previous") == date(2026, 2, 28)

    def test_navigate_day_week_year(self):
        assert navigate_date(date(2026, 1, 31), "day", "next") == date(2026, 2, 1)
        assert navigate_date(date(2026, 1, 1), "week", "previous") == date(2025, 12, 25)
        assert navigate_date(date(2024, 2, 29), "year", "next") == date(2025, 2, 28)

    def test_navigate_rejects_unknown_direction(self):
        with pytest.raises(ValueError):
            navigate_date(date(2026, 1, 1), "month", "sideways")

    def test_range_text_in_portuguese(self):
        assert range_text("month", date(2026, 1, 15)) == "janeiro de 2026"
        assert range_text("day", date(2026, 3, 2)) == "2 de março de 2026"
        assert range_text("week", date(2026, 1, 15)) == "12 de jan. - 18 de jan. de 2026"
        assert range_text("year", date(2026, 1, 15)) == "2026"

    def test_events_count_per_view(self):
        events = [_day_event("a", 6), _day_event("b", 12), _event("c", datetime(2026, 2, 2, 9), datetime(2026, 2, 2, 10))]
        assert get_events_count(events, date(2026, 1, 20), "month") == 2
        assert get_events_count(events, date(2026, 1, 7), "week") == 1
        assert get_events_count(events, date(2026, 1, 12), "day") == 1
        assert get_events_count(events, date(2026, 6, 1), "year") == 3


# ═══════════════════════════════════════════════════════════════════════════
#  Checklist projection
# ═══════════════════════════════════════════════════════════════════════════

class TestTaskProjection:

    def test_task_becomes_nine_oclock_block(self, make_task):
        task = make_task("task1", board_id="board1", due_date="2026-01-06",
                         severity=Severity.AMBER, owner="Tax Team")
        event = task_to_calendar_event(task)
        assert event.id == "board1-task1"
        assert event.start == datetime(2026, 1, 6, 9)
        assert event.end == datetime(2026, 1, 6, 10)
        assert event.color == EventColor.ORANGE
        assert event.user.id == "tax-team"
        assert event.metadata["task_id"] == "task1"

    def test_severity_colours(self, make_task):
        red = task_to_calendar_event(make_task(due_date="2026-01-06", severity=Severity.RED))
        green = task_to_calendar_event(make_task(due_date="2026-01-06", severity=Severity.GREEN))
        assert (red.color, green.color) == (EventColor.RED, EventColor.GREEN)

    def test_undated_task_has_no_event(self, make_task):
        assert task_to_calendar_event(make_task()) is None

    def test_events_sorted_by_start(self, make_task):
        tasks = [make_task("b", due_date="2026-01-09"), make_task("a", due_date="2026-01-02"), make_task("c")]
        assert [e.metadata["task_id"] for e in tasks_to_calendar_events(tasks)] == ["a", "b"]

    def test_owner_to_user(self):
        assert owner_to_user("  ") is UNASSIGNED_USER
        assert owner_to_user(None) is UNASSIGNED_USER
        assert owner_to_user("Fiscal & Contábil").name == "Fiscal & Contábil"

    def test_monthly_calendar_has_entry_per_day(self, make_task):
        tasks = [make_task("a", due_date="2026-02-06"), make_task("b", due_date="2026-03-01"), make_task("c")]
        entries = build_monthly_calendar(tasks, date(2026, 2, 10))
        assert len(entries) == 28
        assert entries[0].day == "01"
        assert [t.id for t in entries[5].tasks] == ["a"]
        assert sum(len(e.tasks) for e in entries) == 1
