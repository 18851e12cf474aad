"""
Calendar date and grouping helpers.

Backs the month grid, the week/day time grid and the agenda endpoints.
Weeks start on Monday. Events carry naive local datetimes; only calendar
dates matter for month placement, hours and minutes matter for the time
grid.

    get_calendar_cells             full weeks covering a month
    calculate_month_event_positions  collision-free row per event per week
    get_month_cell_events          events spanning one day, with their row
    group_events                   greedy overlap tracks for the time grid
    get_event_block_style          pixel geometry for one event block
    get_visible_hours              hour window widened to fit every event
    tasks_to_calendar_events       checklist tasks → calendar events
    build_monthly_calendar         one entry per day with the tasks due
"""

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any

from checklist_platform.services.checklist_types import ChecklistTask, Severity
from checklist_platform.utils.helpers import format_date_only, parse_date

logger = logging.getLogger(__name__)

HOUR_HEIGHT_PX = 96
MIN_BLOCK_HEIGHT_PX = 32
TASK_EVENT_START = time(9, 0)
TASK_EVENT_DURATION = timedelta(hours=1)


class CalendarView(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    AGENDA = "agenda"


class EventColor(str, Enum):
    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"
    PURPLE = "purple"
    ORANGE = "orange"
    GRAY = "gray"


SEVERITY_COLOR: dict[Severity, EventColor] = {
    Severity.RED: EventColor.RED,
    Severity.AMBER: EventColor.ORANGE,
    Severity.GREEN: EventColor.GREEN,
}

# Keyed like JavaScript's getDay(): 0 = Sunday ... 6 = Saturday.
DEFAULT_WORKING_HOURS: dict[int, tuple[int, int]] = {
    0: (0, 0),
    1: (8, 17),
    2: (8, 17),
    3: (8, 17),
    4: (8, 17),
    5: (8, 17),
    6: (8, 12),
}
DEFAULT_VISIBLE_HOURS: tuple[int, int] = (7, 18)

_MONTHS_PT = (
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
)
_MONTHS_PT_SHORT = (
    "jan.", "fev.", "mar.", "abr.", "mai.", "jun.",
    "jul.", "ago.", "set.", "out.", "nov.", "dez.",
)


@dataclass(frozen=True)
class CalendarUser:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


UNASSIGNED_USER = CalendarUser(id="unassigned", name="Unassigned")


@dataclass
class CalendarEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    color: EventColor = EventColor.BLUE
    description: str | None = None
    user: CalendarUser = UNASSIGNED_USER
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def start_day(self) -> date:
        return self.start.date()

    @property
    def end_day(self) -> date:
        return self.end.date()

    @property
    def is_multi_day(self) -> bool:
        return self.start_day != self.end_day

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start_date": self.start.isoformat(),
            "end_date": self.end.isoformat(),
            "color": self.color.value,
            "user": self.user.to_dict(),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class CalendarCell:
    day: int
    current_month: bool
    date: date

    def to_dict(self) -> dict:
        return {"day": self.day, "current_month": self.current_month, "date": self.date.isoformat()}


@dataclass
class CalendarEntry:
    """One day of the monthly task calendar."""
    day: str
    date: date
    tasks: list[ChecklistTask] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "day": self.day,
            "date": self.date.isoformat(),
            "tasks": [t.to_dict() for t in self.tasks],
        }


# ═════════════════════════════════════════════════════════════════════════════
# Date arithmetic
# ═════════════════════════════════════════════════════════════════════════════

def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def start_of_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def end_of_week(day: date) -> date:
    return start_of_week(day) + timedelta(days=6)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def add_months(value, months: int):
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def _days_between(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


# ═════════════════════════════════════════════════════════════════════════════
# Month grid
# ═════════════════════════════════════════════════════════════════════════════

def get_calendar_cells(selected: date | datetime) -> list[CalendarCell]:
    """Cells for every day of the Monday-start weeks that cover ``selected``'s month."""
    selected = _as_date(selected)
    first = start_of_week(start_of_month(selected))
    last = end_of_week(end_of_month(selected))
    return [
        CalendarCell(day=d.day, current_month=d.month == selected.month, date=d)
        for d in _days_between(first, last)
    ]


def _spans(event: CalendarEvent, day: date) -> bool:
    return event.start_day <= day <= event.end_day


def _overlaps(a: CalendarEvent, b: CalendarEvent) -> bool:
    return a.start_day <= b.end_day and b.start_day <= a.end_day


def calculate_month_event_positions(multi_day_events: Iterable[CalendarEvent],
                                    single_day_events: Iterable[CalendarEvent],
                                    selected: date | datetime) -> dict[str, int]:
    """
    Assign each event the lowest row where it does not collide with another
    event already placed in the same week row.

    Multi-day events are placed first so their bars claim the top rows. An
    event keeps the row of the first week it appears in.
    """
    ordered = [*multi_day_events, *single_day_events]
    cells = get_calendar_cells(selected)
    positions: dict[str, int] = {}

    for week_start in range(0, len(cells), 7):
        used_rows: list[list[CalendarEvent]] = []
        for cell in cells[week_start:week_start + 7]:
            for event in ordered:
                if event.id in positions or not _spans(event, cell.date):
                    continue
                row = 0
                while row < len(used_rows) and any(_overlaps(existing, event) for existing in used_rows[row]):
                    row += 1
                if row == len(used_rows):
                    used_rows.append([])
                used_rows[row].append(event)
                positions[event.id] = row

    return positions


def get_month_cell_events(day: date | datetime, events: Iterable[CalendarEvent],
                          positions: dict[str, int]) -> list[tuple[CalendarEvent, int]]:
    """Events whose inclusive day span covers ``day``, paired with their row, by row."""
    day = _as_date(day)
    matched = [(event, positions.get(event.id, 0)) for event in events if _spans(event, day)]
    return sorted(matched, key=lambda pair: pair[1])


# ═════════════════════════════════════════════════════════════════════════════
# Time grid
# ═════════════════════════════════════════════════════════════════════════════

def group_events(events: Iterable[CalendarEvent]) -> list[list[CalendarEvent]]:
    """Greedy partition into tracks of mutually non-overlapping events."""
    groups: list[list[CalendarEvent]] = []
    for event in sorted(events, key=lambda e: e.start):
        for group in groups:
            if not any(event.start < other.end and event.end > other.start for other in group):
                group.append(event)
                break
        else:
            groups.append([event])
    return groups


def get_event_block_style(event: CalendarEvent, day: date | datetime, group_index: int,
                          group_size: int, visible_hours: tuple[int, int] | None = None) -> dict:
    total_minutes = int((event.end - event.start).total_seconds() // 60)
    if visible_hours is not None:
        minutes_from_start = max(0, (event.start.hour - visible_hours[0]) * 60 + event.start.minute)
    else:
        minutes_from_start = event.start.hour * 60 + event.start.minute

    offset = minutes_from_start / 60 * HOUR_HEIGHT_PX
    height = max(MIN_BLOCK_HEIGHT_PX, total_minutes / 60 * HOUR_HEIGHT_PX - 8)
    day = _as_date(day)

    return {
        "top": f"{offset:g}px",
        "height": f"{height:g}px",
        "left": f"{group_index / group_size * 100:g}%",
        "width": f"{100 / group_size:g}%",
        "is_start": event.start_day == day,
        "is_end": event.end_day == day,
    }


def is_working_hour(day: date | datetime, hour: int,
                    working_hours: dict[int, tuple[int, int]] | None = None) -> bool:
    working_hours = DEFAULT_WORKING_HOURS if working_hours is None else working_hours
    hours = working_hours.get(_as_date(day).isoweekday() % 7)
    if not hours:
        return False
    return hours[0] <= hour < hours[1]


def get_visible_hours(visible_hours: tuple[int, int] | None,
                      events: Iterable[CalendarEvent]) -> dict:
    """
    Widen the configured window so every event fits.

    Returns the list of hours plus the resulting bounds; the window stays
    within [0, 24] and spans at least one hour.
    """
    earliest, latest = visible_hours or DEFAULT_VISIBLE_HOURS
    for event in events:
        end_hour = event.end.hour + (1 if event.end.minute > 0 else 0)
        earliest = min(earliest, event.start.hour)
        latest = max(latest, end_hour)

    earliest = max(0, min(earliest, 23))
    latest = min(24, max(latest, earliest + 1))
    return {
        "hours": list(range(earliest, latest)),
        "earliest_event_hour": earliest,
        "latest_event_hour": latest,
    }


def get_current_events(events: Iterable[CalendarEvent], now: datetime | None = None) -> list[CalendarEvent]:
    now = now or datetime.now()
    return [event for event in events if event.start <= now <= event.end]


# ═════════════════════════════════════════════════════════════════════════════
# Navigation
# ═════════════════════════════════════════════════════════════════════════════

def _same_period(view: CalendarView, left: date, right: date) -> bool:
    if view == CalendarView.DAY:
        return left == right
    if view == CalendarView.WEEK:
        return start_of_week(left) == start_of_week(right)
    if view == CalendarView.YEAR:
        return left.year == right.year
    return (left.year, left.month) == (right.year, right.month)


def get_events_count(events: Iterable[CalendarEvent], day: date | datetime, view: CalendarView | str) -> int:
    view = CalendarView(view)
    day = _as_date(day)
    return sum(1 for event in events if _same_period(view, event.start_day, day))


def navigate_date(value: date | datetime, view: CalendarView | str, direction: str):
    """Step one period forward (``next``) or back (``previous``)."""
    view = CalendarView(view)
    if direction not in ("next", "previous"):
        raise ValueError(f"Unknown direction {direction!r}")
    step = 1 if direction == "next" else -1

    if view == CalendarView.DAY:
        return value + timedelta(days=step)
    if view == CalendarView.WEEK:
        return value + timedelta(weeks=step)
    if view == CalendarView.YEAR:
        return add_months(value, 12 * step)
    return add_months(value, step)


def range_text(view: CalendarView | str, value: date | datetime) -> str:
    """Header label for the period, in Brazilian Portuguese."""
    view = CalendarView(view)
    day = _as_date(value)

    if view == CalendarView.YEAR:
        return str(day.year)
    if view == CalendarView.DAY:
        return f"{day.day} de {_MONTHS_PT[day.month - 1]} de {day.year}"
    if view == CalendarView.WEEK:
        start, end = start_of_week(day), end_of_week(day)
        return (
            f"{start.day} de {_MONTHS_PT_SHORT[start.month - 1]} - "
            f"{end.day} de {_MONTHS_PT_SHORT[end.month - 1]} de {end.year}"
        )
    return f"{_MONTHS_PT[day.month - 1]} de {day.year}"


# ═════════════════════════════════════════════════════════════════════════════
# Checklist projection
# ═════════════════════════════════════════════════════════════════════════════

def owner_to_user(owner: str | None) -> CalendarUser:
    name = (owner or "").strip()
    if not name:
        return UNASSIGNED_USER
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return CalendarUser(id=slug or UNASSIGNED_USER.id, name=name)


def task_to_calendar_event(task: ChecklistTask) -> CalendarEvent | None:
    """One-hour block at 09:00 on the due date; None for undated tasks.

    Event ids are ``{board_id}-{task_id}`` since blueprint task ids repeat
    across boards.
    """
    due = parse_date(task.due_date)
    if due is None:
        return None
    start = datetime.combine(due, TASK_EVENT_START)
    return CalendarEvent(
        id=f"{task.checklist_id}-{task.id}",
        title=task.title,
        description=task.description or None,
        start=start,
        end=start + TASK_EVENT_DURATION,
        color=SEVERITY_COLOR.get(task.severity, EventColor.ORANGE),
        user=owner_to_user(task.owner),
        metadata={"checklist_id": task.checklist_id, "task_id": task.id, "status": task.status.value},
    )


def tasks_to_calendar_events(tasks: Iterable[ChecklistTask]) -> list[CalendarEvent]:
    events = [e for e in (task_to_calendar_event(t) for t in tasks) if e is not None]
    events.sort(key=lambda e: e.start)
    return events


def build_monthly_calendar(tasks: Iterable[ChecklistTask],
                           base_date: date | datetime | None = None) -> list[CalendarEntry]:
    """One entry per day of ``base_date``'s month, holding the tasks due that day."""
    base = _as_date(base_date or date.today())
    by_day: dict[str, list[ChecklistTask]] = {}
    for task in tasks:
        due = format_date_only(parse_date(task.due_date))
        if due:
            by_day.setdefault(due, []).append(task)

    return [
        CalendarEntry(day=f"{d.day:02d}", date=d, tasks=by_day.get(d.isoformat(), []))
        for d in _days_between(start_of_month(base), end_of_month(base))
    ]
