"""Gantt timeline layout.

Pure functions that turn a project's phases and tasks into the numbers the
renderers need: the project date range, one bucket per calendar month with a
proportional flex weight, and a left/width percentage pair per task bar.

All day counts are inclusive: a range that starts and ends on the same date
spans one day. Month weights and bar widths use the same convention, so a
bar that covers a whole month lines up exactly with that month's header
column.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .dates import MONTH_ABBR, days_between, format_calendar_date, parse_calendar_date
from .models import Phase, Task


class MonthBucket(NamedTuple):
    label: str
    days: int
    flex: float


class BarPosition(NamedTuple):
    left: float
    width: float


@dataclass
class TaskBar:
    task: Task
    left: float
    width: float
    is_milestone: bool

    def to_dict(self):
        return {
            'task_id': self.task.id,
            'name': self.task.name,
            'start_date': self.task.start_date,
            'end_date': self.task.end_date,
            'left': self.left,
            'width': self.width,
            'milestone': self.is_milestone,
        }


@dataclass
class PhaseGroup:
    phase: Phase
    bars: List[TaskBar] = field(default_factory=list)


@dataclass
class TimelineLayout:
    start: datetime
    end: datetime
    months: List[MonthBucket]
    groups: List[PhaseGroup]

    @property
    def total_days(self) -> int:
        return _span(self.start, self.end)

    def to_dict(self):
        return {
            'start': format_calendar_date(self.start),
            'end': format_calendar_date(self.end),
            'total_days': self.total_days,
            'months': [m._asdict() for m in self.months],
            'phases': [
                {
                    'phase': g.phase.to_dict(),
                    'bars': [b.to_dict() for b in g.bars],
                }
                for g in self.groups
            ],
        }


def _span(start: datetime, end: datetime) -> int:
    return days_between(start, end) + 1


def _next_month(d: datetime) -> datetime:
    if d.month == 12:
        return d.replace(year=d.year + 1, month=1, day=1)
    return d.replace(month=d.month + 1, day=1)


def month_label(d: datetime) -> str:
    return f"{MONTH_ABBR[d.month - 1].upper()} {d.year % 100:02d}"


def project_range(tasks: Iterable[Task]) -> Optional[Tuple[datetime, datetime]]:
    """Earliest start and latest end across ``tasks``; None when there are none."""
    dates = []
    for t in tasks:
        dates.append(parse_calendar_date(t.start_date))
        dates.append(parse_calendar_date(t.end_date))
    if not dates:
        return None
    return min(dates), max(dates)


def months_between(start: datetime, end: datetime) -> List[MonthBucket]:
    """Calendar months touched by the inclusive range ``[start, end]``.

    Each bucket carries the number of in-range days it contributes and that
    count as a fraction of the whole range, so the weights sum to 1.0.
    """
    if end < start:
        return []
    total_days = _span(start, end)
    buckets: List[MonthBucket] = []
    current = start.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    while current <= end:
        following = _next_month(current)
        month_end = following - timedelta(days=1)
        days = _span(max(current, start), min(month_end, end))
        buckets.append(MonthBucket(month_label(current), days, days / total_days))
        current = following
    return buckets


def bar_position(task_start: str, task_end: str,
                 project_start: datetime, project_end: datetime) -> BarPosition:
    """Horizontal offset and width of a task bar, in percent of the timeline."""
    total_days = _span(project_start, project_end)
    if total_days <= 0:
        # reversed range: pin every bar to the full width
        return BarPosition(0.0, 100.0)
    start = parse_calendar_date(task_start)
    end = parse_calendar_date(task_end)
    left = days_between(project_start, start) / total_days * 100
    width = _span(start, end) / total_days * 100
    return BarPosition(left, width)


def is_milestone(task: Task) -> bool:
    return task.start_date == task.end_date


def build_timeline(phases: Sequence[Phase], tasks: Sequence[Task]) -> Optional[TimelineLayout]:
    """Lay out every task under its phase, in phase order.

    Returns None for a project without tasks. Tasks that reference a phase
    not in ``phases`` are left out of the chart.
    """
    bounds = project_range(tasks)
    if bounds is None:
        return None
    start, end = bounds
    groups = []
    for phase in phases:
        group = PhaseGroup(phase)
        for task in tasks:
            if task.phase_id != phase.id:
                continue
            pos = bar_position(task.start_date, task.end_date, start, end)
            group.bars.append(TaskBar(task, pos.left, pos.width, is_milestone(task)))
        groups.append(group)
    return TimelineLayout(start, end, months_between(start, end), groups)
