from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from worklog.records import WorkRecord

UNKNOWN_STATUS = "Unknown"
UNNAMED_TASK = "Unnamed Task"


@dataclass(frozen=True)
class Totals:
    minutes: int = 0
    productive_hours: float = 0.0
    tasks: int = 0
    developers: int = 0
    productive_count: int = 0
    non_productive_count: int = 0


@dataclass
class TaskGroup:
    task: str
    count: int = 0
    total_minutes: int = 0
    total_productive_hours: float = 0.0
    tickets: List[str] = field(default_factory=list)
    statuses: List[str] = field(default_factory=list)
    first_date: Optional[datetime] = None
    last_date: Optional[datetime] = None

    @property
    def avg_productive_hours(self) -> float:
        return self.total_productive_hours / self.count if self.count else 0.0


def compute_totals(records: Iterable[WorkRecord]) -> Totals:
    rows = list(records)
    productive_count = sum(1 for r in rows if r.productive_hours > 0)
    return Totals(
        minutes=sum(r.time_spent_minutes or 0 for r in rows),
        productive_hours=math.fsum(r.productive_hours or 0 for r in rows),
        tasks=len(rows),
        developers=len({r.developer for r in rows if r.developer}),
        productive_count=productive_count,
        non_productive_count=len(rows) - productive_count,
    )


def status_breakdown(records: Iterable[WorkRecord]) -> List[Tuple[str, int]]:
    """Entry count per status, most frequent first (ties keep first-seen order)."""
    counts = Counter(r.status or UNKNOWN_STATUS for r in records)
    return sorted(counts.items(), key=lambda kv: -kv[1])


def _add_unique(values: List[str], value: str) -> None:
    if value and value not in values:
        values.append(value)


def group_by_task(records: Iterable[WorkRecord]) -> List[TaskGroup]:
    groups: Dict[str, TaskGroup] = {}
    hours: Dict[str, List[float]] = {}
    for r in records:
        key = r.task.strip() or UNNAMED_TASK
        group = groups.get(key)
        if group is None:
            group = groups[key] = TaskGroup(task=key)
            hours[key] = []
        group.count += 1
        group.total_minutes += r.time_spent_minutes or 0
        hours[key].append(r.productive_hours or 0)
        _add_unique(group.tickets, r.ticket_display or r.ticket)
        _add_unique(group.statuses, r.status)
        if r.date is not None:
            if group.first_date is None or r.date < group.first_date:
                group.first_date = r.date
            if group.last_date is None or r.date > group.last_date:
                group.last_date = r.date
    for key, group in groups.items():
        group.total_productive_hours = math.fsum(hours[key])
    return sorted(groups.values(), key=lambda g: -g.total_productive_hours)


def task_group_to_dict(group: TaskGroup) -> Dict[str, object]:
    return {
        "task": group.task,
        "count": group.count,
        "total_minutes": group.total_minutes,
        "total_productive_hours": group.total_productive_hours,
        "avg_productive_hours": group.avg_productive_hours,
        "tickets": list(group.tickets),
        "statuses": list(group.statuses),
        "first_date": group.first_date,
        "last_date": group.last_date,
    }
