from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import pandas as pd

from worklog.config import NumericTimeUnit
from worklog.parsing import (
    cell_text,
    extract_ticket_number,
    normalize_row,
    parse_date_value,
    parse_productive_hours,
    parse_time_spent,
)

REQUIRED_COLUMNS = ("Date", "Ticket", "Task", "Status", "Productive", "Time Spent", "Developer")
OPTIONAL_COLUMNS = ("Comments",)

FRAME_COLUMNS = [
    "date",
    "ticket",
    "ticket_display",
    "task",
    "status",
    "productive_hours",
    "time_spent_minutes",
    "developer",
    "comments",
]


@dataclass(frozen=True)
class WorkRecord:
    """One unit of logged work, built from a normalized spreadsheet row."""

    date: Optional[datetime]
    ticket: str
    ticket_display: str
    task: str
    status: str
    productive_hours: float
    time_spent_minutes: int
    developer: str
    comments: str = ""
    original: Mapping[object, object] = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def is_productive(self) -> bool:
        return self.productive_hours > 0


def build_record(row: Mapping[object, object], *, numeric_time_as: NumericTimeUnit = NumericTimeUnit.HOURS) -> WorkRecord:
    normalized = normalize_row(row)
    ticket = cell_text(normalized.get("Ticket"))
    productive_hours = parse_productive_hours(normalized.get("Productive"))
    return WorkRecord(
        date=parse_date_value(normalized.get("Date")),
        ticket=ticket,
        ticket_display=str(extract_ticket_number(ticket)),
        task=cell_text(normalized.get("Task")),
        status=cell_text(normalized.get("Status")),
        productive_hours=productive_hours,
        time_spent_minutes=parse_time_spent(
            normalized.get("Time Spent"), productive_hours, numeric_time_as=numeric_time_as
        ),
        developer=cell_text(normalized.get("Developer")),
        comments=cell_text(normalized.get("Comments")),
        original=MappingProxyType(normalized),
    )


def is_valid_record(record: WorkRecord) -> bool:
    return bool(record.developer) and bool(record.task)


def records_to_frame(records: Iterable[WorkRecord]) -> pd.DataFrame:
    rows = [
        {
            "date": r.date,
            "ticket": r.ticket,
            "ticket_display": r.ticket_display,
            "task": r.task,
            "status": r.status,
            "productive_hours": r.productive_hours,
            "time_spent_minutes": r.time_spent_minutes,
            "developer": r.developer,
            "comments": r.comments,
        }
        for r in records
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    return df
