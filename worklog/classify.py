"""Row and record predicates used to keep non-work rows out of analytics."""

from __future__ import annotations

import re
from datetime import date
from typing import Mapping

from worklog.parsing import is_blank, normalize_row, parse_date_value
from worklog.records import WorkRecord

LEAVE_KEYWORDS = ("leave", "vacation", "holiday", "sick", "time off", "pto")

_SLASH_DATE_RE = re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$")


def looks_like_date(value: object) -> bool:
    if isinstance(value, date):
        return True
    text = str(value).strip()
    if _SLASH_DATE_RE.match(text):
        return True
    return parse_date_value(text) is not None


def is_date_separator_row(row: Mapping[object, object]) -> bool:
    """True for section-divider rows that only repeat a date in the Task column."""
    normalized = normalize_row(row)
    if is_blank(normalized.get("Task")):
        return False
    if not all(is_blank(normalized.get(col)) for col in ("Date", "Ticket", "Status", "Developer")):
        return False
    return looks_like_date(normalized["Task"])


def is_leave_entry(record: WorkRecord) -> bool:
    fields = (record.task, record.ticket, record.status)
    haystacks = [(f or "").strip().lower() for f in fields]
    return any(k in h for h in haystacks for k in LEAVE_KEYWORDS)
