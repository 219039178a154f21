from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Callable, Iterable, List, Optional, Tuple

from worklog.classify import is_leave_entry
from worklog.parsing import is_blank, parse_date_value
from worklog.records import WorkRecord

ALL = "ALL"
END_OF_DAY = time(23, 59, 59, 999000)


class Productivity(str, Enum):
    ANY = "ALL"
    PRODUCTIVE = "YES"
    NON_PRODUCTIVE = "NO"


@dataclass(frozen=True)
class FilterCriteria:
    developer: Optional[str] = None
    status: Optional[str] = None
    productivity: Productivity = Productivity.ANY
    text_query: str = ""
    ticket_query: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    exclude_leave: bool = False


def _as_choice(value: object) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    if not s or s.upper() == ALL:
        return None
    return s


def _as_date(value: object) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date_value(value)
    return parsed.date() if parsed is not None else None


def _as_productivity(value: object) -> Productivity:
    if isinstance(value, Productivity):
        return value
    s = str(value or "").strip().upper()
    aliases = {
        "YES": Productivity.PRODUCTIVE,
        "PRODUCTIVE": Productivity.PRODUCTIVE,
        "NO": Productivity.NON_PRODUCTIVE,
        "NON_PRODUCTIVE": Productivity.NON_PRODUCTIVE,
        "NON-PRODUCTIVE": Productivity.NON_PRODUCTIVE,
    }
    return aliases.get(s, Productivity.ANY)


def _as_text(value: object) -> str:
    if is_blank(value):
        return ""
    return str(value).strip()


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    if is_blank(value):
        return False
    return bool(value)


def normalize_filters(raw: dict) -> FilterCriteria:
    """Build criteria from a loosely-typed dict (UI state or API body)."""
    raw = raw or {}
    return FilterCriteria(
        developer=_as_choice(raw.get("developer")),
        status=_as_choice(raw.get("status")),
        productivity=_as_productivity(raw.get("productivity")),
        text_query=_as_text(raw.get("text_query")),
        ticket_query=_as_text(raw.get("ticket_query")),
        start_date=_as_date(raw.get("start_date")),
        end_date=_as_date(raw.get("end_date")),
        exclude_leave=_as_bool(raw.get("exclude_leave")),
    )


Predicate = Callable[[WorkRecord], bool]


def build_predicates(criteria: FilterCriteria) -> List[Predicate]:
    """One predicate per active criterion; an empty list matches everything."""
    preds: List[Predicate] = []

    if criteria.developer is not None:
        preds.append(lambda r: r.developer == criteria.developer)

    if criteria.status is not None:
        preds.append(lambda r: r.status == criteria.status)

    if criteria.productivity == Productivity.PRODUCTIVE:
        preds.append(lambda r: r.productive_hours > 0)
    elif criteria.productivity == Productivity.NON_PRODUCTIVE:
        preds.append(lambda r: r.productive_hours <= 0)

    if criteria.text_query:
        q = criteria.text_query.lower()
        preds.append(lambda r: q in f"{r.ticket} {r.task} {r.ticket_display}".lower())

    if criteria.ticket_query:
        tq = criteria.ticket_query.lower()
        preds.append(lambda r: tq in f"{r.ticket} {r.ticket_display}".lower())

    if criteria.start_date is not None:
        start = datetime.combine(criteria.start_date, time.min)
        preds.append(lambda r: r.date is not None and r.date >= start)

    if criteria.end_date is not None:
        end = datetime.combine(criteria.end_date, END_OF_DAY)
        preds.append(lambda r: r.date is not None and r.date <= end)

    return preds


def apply_filters(records: Iterable[WorkRecord], criteria: FilterCriteria) -> List[WorkRecord]:
    rows = list(records)
    if criteria.exclude_leave:
        rows = [r for r in rows if not is_leave_entry(r)]
    preds = build_predicates(criteria)
    return [r for r in rows if all(p(r) for p in preds)]


def unique_developers(records: Iterable[WorkRecord]) -> List[str]:
    return sorted({r.developer for r in records if r.developer})


def unique_statuses(records: Iterable[WorkRecord]) -> List[str]:
    return sorted({r.status for r in records if r.status})


def current_month_range(today: Optional[date] = None) -> Tuple[date, date]:
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)
