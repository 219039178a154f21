from __future__ import annotations

from dataclasses import asdict, replace
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from worklog.aggregate import (
    Totals,
    compute_totals,
    group_by_task,
    status_breakdown,
    task_group_to_dict,
)
from worklog.charts import build_charts
from worklog.filters import FilterCriteria, Productivity, apply_filters, unique_developers, unique_statuses
from worklog.parsing import format_minutes
from worklog.records import WorkRecord


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def criteria_to_dict(criteria: FilterCriteria) -> Dict[str, Any]:
    out = asdict(criteria)
    out["productivity"] = criteria.productivity.value
    out["start_date"] = _iso(criteria.start_date)
    out["end_date"] = _iso(criteria.end_date)
    return out


def totals_to_dict(totals: Totals) -> Dict[str, Any]:
    out = asdict(totals)
    out["time_spent"] = format_minutes(totals.minutes)
    return out


def record_rows(records: Sequence[WorkRecord]) -> List[Dict[str, Any]]:
    return [
        {
            "date": _iso(r.date),
            "ticket": r.ticket,
            "ticket_display": r.ticket_display,
            "task": r.task,
            "status": r.status,
            "productive_hours": r.productive_hours,
            "time_spent_minutes": r.time_spent_minutes,
            "time_spent": format_minutes(r.time_spent_minutes),
            "developer": r.developer,
            "comments": r.comments,
        }
        for r in records
    ]


def compute_report(records: Sequence[WorkRecord], criteria: FilterCriteria) -> Dict[str, Any]:
    rows = apply_filters(records, criteria)
    totals = compute_totals(rows)
    return {
        "filters": criteria_to_dict(criteria),
        "options": {"developers": unique_developers(records), "statuses": unique_statuses(records)},
        "totals": totals_to_dict(totals),
        "status": [{"status": s, "count": c} for s, c in status_breakdown(rows)],
        "rows": record_rows(rows),
    }


def compute_performance(
    records: Sequence[WorkRecord],
    developer: Optional[str],
    criteria: FilterCriteria,
    *,
    by_task: bool = False,
) -> Dict[str, Any]:
    """Per-developer breakdown: totals, status mix, optional task groups and charts.

    Only the developer, date range, ticket query and leave exclusion apply
    here; the report's status/productivity/text filters are ignored.
    """
    criteria = replace(
        criteria,
        developer=developer or None,
        status=None,
        productivity=Productivity.ANY,
        text_query="",
    )
    if not developer:
        return {
            "developer": None,
            "filters": criteria_to_dict(criteria),
            "totals": totals_to_dict(Totals()),
            "status": [],
            "groups": None,
            "rows": [],
            "charts": {},
        }

    rows = apply_filters(records, criteria)
    totals = compute_totals(rows)
    statuses = status_breakdown(rows)
    groups = [task_group_to_dict(g) for g in group_by_task(rows)] if by_task and rows else None
    if groups is not None:
        for g in groups:
            g["first_date"] = _iso(g["first_date"])
            g["last_date"] = _iso(g["last_date"])
            g["time_spent"] = format_minutes(g["total_minutes"])

    return {
        "developer": developer,
        "filters": criteria_to_dict(criteria),
        "totals": totals_to_dict(totals),
        "status": [{"status": s, "count": c} for s, c in statuses],
        "groups": groups,
        "rows": record_rows(rows),
        "charts": build_charts(rows, totals, statuses),
    }
