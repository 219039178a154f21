from datetime import date, datetime
from functools import reduce
from itertools import permutations

import pytest

from worklog.filters import (
    FilterCriteria,
    Productivity,
    apply_filters,
    current_month_range,
    normalize_filters,
    unique_developers,
    unique_statuses,
)
from worklog.records import WorkRecord


def make(task, developer="Alice", status="Done", productive=1.0, when=datetime(2024, 3, 14, 10), ticket="ABC-1", display=None):
    return WorkRecord(
        date=when,
        ticket=ticket,
        ticket_display=display or ticket,
        task=task,
        status=status,
        productive_hours=productive,
        time_spent_minutes=int(productive * 60),
        developer=developer,
    )


def sample_records():
    return [
        make("Fix login", ticket="https://host/pm/tickets#!/14802", display="#14802"),
        make("Code review", developer="Bob", status="In Progress", productive=0.0, when=datetime(2024, 3, 15, 17, 30)),
        make("Deploy", status="In Progress", productive=2.0, when=datetime(2024, 3, 1)),
        make("Docs", developer="Carol", status="Blocked", when=None),
        make("Annual Leave", developer="Bob", status="Leave", productive=0.0, when=datetime(2024, 3, 16)),
    ]


def tasks(rows):
    return [r.task for r in rows]


def test_no_criteria_keeps_everything():
    records = sample_records()
    assert apply_filters(records, FilterCriteria()) == records


def test_developer_and_status():
    rows = apply_filters(sample_records(), FilterCriteria(developer="Alice", status="In Progress"))
    assert tasks(rows) == ["Deploy"]


def test_productivity_tri_state():
    records = sample_records()
    assert tasks(apply_filters(records, FilterCriteria(productivity=Productivity.PRODUCTIVE))) == ["Fix login", "Deploy", "Docs"]
    assert tasks(apply_filters(records, FilterCriteria(productivity=Productivity.NON_PRODUCTIVE))) == ["Code review", "Annual Leave"]


def test_text_query_matches_ticket_display_case_insensitively():
    records = sample_records()
    assert tasks(apply_filters(records, FilterCriteria(text_query="#14802"))) == ["Fix login"]
    assert tasks(apply_filters(records, FilterCriteria(text_query="REVIEW"))) == ["Code review"]


def test_ticket_query_ignores_task_text():
    records = sample_records()
    assert tasks(apply_filters(records, FilterCriteria(ticket_query="review"))) == []
    assert tasks(apply_filters(records, FilterCriteria(ticket_query="14802"))) == ["Fix login"]


def test_date_range_is_inclusive_through_end_of_day():
    records = sample_records()
    same_day = apply_filters(records, FilterCriteria(start_date=date(2024, 3, 15), end_date=date(2024, 3, 15)))
    assert tasks(same_day) == ["Code review"]
    march = apply_filters(records, FilterCriteria(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31)))
    assert "Docs" not in tasks(march)
    assert len(march) == 4


def test_leave_exclusion_is_opt_in():
    records = sample_records()
    assert "Annual Leave" in tasks(apply_filters(records, FilterCriteria()))
    assert "Annual Leave" not in tasks(apply_filters(records, FilterCriteria(exclude_leave=True)))


def test_criteria_order_does_not_matter():
    records = sample_records()
    singles = [
        FilterCriteria(developer="Alice"),
        FilterCriteria(productivity=Productivity.PRODUCTIVE),
        FilterCriteria(start_date=date(2024, 3, 10)),
        FilterCriteria(exclude_leave=True),
    ]
    combined = apply_filters(
        records,
        FilterCriteria(developer="Alice", productivity=Productivity.PRODUCTIVE, start_date=date(2024, 3, 10), exclude_leave=True),
    )
    for order in permutations(singles):
        assert reduce(apply_filters, order, records) == combined
    assert tasks(combined) == ["Fix login"]


def test_normalize_filters():
    criteria = normalize_filters(
        {
            "developer": "ALL",
            "status": " Done ",
            "productivity": "YES",
            "text_query": "  login ",
            "start_date": "2024-03-01",
            "end_date": "not a date",
            "exclude_leave": True,
        }
    )
    assert criteria.developer is None
    assert criteria.status == "Done"
    assert criteria.productivity == Productivity.PRODUCTIVE
    assert criteria.text_query == "login"
    assert criteria.start_date == date(2024, 3, 1)
    assert criteria.end_date is None
    assert criteria.exclude_leave is True
    assert normalize_filters({}) == FilterCriteria()


def test_option_lists():
    records = sample_records()
    assert unique_developers(records) == ["Alice", "Bob", "Carol"]
    assert unique_statuses(records) == ["Blocked", "Done", "In Progress", "Leave"]


def test_current_month_range():
    assert current_month_range(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))


@pytest.mark.parametrize(
    "raw, expected",
    [("false", False), ("No", False), ("0", False), ("", False), (None, False), ("true", True), ("yes", True), (1, True), (True, True)],
)
def test_normalize_filters_exclude_leave_values(raw, expected):
    assert normalize_filters({"exclude_leave": raw}).exclude_leave is expected


def test_normalize_filters_non_string_queries():
    criteria = normalize_filters({"text_query": 14802, "ticket_query": float("nan")})
    assert criteria.text_query == "14802"
    assert criteria.ticket_query == ""
