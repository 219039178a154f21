from datetime import datetime

from worklog.classify import is_date_separator_row, is_leave_entry
from worklog.records import WorkRecord


def blank_row(**values):
    row = {"Date": "", "Ticket": "", "Task": "", "Status": "", "Productive": "", "Time Spent": "", "Developer": ""}
    row.update(values)
    return row


def record(task="Fix login", ticket="ABC-1", status="Done"):
    return WorkRecord(
        date=datetime(2024, 3, 14),
        ticket=ticket,
        ticket_display=ticket,
        task=task,
        status=status,
        productive_hours=1.0,
        time_spent_minutes=60,
        developer="Alice",
    )


def test_date_in_task_column_is_separator():
    assert is_date_separator_row(blank_row(Task="3/14/2024"))


def test_separator_detection_normalizes_headers():
    row = {" Date": "", "Ticket ": "", "Task  ": "March 14, 2024", "Status": "", "Developer": ""}
    assert is_date_separator_row(row)


def test_typed_date_in_task_column_is_separator():
    assert is_date_separator_row(blank_row(Task=datetime(2024, 3, 14)))


def test_regular_rows_are_not_separators():
    assert not is_date_separator_row(blank_row(Task="Standup meeting"))
    assert not is_date_separator_row(blank_row(Task="3/14/2024", Developer="Alice"))
    assert not is_date_separator_row(blank_row(Task="3/14/2024", Date="3/14/2024"))
    assert not is_date_separator_row(blank_row())


def test_leave_keywords():
    assert is_leave_entry(record(task="Annual Leave"))
    assert is_leave_entry(record(task="Public HOLIDAY"))
    assert is_leave_entry(record(task="Out", status="Sick"))
    assert is_leave_entry(record(task="Day off", ticket="PTO-2024"))
    assert is_leave_entry(record(task="Time Off request"))


def test_work_entries_are_not_leave():
    assert not is_leave_entry(record())
    assert not is_leave_entry(record(task="Deploy release", status="In Progress"))
