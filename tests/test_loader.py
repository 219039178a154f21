from datetime import datetime

import pandas as pd

from worklog.config import NumericTimeUnit, Settings
from worklog.loader import (
    FailureKind,
    data_sheet_names,
    find_grid_header_row,
    find_object_header_row,
    grid_to_rows,
    load_sheet,
    load_workbook,
    object_header_strategy,
    read_workbook,
)

HEADER = ["Date", "Ticket", "Task", "Status", "Productive", "Time Spent", "Developer", "Comments"]


def data_rows():
    return [
        [datetime(2024, 3, 14), "https://host/pm/tickets#!/14802", "Fix login", "Done", 2, "2h 30m", "Alice", ""],
        [datetime(2024, 3, 14), "ABC-123", "Code review", "In Progress", 0, "1:45", "Bob", "pairing"],
        ["3/15/2024", "ABC-124", "Deploy", "Done", 1.5, None, "Alice", None],
        [None, "ABC-125", "Docs", "Blocked", None, 2, "Carol", None],
        [datetime(2024, 3, 16), None, "Annual Leave", "Leave", 0, 8, "Bob", None],
    ]


def separator_row(label="3/15/2024"):
    return [None, None, label, None, None, None, None, None]


def grid(rows):
    return pd.DataFrame(rows, dtype=object)


def test_header_on_first_row():
    result = load_sheet(grid([HEADER] + data_rows()))
    assert result.ok
    assert result.strategy == "object"
    assert result.header_row == 0
    assert len(result.records) == 5
    first = result.records[0]
    assert first.ticket_display == "#14802"
    assert first.time_spent_minutes == 150
    assert first.productive_hours == 2.0
    assert first.original["Task"] == "Fix login"


def test_header_on_third_row_with_separator_rows():
    rows = data_rows()
    rows.insert(2, separator_row())
    title = ["Developer Timesheet - March 2024"] + [None] * 7
    divider = ["-" * 20] + [None] * 7
    result = load_sheet(grid([title, divider, HEADER] + rows))
    assert result.ok
    assert result.strategy == "grid"
    assert result.header_row == 2
    assert len(result.records) == 5
    assert [r.task for r in result.records] == ["Fix login", "Code review", "Deploy", "Docs", "Annual Leave"]


def test_whitespace_header_variants():
    header = ["Date ", "Ticket", " Task", "Status", "Productive", "Time  Spent", "Developer ", "Comments"]
    result = load_sheet(grid([header] + data_rows()))
    assert result.ok
    assert result.records[1].time_spent_minutes == 105


def test_fallback_and_missing_date():
    result = load_sheet(grid([HEADER] + data_rows()))
    deploy = result.records[2]
    docs = result.records[3]
    assert deploy.date == datetime(2024, 3, 15)
    assert deploy.time_spent_minutes == 90
    assert docs.date is None
    assert docs.time_spent_minutes == 120
    assert docs.productive_hours == 0.0


def test_numeric_time_mode_minutes():
    settings = Settings(numeric_time_as=NumericTimeUnit.MINUTES)
    result = load_sheet(grid([HEADER] + data_rows()), settings)
    assert result.records[3].time_spent_minutes == 2


def test_rows_without_developer_or_task_are_dropped():
    rows = data_rows() + [
        [datetime(2024, 3, 17), "ABC-9", "Orphan task", "Done", 1, 1, None, None],
        [datetime(2024, 3, 17), "ABC-10", None, "Done", 1, 1, "Alice", None],
    ]
    result = load_sheet(grid([HEADER] + rows))
    assert len(result.records) == 5


def test_empty_sheet():
    assert load_sheet(pd.DataFrame()).failure.kind == FailureKind.EMPTY_SHEET
    assert load_sheet(grid([HEADER])).failure.kind == FailureKind.EMPTY_SHEET


def test_header_not_found():
    result = load_sheet(grid([["Name", "Value"], ["a", 1], ["b", 2]]))
    assert not result.ok
    assert result.failure.kind == FailureKind.HEADER_NOT_FOUND


def test_missing_developer_column():
    header = [h for h in HEADER if h != "Developer"]
    rows = [[v for i, v in enumerate(r) if i != 6] for r in data_rows()]
    result = load_sheet(grid([header] + rows))
    assert result.failure.kind == FailureKind.MISSING_COLUMNS
    assert result.failure.missing == ("Developer",)
    assert "Time Spent" in result.failure.found
    assert "Developer" not in result.failure.found
    assert "Developer" in result.failure.message


def test_no_data_rows_after_header():
    rows = [separator_row(), [datetime(2024, 3, 14), "ABC-1", "Task", "Done", 1, 1, None, None]]
    result = load_sheet(grid([HEADER] + rows))
    assert result.failure.kind == FailureKind.NO_DATA_ROWS


def test_header_search_window():
    padding = [["note"] + [None] * 7 for _ in range(10)]
    result = load_sheet(grid(padding + [HEADER] + data_rows()))
    assert result.failure.kind == FailureKind.HEADER_NOT_FOUND
    assert load_sheet(grid(padding + [HEADER] + data_rows()), Settings(header_search_rows=12)).ok


def test_header_strategies_independently():
    raw = grid([["Report"] + [None] * 7, HEADER] + data_rows())
    assert find_object_header_row(grid_to_rows(raw), 10) is None
    assert find_grid_header_row(raw, 10) == 1
    assert find_object_header_row(grid_to_rows(grid([HEADER] + data_rows())), 10) == 0


def test_data_sheet_names():
    names = ["March", "Template", "Sheet1", "Summary", "Dev Sheet15", "April", "sheet2"]
    assert data_sheet_names(names) == ["March", "April"]


def test_malformed_workbook():
    result = read_workbook(b"definitely not a spreadsheet")
    assert result.failure.kind == FailureKind.MALFORMED_WORKBOOK
    loaded = load_workbook(b"definitely not a spreadsheet")
    assert not loaded.ok
    assert loaded.result.failure.kind == FailureKind.MALFORMED_WORKBOOK


def write_workbook(path, sheets):
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            grid(rows).to_excel(writer, sheet_name=name, header=False, index=False)
    return path


def test_load_workbook_from_file(tmp_path):
    path = write_workbook(
        tmp_path / "timesheet.xlsx",
        {"Template": [HEADER], "March": [HEADER] + data_rows(), "Sheet1": [["x"]]},
    )
    loaded = load_workbook(path)
    assert loaded.sheet_names == ("March",)
    assert loaded.selected_sheet == "March"
    assert loaded.ok
    assert len(loaded.result.records) == 5
    assert loaded.result.records[0].date == datetime(2024, 3, 14)


def test_load_workbook_sheet_selection(tmp_path):
    path = write_workbook(
        tmp_path / "timesheet.xlsx",
        {"March": [HEADER] + data_rows(), "April": [HEADER] + data_rows()[:2]},
    )
    assert len(load_workbook(path, "April").result.records) == 2
    missing = load_workbook(path, "May")
    assert missing.result.failure.kind == FailureKind.UNKNOWN_SHEET


def test_load_workbook_without_data_sheets(tmp_path):
    path = write_workbook(tmp_path / "timesheet.xlsx", {"Sheet1": [HEADER] + data_rows()})
    loaded = load_workbook(path)
    assert loaded.sheet_names == ()
    assert loaded.result.failure.kind == FailureKind.NO_DATA_SHEETS


def test_object_strategy_only_matches_first_row():
    raw = grid([HEADER] + data_rows())
    match = object_header_strategy(raw, grid_to_rows(raw), 10)
    assert match.found and match.row_index == 0
    assert len(match.rows) == len(data_rows())
    shifted = grid([["Report"] + [None] * 7, HEADER] + data_rows())
    assert not object_header_strategy(shifted, grid_to_rows(shifted), 10).found
