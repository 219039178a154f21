from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from worklog.classify import is_date_separator_row
from worklog.config import Settings
from worklog.parsing import cell_text, is_blank, normalize_header_key
from worklog.records import REQUIRED_COLUMNS, WorkRecord, build_record, is_valid_record

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = ("date", "ticket", "task", "status", "productive", "developer")
# A row naming at least this many required columns is treated as a header with gaps.
PARTIAL_HEADER_MIN_COLUMNS = 4

SUMMARY_SHEET_NAMES = {"summary"}
SUMMARY_SHEET_FRAGMENTS = ("template", "sheet15")

Row = Dict[str, object]
WorkbookSource = Union[str, Path, bytes, BinaryIO]


class FailureKind(str, Enum):
    EMPTY_SHEET = "EmptySheet"
    HEADER_NOT_FOUND = "HeaderNotFound"
    MISSING_COLUMNS = "MissingColumns"
    NO_DATA_ROWS = "NoDataRows"
    MALFORMED_WORKBOOK = "MalformedWorkbook"
    NO_DATA_SHEETS = "NoDataSheets"
    UNKNOWN_SHEET = "UnknownSheet"


@dataclass(frozen=True)
class LoadFailure:
    kind: FailureKind
    message: str
    missing: Tuple[str, ...] = ()
    found: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LoadResult:
    records: Tuple[WorkRecord, ...] = ()
    failure: Optional[LoadFailure] = None
    header_row: Optional[int] = None
    strategy: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class HeaderMatch:
    """Outcome of one header-detection strategy.

    ``row_index`` is the grid row holding the header labels and ``rows`` the
    data rows aligned to it. A strategy that did not find anything returns a
    match with ``row_index=None``.
    """

    strategy: str
    row_index: Optional[int] = None
    rows: Tuple[Row, ...] = ()

    @property
    def found(self) -> bool:
        return self.row_index is not None


@dataclass(frozen=True)
class WorkbookResult:
    sheets: Dict[str, pd.DataFrame] = field(default_factory=dict)
    failure: Optional[LoadFailure] = None


@dataclass(frozen=True)
class WorkbookLoad:
    sheet_names: Tuple[str, ...] = ()
    selected_sheet: Optional[str] = None
    result: LoadResult = field(default_factory=LoadResult)

    @property
    def ok(self) -> bool:
        return self.result.ok


def _failure(kind: FailureKind, message: str, **extra: Tuple[str, ...]) -> LoadResult:
    logger.warning("Sheet load failed (%s): %s", kind.value, message)
    return LoadResult(failure=LoadFailure(kind=kind, message=message, **extra))


# ---------------- Grid -> row objects ----------------
def header_labels(cells: Iterable[object]) -> List[str]:
    """Column labels for a header row; blanks become ``Unnamed: <i>``, duplicates get ``.n``."""
    labels: List[str] = []
    seen: Dict[str, int] = {}
    for idx, cell in enumerate(cells):
        label = f"Unnamed: {idx}" if is_blank(cell) else (cell if isinstance(cell, str) else str(cell))
        if label in seen:
            seen[label] += 1
            label = f"{label}.{seen[label]}"
        else:
            seen[label] = 0
        labels.append(label)
    return labels


def grid_to_rows(grid: pd.DataFrame) -> List[Row]:
    """Row objects keyed by the first grid row, blank cells as ``""``."""
    if grid.empty or len(grid) < 2:
        return []
    labels = header_labels(grid.iloc[0].tolist())
    rows: List[Row] = []
    for values in grid.iloc[1:].itertuples(index=False, name=None):
        rows.append({label: ("" if is_blank(v) else v) for label, v in zip(labels, values)})
    return rows


def _aligned_rows(grid: pd.DataFrame, header_row: int) -> Tuple[Row, ...]:
    headers = grid.iloc[header_row].tolist()
    rows: List[Row] = []
    for values in grid.iloc[header_row + 1 :].itertuples(index=False, name=None):
        row: Row = {}
        for header, value in zip(headers, values):
            if is_blank(header):
                continue
            key = header if isinstance(header, str) else str(header)
            row[key] = "" if is_blank(value) else value
        if any(not is_blank(v) for v in row.values()):
            rows.append(row)
    return tuple(rows)


def missing_columns(row: Row, required: Sequence[str] = REQUIRED_COLUMNS) -> List[str]:
    present = {normalize_header_key(k) for k in row}
    return [col for col in required if col not in present]


# ---------------- Header detection strategies ----------------
def find_object_header_row(rows: Sequence[Row], search_rows: int) -> Optional[int]:
    # Every row object carries the labels of grid row 0, so only that row can match.
    if rows and search_rows > 0 and not missing_columns(rows[0]):
        return 0
    return None


def find_grid_header_row(grid: pd.DataFrame, search_rows: int) -> Optional[int]:
    for idx in range(min(search_rows, len(grid))):
        cells = [cell_text(v) for v in grid.iloc[idx].tolist()]
        cells = [c for c in cells if c]
        if len(cells) < len(REQUIRED_COLUMNS):
            continue
        text = "".join(cells).lower()
        if all(k in text for k in HEADER_KEYWORDS):
            return idx
    return None


def find_partial_header_row(grid: pd.DataFrame, search_rows: int) -> Optional[int]:
    best_idx: Optional[int] = None
    best_hits = PARTIAL_HEADER_MIN_COLUMNS - 1
    for idx in range(min(search_rows, len(grid))):
        labels = {normalize_header_key(cell_text(v)) for v in grid.iloc[idx].tolist()}
        hits = sum(1 for col in REQUIRED_COLUMNS if col in labels)
        if hits > best_hits:
            best_idx, best_hits = idx, hits
    return best_idx


def object_header_strategy(grid: pd.DataFrame, rows: Sequence[Row], search_rows: int) -> HeaderMatch:
    if find_object_header_row(rows, search_rows) is None:
        return HeaderMatch("object")
    return HeaderMatch("object", row_index=0, rows=tuple(rows))


def grid_header_strategy(grid: pd.DataFrame, rows: Sequence[Row], search_rows: int) -> HeaderMatch:
    idx = find_grid_header_row(grid, search_rows)
    if idx is None:
        return HeaderMatch("grid")
    return HeaderMatch("grid", row_index=idx, rows=_aligned_rows(grid, idx))


def partial_header_strategy(grid: pd.DataFrame, rows: Sequence[Row], search_rows: int) -> HeaderMatch:
    idx = find_partial_header_row(grid, search_rows)
    if idx is None:
        return HeaderMatch("partial")
    return HeaderMatch("partial", row_index=idx, rows=_aligned_rows(grid, idx))


HeaderStrategy = Callable[[pd.DataFrame, Sequence[Row], int], HeaderMatch]

HEADER_STRATEGIES: Tuple[HeaderStrategy, ...] = (
    object_header_strategy,
    grid_header_strategy,
    partial_header_strategy,
)


def locate_header(
    grid: pd.DataFrame,
    rows: Sequence[Row],
    search_rows: int,
    strategies: Sequence[HeaderStrategy] = HEADER_STRATEGIES,
) -> HeaderMatch:
    for strategy in strategies:
        match = strategy(grid, rows, search_rows)
        logger.debug("Header strategy %s: row_index=%s", match.strategy, match.row_index)
        if match.found:
            return match
    return HeaderMatch("none")


# ---------------- Sheet / workbook loading ----------------
def load_sheet(grid: pd.DataFrame, settings: Optional[Settings] = None) -> LoadResult:
    """Turn one sheet grid (read with ``header=None``) into work records.

    Returns a ``LoadResult`` holding either a non-empty record tuple or a
    ``LoadFailure``; errors are never raised to the caller.
    """
    settings = settings or Settings()
    rows = grid_to_rows(grid)
    if not rows:
        return _failure(FailureKind.EMPTY_SHEET, "The selected sheet is empty.")

    match = locate_header(grid, rows, settings.header_search_rows)
    if not match.found:
        return _failure(
            FailureKind.HEADER_NOT_FOUND,
            "Could not find header row with required columns: " + ", ".join(REQUIRED_COLUMNS),
        )

    data = list(match.rows)
    if not data:
        return _failure(FailureKind.NO_DATA_ROWS, "No data rows found after header.")

    missing = missing_columns(data[0])
    if missing:
        found = tuple(str(k) for k in data[0])
        return _failure(
            FailureKind.MISSING_COLUMNS,
            f"Missing required columns: {', '.join(missing)}. Found columns: {', '.join(found)}",
            missing=tuple(missing),
            found=found,
        )

    kept = [row for row in data if not is_date_separator_row(row)]
    records = [build_record(row, numeric_time_as=settings.numeric_time_as) for row in kept]
    records = [r for r in records if is_valid_record(r)]
    if not records:
        return _failure(FailureKind.NO_DATA_ROWS, "No data rows found after header.")

    logger.debug(
        "Loaded %d records (%d separator rows, %d incomplete rows dropped) via %s header at row %s",
        len(records),
        len(data) - len(kept),
        len(kept) - len(records),
        match.strategy,
        match.row_index,
    )
    return LoadResult(records=tuple(records), header_row=match.row_index, strategy=match.strategy)


def is_data_sheet_name(name: str) -> bool:
    lowered = str(name).strip().lower()
    if lowered.startswith("sheet") or lowered in SUMMARY_SHEET_NAMES:
        return False
    return not any(fragment in lowered for fragment in SUMMARY_SHEET_FRAGMENTS)


def data_sheet_names(names: Iterable[str]) -> List[str]:
    return [str(n) for n in names if is_data_sheet_name(n)]


def read_workbook(source: WorkbookSource) -> WorkbookResult:
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        sheets = pd.read_excel(source, sheet_name=None, header=None, dtype=object)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not parse workbook: %s", exc)
        return WorkbookResult(
            failure=LoadFailure(
                kind=FailureKind.MALFORMED_WORKBOOK,
                message="Failed to parse file. Please ensure it is a valid Excel file (.xlsx or .xls).",
            )
        )
    return WorkbookResult(sheets={str(name): df for name, df in sheets.items()})


def load_workbook(
    source: Union[WorkbookSource, WorkbookResult],
    sheet: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> WorkbookLoad:
    """Read a workbook and load one of its data sheets (the first one by default)."""
    workbook = source if isinstance(source, WorkbookResult) else read_workbook(source)
    if workbook.failure is not None:
        return WorkbookLoad(result=LoadResult(failure=workbook.failure))

    names = tuple(data_sheet_names(workbook.sheets))
    if not names:
        return WorkbookLoad(
            result=_failure(FailureKind.NO_DATA_SHEETS, "No data sheets found in the Excel file."),
        )

    selected = sheet or names[0]
    if selected not in workbook.sheets:
        return WorkbookLoad(
            sheet_names=names,
            selected_sheet=selected,
            result=_failure(FailureKind.UNKNOWN_SHEET, f"Sheet not found: {selected}"),
        )
    return WorkbookLoad(
        sheet_names=names,
        selected_sheet=selected,
        result=load_sheet(workbook.sheets[selected], settings),
    )
