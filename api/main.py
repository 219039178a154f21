from __future__ import annotations

from dataclasses import replace
import logging
import math
from typing import Literal, Optional, Tuple

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import FilterCriteriaModel, LoadErrorModel, MetaOptionsResponse, MetaSheetsResponse
from worklog.config import Settings, parse_time_unit
from worklog.data import load_dataset
from worklog.filters import FilterCriteria, apply_filters, normalize_filters, unique_developers, unique_statuses
from worklog.loader import LoadFailure, WorkbookLoad
from worklog.records import records_to_frame
from worklog.report import compute_performance, compute_report


app = FastAPI(title="Worklog Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

TimeUnitParam = Optional[Literal["HOURS", "MINUTES"]]


def _settings(numeric_time_as: Optional[str]) -> Settings:
    settings = Settings.from_env()
    if numeric_time_as:
        settings = replace(settings, numeric_time_as=parse_time_unit(numeric_time_as, settings.numeric_time_as))
    return settings


def _criteria_from_model(model: FilterCriteriaModel) -> FilterCriteria:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                type(pd.NaT): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _load_error(failure: LoadFailure) -> JSONResponse:
    body = LoadErrorModel(
        error=failure.message,
        kind=failure.kind.value,
        missing=list(failure.missing),
        found=list(failure.found),
    )
    return JSONResponse(status_code=422, content=body.model_dump())


def _load(settings: Settings, sheet: Optional[str]) -> Tuple[Optional[WorkbookLoad], Optional[JSONResponse]]:
    path, loaded = load_dataset(settings, sheet)
    if loaded is None:
        return None, JSONResponse(
            status_code=404,
            content={"error": f"No workbook matching {settings.file_glob} in {settings.data_dir}", "type": "NotFound"},
        )
    if not loaded.ok:
        return loaded, _load_error(loaded.result.failure)
    logger.debug("Loaded %d records from %s [%s]", len(loaded.result.records), path, loaded.selected_sheet)
    return loaded, None


@app.get("/meta/sheets")
def meta_sheets(numeric_time_as: TimeUnitParam = Query(default=None)):
    try:
        settings = _settings(numeric_time_as)
        path, loaded = load_dataset(settings)
        if loaded is None:
            return _json(MetaSheetsResponse().model_dump())
        if not loaded.sheet_names and loaded.result.failure is not None:
            return _load_error(loaded.result.failure)
        return _json(MetaSheetsResponse(file=path.name, sheets=list(loaded.sheet_names)).model_dump())
    except Exception as exc:
        logger.exception("meta_sheets failed")
        return _error(exc)


@app.get("/meta/options")
def meta_options(
    sheet: Optional[str] = Query(default=None),
    numeric_time_as: TimeUnitParam = Query(default=None),
):
    try:
        loaded, err = _load(_settings(numeric_time_as), sheet)
        if err is not None:
            return err
        records = loaded.result.records
        return _json(
            MetaOptionsResponse(developers=unique_developers(records), statuses=unique_statuses(records)).model_dump()
        )
    except Exception as exc:
        logger.exception("meta_options failed")
        return _error(exc)


@app.post("/report")
def report(
    filters: FilterCriteriaModel,
    sheet: Optional[str] = Query(default=None),
    numeric_time_as: TimeUnitParam = Query(default=None),
):
    try:
        loaded, err = _load(_settings(numeric_time_as), sheet)
        if err is not None:
            return err
        payload = compute_report(loaded.result.records, _criteria_from_model(filters))
        payload["sheet"] = loaded.selected_sheet
        return _json(payload)
    except Exception as exc:
        logger.exception("report failed")
        return _error(exc)


@app.post("/performance")
def performance(
    filters: FilterCriteriaModel,
    developer: str = Query(default=""),
    group_by_task: bool = Query(default=False),
    sheet: Optional[str] = Query(default=None),
    numeric_time_as: TimeUnitParam = Query(default=None),
):
    try:
        loaded, err = _load(_settings(numeric_time_as), sheet)
        if err is not None:
            return err
        payload = compute_performance(
            loaded.result.records,
            developer.strip() or None,
            _criteria_from_model(filters),
            by_task=group_by_task,
        )
        payload["sheet"] = loaded.selected_sheet
        return _json(payload)
    except Exception as exc:
        logger.exception("performance failed")
        return _error(exc)


@app.post("/export")
def export_records(
    filters: FilterCriteriaModel,
    sheet: Optional[str] = Query(default=None),
    numeric_time_as: TimeUnitParam = Query(default=None),
):
    try:
        loaded, err = _load(_settings(numeric_time_as), sheet)
        if err is not None:
            return err
        rows = apply_filters(loaded.result.records, _criteria_from_model(filters))
        filename = f"{loaded.selected_sheet or 'worklog'}.csv"
        csv_bytes = records_to_frame(rows).to_csv(index=False).encode("utf-8")
        return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
    except Exception as exc:
        logger.exception("export failed")
        return _error(exc)
