from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class FilterCriteriaModel(BaseModel):
    developer: Optional[str] = None
    status: Optional[str] = None
    productivity: str = "ALL"
    text_query: str = ""
    ticket_query: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    exclude_leave: bool = False


class LoadErrorModel(BaseModel):
    error: str
    kind: str
    missing: List[str] = Field(default_factory=list)
    found: List[str] = Field(default_factory=list)


class MetaSheetsResponse(BaseModel):
    file: Optional[str] = None
    sheets: List[str] = Field(default_factory=list)


class MetaOptionsResponse(BaseModel):
    developers: List[str] = Field(default_factory=list)
    statuses: List[str] = Field(default_factory=list)
