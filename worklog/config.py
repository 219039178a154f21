from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
FILE_GLOB = "*.xlsx"
HEADER_SEARCH_ROWS = 10


class NumericTimeUnit(str, Enum):
    HOURS = "HOURS"
    MINUTES = "MINUTES"


def parse_time_unit(value: object, default: NumericTimeUnit = NumericTimeUnit.HOURS) -> NumericTimeUnit:
    if isinstance(value, NumericTimeUnit):
        return value
    s = str(value or "").strip().upper()
    try:
        return NumericTimeUnit(s)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    numeric_time_as: NumericTimeUnit = NumericTimeUnit.HOURS
    header_search_rows: int = HEADER_SEARCH_ROWS
    data_dir: Path = DATA_DIR
    file_glob: str = FILE_GLOB

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``WORKLOG_*`` environment variables."""
        env = os.environ if environ is None else environ

        raw_unit = env.get("WORKLOG_NUMERIC_TIME_AS")
        unit = parse_time_unit(raw_unit)
        if raw_unit and unit.value != raw_unit.strip().upper():
            logger.warning("Ignoring WORKLOG_NUMERIC_TIME_AS=%r, using %s", raw_unit, unit.value)

        data_dir = Path(env["WORKLOG_DATA_DIR"]) if env.get("WORKLOG_DATA_DIR") else DATA_DIR
        file_glob = env.get("WORKLOG_FILE_GLOB") or FILE_GLOB
        return cls(numeric_time_as=unit, data_dir=data_dir, file_glob=file_glob)
