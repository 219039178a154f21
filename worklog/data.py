from __future__ import annotations

from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

from worklog.config import NumericTimeUnit, Settings
from worklog.loader import WorkbookLoad, WorkbookResult, load_workbook, read_workbook

FileSignature = Tuple[str, float]


def get_source_files(settings: Settings) -> List[Path]:
    files = [p for p in settings.data_dir.glob(settings.file_glob) if p.is_file() and not p.name.startswith("~$")]
    return sorted(files, key=lambda p: (p.stat().st_mtime, p.name))


def file_signature(path: Path) -> FileSignature:
    return str(path), path.stat().st_mtime


@lru_cache(maxsize=4)
def _read_workbook_cached(files_sig: FileSignature) -> WorkbookResult:
    return read_workbook(Path(files_sig[0]))


@lru_cache(maxsize=16)
def _load_workbook_cached(files_sig: FileSignature, sheet: Optional[str], unit: NumericTimeUnit) -> WorkbookLoad:
    settings = replace(Settings(), numeric_time_as=unit)
    return load_workbook(_read_workbook_cached(files_sig), sheet, settings)


def load_dataset(settings: Settings, sheet: Optional[str] = None) -> Tuple[Optional[Path], Optional[WorkbookLoad]]:
    """Load a sheet from the newest workbook in ``settings.data_dir``.

    Results are cached per file signature, so a modified or new file is
    picked up on the next call. Returns ``(None, None)`` when no workbook is
    present.
    """
    files = get_source_files(settings)
    if not files:
        return None, None
    latest = files[-1]
    return latest, _load_workbook_cached(file_signature(latest), sheet or None, settings.numeric_time_as)


def clear_cache() -> None:
    _read_workbook_cached.cache_clear()
    _load_workbook_cached.cache_clear()
