from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from casefees.utils import get_logger


SHEET_CASES = "Cases"
SHEET_TIMESHEET = "Timesheet Entries"
SHEET_USERS = "Users"
SHEET_TEMPLATES = "Fee Estimate Templates"
WORKBOOK_SHEETS = [SHEET_CASES, SHEET_TIMESHEET, SHEET_USERS, SHEET_TEMPLATES]


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [c.strip() if isinstance(c, str) else c for c in df.columns]
    return df


def read_workbook(path: str | Path) -> Dict[str, pd.DataFrame]:
    """Read the record sheets from a case workbook; absent sheets come back empty."""
    logger = get_logger()
    excel_path = Path(path)
    if not excel_path.exists():
        raise FileNotFoundError(f"Excel file not found: {excel_path}")

    logger.info("Loading Excel: %s", excel_path)
    sheets = pd.read_excel(excel_path, sheet_name=None, engine="openpyxl", dtype=object)
    return {name: _normalize_columns(sheets.get(name, pd.DataFrame())) for name in WORKBOOK_SHEETS}


def frame_to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows as dicts with blank cells turned into None."""
    if df.empty:
        return []
    cleaned = df.astype(object).where(df.notna(), None)
    return cleaned.to_dict(orient="records")


def write_workbook(sheets: Dict[str, pd.DataFrame], path: str | Path) -> None:
    """Write record sheets back to a workbook.

    Sheets go to a sibling temp file first; the target is only replaced once
    every sheet has been written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.stem}.tmp{path.suffix}")
    try:
        with pd.ExcelWriter(tmp_path, engine="openpyxl") as writer:
            for name, df in sheets.items():
                df.to_excel(writer, sheet_name=name, index=False)
        tmp_path.replace(path)
    finally:
        tmp_path.unlink(missing_ok=True)


def save_csv(df: pd.DataFrame, path: str | Path) -> None:
    """Save dataframe to CSV."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
