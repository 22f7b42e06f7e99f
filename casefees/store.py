"""Record store boundary.

The engine only needs four operations from the case system: list fee
estimate templates, filter timesheet entries, update a case and list users.
``InMemoryRecordStore`` backs tests and scripted use; ``WorkbookRecordStore``
reads and writes an Excel export of the case system.
"""
from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import pandas as pd
from openpyxl.utils.exceptions import IllegalCharacterError

from casefees import io
from casefees.utils import get_logger, normalize_whitespace


class StoreError(Exception):
    """A read or write against the record store failed."""


class RecordStore(Protocol):
    def get_case(self, case_id: Any) -> Dict[str, Any]: ...

    def list_activity_templates(self) -> List[Dict[str, Any]]: ...

    def filter_timesheet_entries(self, case_reference: Any, status: Any) -> List[Dict[str, Any]]: ...

    def update_case(self, case_id: Any, fields: Mapping[str, Any]) -> Dict[str, Any]: ...

    def list_users(self) -> List[Dict[str, Any]]: ...


def _matches(value: Any, expected: Any) -> bool:
    return normalize_whitespace(value).lower() == normalize_whitespace(expected).lower()


class InMemoryRecordStore:
    def __init__(
        self,
        cases: Optional[Iterable[Mapping[str, Any]]] = None,
        timesheet_entries: Optional[Iterable[Mapping[str, Any]]] = None,
        users: Optional[Iterable[Mapping[str, Any]]] = None,
        templates: Optional[Iterable[Mapping[str, Any]]] = None,
    ) -> None:
        self.cases = [dict(c) for c in cases or []]
        self.timesheet_entries = [dict(e) for e in timesheet_entries or []]
        self.users = [dict(u) for u in users or []]
        self.templates = [dict(t) for t in templates or []]

    def _find_case(self, case_id: Any) -> Dict[str, Any]:
        for case in self.cases:
            if str(case.get("id")) == str(case_id):
                return case
        raise StoreError(f"Case not found: {case_id}")

    def get_case(self, case_id: Any) -> Dict[str, Any]:
        return copy.deepcopy(self._find_case(case_id))

    def list_activity_templates(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.templates)

    def filter_timesheet_entries(self, case_reference: Any, status: Any) -> List[Dict[str, Any]]:
        return [
            copy.deepcopy(entry)
            for entry in self.timesheet_entries
            if _matches(entry.get("case_reference"), case_reference) and _matches(entry.get("status"), status)
        ]

    def update_case(self, case_id: Any, fields: Mapping[str, Any]) -> Dict[str, Any]:
        case = self._find_case(case_id)
        case.update(copy.deepcopy(dict(fields)))
        return copy.deepcopy(case)

    def list_users(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.users)


class WorkbookRecordStore:
    """Record store over a workbook with one sheet per record type.

    Structured values written through ``update_case`` (lists, dicts) are
    stored as JSON text, since a cell only holds scalars.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.sheets = io.read_workbook(self.path)

    def _records(self, sheet: str) -> List[Dict[str, Any]]:
        return io.frame_to_records(self.sheets[sheet])

    def _case_index(self, case_id: Any) -> Any:
        cases = self.sheets[io.SHEET_CASES]
        if "id" not in cases.columns:
            raise StoreError(f"Case not found: {case_id}")
        matches = cases.index[cases["id"].astype(str) == str(case_id)]
        if len(matches) == 0:
            raise StoreError(f"Case not found: {case_id}")
        return matches[0]

    def get_case(self, case_id: Any) -> Dict[str, Any]:
        row = self.sheets[io.SHEET_CASES].loc[[self._case_index(case_id)]]
        return io.frame_to_records(row)[0]

    def list_activity_templates(self) -> List[Dict[str, Any]]:
        return self._records(io.SHEET_TEMPLATES)

    def filter_timesheet_entries(self, case_reference: Any, status: Any) -> List[Dict[str, Any]]:
        return [
            entry
            for entry in self._records(io.SHEET_TIMESHEET)
            if _matches(entry.get("case_reference"), case_reference) and _matches(entry.get("status"), status)
        ]

    def update_case(self, case_id: Any, fields: Mapping[str, Any]) -> Dict[str, Any]:
        logger = get_logger()
        cases = self.sheets[io.SHEET_CASES].copy()
        index = self._case_index(case_id)
        for field, value in fields.items():
            if isinstance(value, (list, dict)):
                value = json.dumps(value, default=str)
            if field not in cases.columns:
                cases[field] = pd.Series([None] * len(cases), index=cases.index, dtype=object)
            cases.at[index, field] = value

        sheets = dict(self.sheets)
        sheets[io.SHEET_CASES] = cases
        try:
            io.write_workbook(sheets, self.path)
        except (OSError, ValueError, IllegalCharacterError) as exc:
            raise StoreError(f"Could not save case {case_id}: {exc}") from exc
        self.sheets = sheets
        logger.info("Saved %s field(s) on case %s", len(fields), case_id)
        return self.get_case(case_id)

    def list_users(self) -> List[Dict[str, Any]]:
        return self._records(io.SHEET_USERS)
