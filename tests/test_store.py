from __future__ import annotations

import json

import pandas as pd
import pytest

from casefees import io
from casefees.store import InMemoryRecordStore, StoreError, WorkbookRecordStore


@pytest.fixture
def store(timesheet_entries, users):
    return InMemoryRecordStore(
        cases=[{"id": 1, "case_reference": "CASE-1", "case_type": "CVL"}],
        timesheet_entries=timesheet_entries,
        users=users,
        templates=[{"id": "tpl", "is_default": True, "template_data": "[]"}],
    )


def test_filter_timesheet_entries(store):
    approved = store.filter_timesheet_entries("CASE-1", "Approved")
    assert len(approved) == 6
    assert all(entry["case_reference"] == "CASE-1" for entry in approved)
    assert store.filter_timesheet_entries("CASE-9", "approved") == []


def test_update_case_merges_fields(store):
    updated = store.update_case(1, {"fee_estimate_data": "[]", "resolutions": [{"id": "r1"}]})
    assert updated["case_type"] == "CVL"
    assert store.get_case("1")["resolutions"] == [{"id": "r1"}]


def test_update_unknown_case_raises(store):
    with pytest.raises(StoreError):
        store.update_case(99, {"x": 1})


def test_reads_return_copies(store):
    case = store.get_case(1)
    case["case_type"] = "changed"
    store.list_users()[0]["role"] = "changed"
    assert store.get_case(1)["case_type"] == "CVL"
    assert store.list_users()[0]["role"] == "partner"


@pytest.fixture
def workbook(tmp_path, timesheet_entries, users):
    path = tmp_path / "cases.xlsx"
    template = [{"id": "a", "category": "creditors", "activity": "Claims"}]
    io.write_workbook(
        {
            io.SHEET_CASES: pd.DataFrame(
                [{"id": 1, "case_reference": "CASE-1", "case_type": "Administration", "appointment_date": "2024-01-01"}]
            ),
            io.SHEET_TIMESHEET: pd.DataFrame(timesheet_entries),
            io.SHEET_USERS: pd.DataFrame(users),
            io.SHEET_TEMPLATES: pd.DataFrame(
                [{"id": "tpl", "template_name": "Standard", "is_default": True, "template_data": json.dumps(template)}]
            ),
        },
        path,
    )
    return path


def test_workbook_store_reads_sheets(workbook):
    store = WorkbookRecordStore(workbook)
    assert store.get_case(1)["case_reference"] == "CASE-1"
    assert len(store.filter_timesheet_entries("CASE-1", "approved")) == 6
    assert {user["email"] for user in store.list_users()} >= {"max@firm.co.uk"}
    templates = store.list_activity_templates()
    assert json.loads(templates[0]["template_data"])[0]["id"] == "a"


def test_workbook_store_persists_updates(workbook):
    store = WorkbookRecordStore(workbook)
    store.update_case(1, {"fee_estimate_data": "[]", "resolutions": [{"id": "r1"}]})

    reopened = WorkbookRecordStore(workbook)
    case = reopened.get_case(1)
    assert case["fee_estimate_data"] == "[]"
    assert json.loads(case["resolutions"]) == [{"id": "r1"}]
    assert case["case_type"] == "Administration"


def test_workbook_store_missing_case(workbook):
    with pytest.raises(StoreError):
        WorkbookRecordStore(workbook).get_case(42)


def test_missing_workbook(tmp_path):
    with pytest.raises(FileNotFoundError):
        WorkbookRecordStore(tmp_path / "missing.xlsx")


def test_workbook_store_rejected_value_raises_store_error(workbook):
    store = WorkbookRecordStore(workbook)
    with pytest.raises(StoreError):
        store.update_case(1, {"notes": "line one\x07line two"})

    assert "notes" not in store.get_case(1)
    reopened = WorkbookRecordStore(workbook)
    assert reopened.get_case(1)["case_type"] == "Administration"
    assert len(reopened.filter_timesheet_entries("CASE-1", "approved")) == 6
    assert sorted(p.name for p in workbook.parent.iterdir()) == ["cases.xlsx"]
