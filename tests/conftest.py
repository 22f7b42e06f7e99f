from __future__ import annotations

import pytest


def make_entry(email, description, seconds, day, status="approved", case_reference="CASE-1"):
    return {
        "case_reference": case_reference,
        "user_email": email,
        "task_description": description,
        "duration_seconds": seconds,
        "date": day,
        "status": status,
    }


@pytest.fixture
def activities():
    return [
        {"id": "sat-1", "category": "statutory", "label": "Statutory filings"},
        {"id": "sat-2", "category": "statutory", "label": "Case planning"},
        {"id": "real-1", "category": "realisation", "label": "Asset sale"},
        {"id": "inv-1", "category": "investigations", "label": "SIP2 review"},
        {"id": "cred-1", "category": "creditors", "label": "Claims"},
        {"id": "emp-1", "category": "employees", "label": "Redundancy"},
        {"id": "trade-1", "category": "trading", "label": "Trading on"},
    ]


@pytest.fixture
def fee_entries():
    return {
        "sat-1": {"partner_hours": 2, "manager_hours": "1", "executive_hours": None},
        "sat-2": {"executive_hours": "3.5", "secretary_hours": ""},
        "real-1": {"partner_hours": "abc", "manager_hours": 4},
        "cred-1": {"executive_hours": 10, "notes": "Large creditor base"},
        "trade-1": {"manager_hours": 6, "executive_hours": 2},
    }


@pytest.fixture
def users():
    return [
        {"email": "pat@firm.co.uk", "full_name": "Pat Partner", "role": "partner"},
        {"email": "ada@firm.co.uk", "full_name": "Ada Admin", "role": "admin"},
        {"email": "max@firm.co.uk", "full_name": "Max Manager", "role": "manager"},
        {"email": "sue@firm.co.uk", "full_name": "Sue Secretary", "role": "secretary"},
        {"email": "eve@firm.co.uk", "full_name": "Eve Exec", "role": "user"},
    ]


@pytest.fixture
def timesheet_entries():
    return [
        make_entry("max@firm.co.uk", "Creditor claims review", 7200, "2024-02-01"),
        make_entry("pat@firm.co.uk", "Statutory reporting", 3600, "2024-01-15"),
        make_entry("sue@firm.co.uk", "Filing correspondence", 1800, "2024-03-31"),
        make_entry("eve@firm.co.uk", "Asset sale negotiations", 5400, "2024-02-10"),
        make_entry("max@firm.co.uk", "Trading review", 3600, "2024-02-12"),
        make_entry("pat@firm.co.uk", "Director conduct", 3600, "2024-02-05", status="submitted"),
        make_entry("ada@firm.co.uk", "Creditor meeting", 3600, "2024-02-05", case_reference="CASE-2"),
        make_entry("unknown@firm.co.uk", "Employee wages", 3600, "2024-02-20"),
    ]
