from __future__ import annotations

import logging

import pytest

from casefees.taxonomy import CATEGORY_NAMES, LEDGER_CATEGORIES, ROLE_GROUPS, Totals
from casefees.timesheet import build_ledger, ledger_frame, ledger_totals

from conftest import make_entry


def test_ledger_has_every_category_and_role_group_when_empty(users):
    ledger = build_ledger([], None, None, users)
    assert list(ledger) == list(LEDGER_CATEGORIES)
    for cells in ledger.values():
        assert list(cells) == list(ROLE_GROUPS)
        assert all(cell == Totals() for cell in cells.values())


def test_manager_creditor_entry(users):
    entries = [make_entry("max@firm.co.uk", "Creditor claims review", 7200, "2024-02-01")]
    ledger = build_ledger(entries, None, None, users)
    assert ledger["creditors"]["Managers"] == Totals(2.0, 1000.0)
    assert CATEGORY_NAMES["creditors"] == "CREDITORS"


def test_secretary_costs_at_secretary_rate_but_buckets_as_administrator(users):
    entries = [make_entry("sue@firm.co.uk", "Filing correspondence", 3600, "2024-03-01")]
    ledger = build_ledger(entries, None, None, users)
    assert ledger["statutory"]["Administrators"] == Totals(1.0, 70.0)


def test_full_case_ledger(timesheet_entries, users):
    ledger = build_ledger(timesheet_entries, None, None, users, case_reference="CASE-1")
    assert ledger["statutory"]["IP Directors"] == Totals(1.0, 700.0)
    assert ledger["statutory"]["Administrators"] == Totals(0.5, 35.0)
    assert ledger["realisation"]["Administrators"] == Totals(1.5, 375.0)
    assert ledger["trading"]["Managers"] == Totals(1.0, 500.0)
    assert ledger["employees"]["Administrators"] == Totals(1.0, 250.0)
    assert ledger["investigations"]["IP Directors"] == Totals()

    summary = ledger_totals(ledger)
    assert summary["grand_total"].total_hours == pytest.approx(7.0)
    assert summary["grand_total"].total_cost == pytest.approx(2860.0)
    assert summary["by_role_group"]["Managers"] == Totals(3.0, 1500.0)
    assert summary["average_hourly_rate"] == pytest.approx(2860.0 / 7.0)


def test_date_range_is_inclusive(timesheet_entries, users):
    ledger = build_ledger(timesheet_entries, "2024-02-01", "2024-02-20", users, case_reference="CASE-1")
    summary = ledger_totals(ledger)
    # 2024-02-01 creditor, 02-10 asset sale, 02-12 trading, 02-20 wages
    assert summary["grand_total"].total_hours == pytest.approx(2 + 1.5 + 1 + 1)
    assert ledger["statutory"]["IP Directors"] == Totals()


@pytest.mark.parametrize("day, included", [("2024-01-31", False), ("2024-02-01", True), ("2024-02-29", True), ("2024-03-01", False)])
def test_date_boundaries(users, day, included):
    entries = [make_entry("max@firm.co.uk", "Creditor claims", 3600, day)]
    ledger = build_ledger(entries, "2024-02-01", "2024-02-29", users)
    expected = Totals(1.0, 500.0) if included else Totals()
    assert ledger["creditors"]["Managers"] == expected


def test_missing_bound_disables_date_filter(users):
    entries = [
        make_entry("max@firm.co.uk", "Creditor claims", 3600, "2020-01-01"),
        make_entry("max@firm.co.uk", "Creditor claims", 3600, None),
    ]
    assert build_ledger(entries, "2024-02-01", None, users)["creditors"]["Managers"] == Totals(2.0, 1000.0)
    # Undated rows drop out once a full range applies.
    assert build_ledger(entries, "2019-01-01", "2024-02-01", users)["creditors"]["Managers"] == Totals(1.0, 500.0)


def test_only_approved_entries_count(users):
    entries = [
        make_entry("max@firm.co.uk", "Creditor claims", 3600, "2024-02-01", status="Approved"),
        make_entry("max@firm.co.uk", "Creditor claims", 3600, "2024-02-01", status="submitted"),
        make_entry("max@firm.co.uk", "Creditor claims", 3600, "2024-02-01", status=None),
    ]
    assert build_ledger(entries, None, None, users)["creditors"]["Managers"] == Totals(1.0, 500.0)


def test_unresolved_user_costs_as_executive(users):
    entries = [make_entry("Stranger@Elsewhere.com", "Creditor claims", 3600, "2024-02-01")]
    assert build_ledger(entries, None, None, users)["creditors"]["Administrators"] == Totals(1.0, 250.0)


def test_malformed_duration_is_zero(users):
    entries = [
        make_entry("max@firm.co.uk", "Creditor claims", "abc", "2024-02-01"),
        make_entry("max@firm.co.uk", "Creditor claims", -3600, "2024-02-01"),
        make_entry("max@firm.co.uk", "Creditor claims", "1800", "2024-02-01"),
    ]
    assert build_ledger(entries, None, None, users)["creditors"]["Managers"] == Totals(0.5, 250.0)


def test_unknown_category_is_dropped_with_warning(users, caplog):
    entries = [
        make_entry("max@firm.co.uk", "Creditor claims", 3600, "2024-02-01"),
        make_entry("max@firm.co.uk", "Mystery work", 3600, "2024-02-01"),
    ]

    def categorizer(description):
        return "creditors" if "Creditor" in description else "miscellaneous"

    with caplog.at_level(logging.WARNING):
        ledger = build_ledger(entries, None, None, users, categorizer=categorizer)

    assert "miscellaneous" not in ledger
    assert ledger_totals(ledger)["grand_total"] == Totals(1.0, 500.0)
    assert "unknown categories" in caplog.text


def test_ledger_is_idempotent(timesheet_entries, users):
    first = build_ledger(timesheet_entries, "2024-01-01", "2024-12-31", users, case_reference="CASE-1")
    second = build_ledger(timesheet_entries, "2024-01-01", "2024-12-31", users, case_reference="CASE-1")
    assert first == second


def test_ledger_frame_uses_display_names(timesheet_entries, users):
    frame = ledger_frame(build_ledger(timesheet_entries, None, None, users, case_reference="CASE-1"))
    assert list(frame["category_name"]) == [CATEGORY_NAMES[c] for c in LEDGER_CATEGORIES]
    creditors = frame.set_index("category").loc["creditors"]
    assert creditors["Managers Hours"] == 2.0
    assert creditors["average_hourly_rate"] == 500.0
    investigations = frame.set_index("category").loc["investigations"]
    assert investigations["average_hourly_rate"] == 0.0
