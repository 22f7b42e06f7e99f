from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

from casefees.clean import ENTRY_FIELDS, parse_fee_estimate_data
from casefees.taxonomy import (
    DEFAULT_RATES,
    FEE_ESTIMATE_CATEGORIES,
    GRADE_HOUR_FIELDS,
    RATE_GRADES,
    RateTable,
    Totals,
    category_name,
)
from casefees.utils import get_logger, safe_hours


Entries = Mapping[str, Mapping[str, Any]]


def _grade_hours(entry: Mapping[str, Any] | None) -> Dict[str, float]:
    entry = entry or {}
    return {grade: safe_hours(entry.get(field)) for grade, field in GRADE_HOUR_FIELDS.items()}


def task_totals(activity: Mapping[str, Any], entries: Entries, rates: RateTable = DEFAULT_RATES) -> Totals:
    """Hours and cost for one activity from the hours entered against each grade."""
    hours = _grade_hours(entries.get(activity.get("id")))
    total_hours = sum(hours[grade] for grade in RATE_GRADES)
    total_cost = sum(hours[grade] * rates.for_grade(grade) for grade in RATE_GRADES)
    return Totals(total_hours, total_cost)


def category_totals(
    category_id: str,
    activities: Iterable[Mapping[str, Any]],
    entries: Entries,
    rates: RateTable = DEFAULT_RATES,
) -> Totals:
    """Sum task totals over the activities in one category."""
    totals = Totals()
    for activity in activities:
        if activity.get("category") == category_id:
            totals = totals + task_totals(activity, entries, rates)
    return totals


def grand_totals(
    activities: Iterable[Mapping[str, Any]],
    entries: Entries,
    rates: RateTable = DEFAULT_RATES,
) -> Totals:
    """Case total over the fee estimate categories (trading excluded)."""
    activities = list(activities)
    totals = Totals()
    for category in FEE_ESTIMATE_CATEGORIES:
        totals = totals + category_totals(category, activities, entries, rates)
    return totals


def update_entry(entries: Entries, activity_id: str, field: str, value: Any) -> Dict[str, Dict[str, Any]]:
    """Return a copy of ``entries`` with one field of one activity changed."""
    if field not in ENTRY_FIELDS:
        raise ValueError(f"Unknown fee estimate field: {field}")
    updated = {key: dict(entry) for key, entry in entries.items()}
    updated.setdefault(activity_id, {})[field] = value
    return updated


def merge_activities(activities: Iterable[Mapping[str, Any]], entries: Entries) -> List[Dict[str, Any]]:
    """Combine each activity with its current entry fields."""
    merged = []
    for activity in activities:
        record = dict(activity)
        record.update(entries.get(activity.get("id"), {}))
        merged.append(record)
    return merged


def fee_estimate_fields(activities: Iterable[Mapping[str, Any]], entries: Entries) -> Dict[str, str]:
    """Partial case update that persists the detailed fee estimate."""
    return {"fee_estimate_data": json.dumps(merge_activities(activities, entries), default=str)}


def sync_with_template(
    template_activities: Iterable[Mapping[str, Any]], entries: Entries
) -> Dict[str, Dict[str, Any]]:
    """Re-align a case's entries with the current template.

    Hours and notes already entered for an activity are kept; blanks are
    filled from the template's own suggested values; activities that are no
    longer in the template are dropped.
    """
    synced: Dict[str, Dict[str, Any]] = {}
    for activity in template_activities:
        activity_id = activity.get("id")
        current = entries.get(activity_id, {})
        synced[activity_id] = {
            field: current.get(field) or activity.get(field) or "" for field in ENTRY_FIELDS
        }
    return synced


def stored_fee_estimate_total(raw: Any, rates: RateTable = DEFAULT_RATES) -> float:
    """Total cost of a persisted ``fee_estimate_data`` blob."""
    entries = parse_fee_estimate_data(raw)
    total = 0.0
    for activity_id in entries:
        total += task_totals({"id": activity_id}, entries, rates).total_cost
    return total


def fee_estimate_frame(
    activities: Iterable[Mapping[str, Any]],
    entries: Entries,
    rates: RateTable = DEFAULT_RATES,
) -> pd.DataFrame:
    """Per-activity fee estimate table, grouped by category."""
    logger = get_logger()
    rows = []
    for activity in activities:
        entry = entries.get(activity.get("id"), {})
        hours = _grade_hours(entry)
        totals = task_totals(activity, entries, rates)
        row = {
            "category": activity.get("category", ""),
            "category_name": category_name(activity.get("category", "")),
            "activity_id": activity.get("id", ""),
            "activity": activity.get("label", ""),
        }
        row.update({GRADE_HOUR_FIELDS[grade]: hours[grade] for grade in RATE_GRADES})
        row.update(
            {
                "total_hours": totals.total_hours,
                "total_cost": totals.total_cost,
                "notes": entry.get("notes") or "",
            }
        )
        rows.append(row)

    columns = ["category", "category_name", "activity_id", "activity"]
    columns += [GRADE_HOUR_FIELDS[grade] for grade in RATE_GRADES]
    columns += ["total_hours", "total_cost", "notes"]
    frame = pd.DataFrame(rows, columns=columns)
    logger.info("Fee estimate activities: %s", len(frame))
    return frame
