from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

import numpy as np
import pandas as pd

from casefees.fee_estimate import Entries, category_totals, grand_totals, task_totals
from casefees.taxonomy import (
    CATEGORY_NAMES,
    DEFAULT_RATES,
    FEE_ESTIMATE_CATEGORIES,
    LEDGER_CATEGORIES,
    ROLE_GROUPS,
    RateTable,
    Totals,
)
from casefees.timesheet import Ledger
from casefees.utils import fuzzy_email_suggestions, get_logger


def build_reconciliation(
    activities: Iterable[Mapping[str, Any]],
    fee_entries: Entries,
    ledger: Ledger,
    rates: RateTable = DEFAULT_RATES,
) -> pd.DataFrame:
    """Fee estimate against the actual time ledger, per category."""
    activities = list(activities)
    rows = []
    for category in LEDGER_CATEGORIES:
        estimate = category_totals(category, activities, fee_entries, rates)
        actual = Totals()
        for group in ROLE_GROUPS:
            actual = actual + ledger.get(category, {}).get(group, Totals())
        rows.append(
            {
                "category": category,
                "category_name": CATEGORY_NAMES[category],
                "estimated_hours": estimate.total_hours,
                "estimated_cost": estimate.total_cost,
                "actual_hours": actual.total_hours,
                "actual_cost": actual.total_cost,
            }
        )

    recon = pd.DataFrame(rows)
    recon["hours_variance"] = recon["actual_hours"] - recon["estimated_hours"]
    recon["cost_variance"] = recon["actual_cost"] - recon["estimated_cost"]
    estimated = recon["estimated_cost"].to_numpy()
    actual_cost = recon["actual_cost"].to_numpy()
    recon["utilisation"] = np.divide(
        actual_cost, estimated, out=np.zeros_like(actual_cost, dtype=float), where=estimated > 0
    )
    return recon


def check_totals_consistent(
    activities: Iterable[Mapping[str, Any]],
    fee_entries: Entries,
    rates: RateTable = DEFAULT_RATES,
    tolerance: float = 1e-6,
) -> bool:
    """Grand total equals the sum of categories and the sum of tasks."""
    activities = list(activities)
    grand = grand_totals(activities, fee_entries, rates)
    by_category = Totals()
    for category in FEE_ESTIMATE_CATEGORIES:
        by_category = by_category + category_totals(category, activities, fee_entries, rates)
    by_task = Totals()
    for activity in activities:
        if activity.get("category") in FEE_ESTIMATE_CATEGORIES:
            by_task = by_task + task_totals(activity, fee_entries, rates)
    return bool(
        np.isclose(grand.total_hours, by_category.total_hours, atol=tolerance)
        and np.isclose(grand.total_hours, by_task.total_hours, atol=tolerance)
        and np.isclose(grand.total_cost, by_category.total_cost, atol=tolerance)
        and np.isclose(grand.total_cost, by_task.total_cost, atol=tolerance)
    )


def build_qa_report(
    timesheet: pd.DataFrame,
    activities: Iterable[Mapping[str, Any]],
    fee_entries: Entries,
    directory: Mapping[str, Mapping[str, Any]],
    rates: RateTable = DEFAULT_RATES,
    tolerance: float = 0.01,
) -> Dict[str, object]:
    """Data quality checks over one case's filtered timesheet and fee estimate."""
    logger = get_logger()
    activities = list(activities)

    unresolved = timesheet.loc[~timesheet["resolved_user"], "user_email"]
    unresolved_emails: List[str] = sorted({e for e in unresolved if e})
    suggestions = fuzzy_email_suggestions(
        unresolved_emails, [user.get("email", "") for user in directory.values()]
    )

    unknown_categories = int((~timesheet["category"].isin(LEDGER_CATEGORIES)).sum())
    unknown_activity_categories = sorted(
        {a.get("id", "") for a in activities if a.get("category") not in LEDGER_CATEGORIES}
    )
    unestimated_activities = sorted(
        {key for key in fee_entries if key not in {a.get("id") for a in activities}}
    )

    report = {
        "timesheet_rows": int(len(timesheet)),
        "unresolved_users": unresolved_emails,
        "unresolved_user_hours": float(timesheet.loc[~timesheet["resolved_user"], "hours"].sum()),
        "user_match_suggestions": suggestions,
        "zero_duration_rows": int((timesheet["hours"] <= 0).sum()),
        "undated_rows": int(timesheet["entry_date"].isna().sum()),
        "unknown_category_rows": unknown_categories,
        "activities_with_unknown_category": unknown_activity_categories,
        "entries_without_activity": unestimated_activities,
        "totals_consistent": check_totals_consistent(activities, fee_entries, rates, tolerance),
    }

    logger.info("QA unresolved users: %s", len(unresolved_emails))
    return report
