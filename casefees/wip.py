from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

import pandas as pd

from casefees.clean import prepare_filtered_timesheet
from casefees.taxonomy import DEFAULT_RATES, RATE_GRADES, RateTable, Totals
from casefees.utils import get_logger


def wip_by_grade_from_frame(df: pd.DataFrame) -> Dict[str, Totals]:
    breakdown = {grade: Totals() for grade in RATE_GRADES}
    if df.empty:
        return breakdown
    grouped = df.groupby("grade", sort=False)[["hours", "cost"]].sum()
    for grade, row in grouped.iterrows():
        breakdown[grade] = Totals(float(row["hours"]), float(row["cost"]))
    return breakdown


def wip_by_user_from_frame(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    grouped = (
        df.groupby("user_key", sort=False)
        .agg(
            email=("user_email", "first"),
            name=("user_name", "first"),
            grade=("grade", "first"),
            hours=("hours", "sum"),
            cost=("cost", "sum"),
        )
        .reset_index(drop=True)
    )
    return [
        {
            "email": row["email"],
            "name": row["name"],
            "grade": row["grade"],
            "hours": float(row["hours"]),
            "cost": float(row["cost"]),
        }
        for row in grouped.to_dict(orient="records")
    ]


def wip_by_grade(
    entries: Iterable[Mapping[str, Any]] | pd.DataFrame,
    directory: Any,
    date_from: Any = None,
    date_to: Any = None,
    case_reference: Any = None,
    rates: RateTable = DEFAULT_RATES,
) -> Dict[str, Totals]:
    """Approved WIP hours and cost per rate grade."""
    df = prepare_filtered_timesheet(
        entries, directory, date_from=date_from, date_to=date_to, case_reference=case_reference, rates=rates
    )
    return wip_by_grade_from_frame(df)


def wip_by_user(
    entries: Iterable[Mapping[str, Any]] | pd.DataFrame,
    directory: Any,
    date_from: Any = None,
    date_to: Any = None,
    case_reference: Any = None,
    rates: RateTable = DEFAULT_RATES,
) -> List[Dict[str, Any]]:
    """Approved WIP per team member, one row per e-mail in first-seen order."""
    logger = get_logger()
    df = prepare_filtered_timesheet(
        entries, directory, date_from=date_from, date_to=date_to, case_reference=case_reference, rates=rates
    )
    users = wip_by_user_from_frame(df)
    logger.info("WIP team members: %s", len(users))
    return users


def total_wip(by_grade: Mapping[str, Totals]) -> float:
    return float(sum(totals.total_cost for totals in by_grade.values()))
