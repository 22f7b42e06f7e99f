from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Mapping

import pandas as pd

from casefees.clean import prepare_filtered_timesheet
from casefees.taxonomy import (
    DEFAULT_RATES,
    LEDGER_CATEGORIES,
    ROLE_GROUPS,
    RateTable,
    Totals,
    categorize,
    category_name,
)
from casefees.utils import get_logger, safe_divide


Ledger = Dict[str, Dict[str, Totals]]


def empty_ledger() -> Ledger:
    return {category: {group: Totals() for group in ROLE_GROUPS} for category in LEDGER_CATEGORIES}


def drop_unknown_categories(df: pd.DataFrame) -> pd.DataFrame:
    """Remove rows whose category is not part of the ledger, with a warning."""
    logger = get_logger()
    known = df["category"].isin(LEDGER_CATEGORIES)
    unknown = int((~known).sum())
    if unknown:
        logger.warning(
            "Dropped %s timesheet rows with unknown categories: %s",
            unknown,
            sorted({str(c) for c in df.loc[~known, "category"]}),
        )
    return df[known]


def ledger_from_frame(df: pd.DataFrame) -> Ledger:
    """Accumulate costed timesheet rows into category x role group totals."""
    ledger = empty_ledger()
    df = drop_unknown_categories(df)
    if df.empty:
        return ledger
    grouped = df.groupby(["category", "role_group"], sort=False)[["hours", "cost"]].sum()
    for (category, group), row in grouped.iterrows():
        ledger[category][group] = Totals(float(row["hours"]), float(row["cost"]))
    return ledger


def build_ledger(
    entries: Iterable[Mapping[str, Any]] | pd.DataFrame,
    date_from: Any,
    date_to: Any,
    directory: Any,
    case_reference: Any = None,
    rates: RateTable = DEFAULT_RATES,
    categorizer: Callable[[Any], str] = categorize,
) -> Ledger:
    """Time ledger of approved hours and cost per category and role group."""
    logger = get_logger()
    df = prepare_filtered_timesheet(
        entries,
        directory,
        date_from=date_from,
        date_to=date_to,
        case_reference=case_reference,
        rates=rates,
        categorizer=categorizer,
    )
    logger.info("Time ledger rows after filtering: %s", len(df))
    return ledger_from_frame(df)


def ledger_totals(ledger: Ledger) -> Dict[str, Any]:
    """Column totals per role group plus the ledger grand total."""
    by_group = {group: Totals() for group in ROLE_GROUPS}
    for cells in ledger.values():
        for group in ROLE_GROUPS:
            by_group[group] = by_group[group] + cells.get(group, Totals())
    grand = Totals()
    for group in ROLE_GROUPS:
        grand = grand + by_group[group]
    return {
        "by_role_group": by_group,
        "grand_total": grand,
        "average_hourly_rate": safe_divide(grand.total_cost, grand.total_hours),
    }


def ledger_frame(ledger: Ledger) -> pd.DataFrame:
    """One row per category with hours and cost per role group."""
    rows = []
    for category in LEDGER_CATEGORIES:
        cells = ledger.get(category, {})
        row: Dict[str, Any] = {"category": category, "category_name": category_name(category)}
        hours = 0.0
        cost = 0.0
        for group in ROLE_GROUPS:
            cell = cells.get(group, Totals())
            row[f"{group} Hours"] = cell.total_hours
            row[f"{group} Cost"] = cell.total_cost
            hours += cell.total_hours
            cost += cell.total_cost
        row["total_hours"] = hours
        row["total_cost"] = cost
        rows.append(row)

    frame = pd.DataFrame(rows)
    frame["average_hourly_rate"] = [
        safe_divide(c, h) for c, h in zip(frame["total_cost"], frame["total_hours"])
    ]
    return frame
