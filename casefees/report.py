from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import pandas as pd

from casefees.fee_estimate import Entries, category_totals
from casefees.taxonomy import (
    DEFAULT_RATES,
    REPORT_CATEGORIES,
    TRADING,
    TRADING_CASE_TYPES,
    RateTable,
    category_name,
)
from casefees.utils import safe_divide


@dataclass
class BlendedRateReport:
    categories: List[Dict[str, Any]] = field(default_factory=list)
    grand_total_hours: float = 0.0
    grand_total_cost: float = 0.0

    @property
    def grand_average_hourly_cost(self) -> float:
        return safe_divide(self.grand_total_cost, self.grand_total_hours)


def includes_trading(case_type: Any, trading_types: Sequence[str] = TRADING_CASE_TYPES) -> bool:
    return case_type in trading_types


def build_report(
    activities: Iterable[Mapping[str, Any]],
    fee_entries: Entries,
    case_type: Any,
    rates: RateTable = DEFAULT_RATES,
    trading_types: Sequence[str] = TRADING_CASE_TYPES,
) -> BlendedRateReport:
    """SIP9 time analysis: fee estimate hours, cost and blended rate per category."""
    activities = list(activities)
    report = BlendedRateReport()
    for category in REPORT_CATEGORIES:
        if category == TRADING and not includes_trading(case_type, trading_types):
            continue
        totals = category_totals(category, activities, fee_entries, rates)
        report.categories.append(
            {
                "category": category,
                "name": category_name(category),
                "total_hours": totals.total_hours,
                "total_cost": totals.total_cost,
                "average_hourly_cost": safe_divide(totals.total_cost, totals.total_hours),
            }
        )
        report.grand_total_hours += totals.total_hours
        report.grand_total_cost += totals.total_cost
    return report


def report_frame(report: BlendedRateReport) -> pd.DataFrame:
    """Report rows followed by a TOTAL row."""
    rows = [dict(row) for row in report.categories]
    rows.append(
        {
            "category": "",
            "name": "TOTAL",
            "total_hours": report.grand_total_hours,
            "total_cost": report.grand_total_cost,
            "average_hourly_cost": report.grand_average_hourly_cost,
        }
    )
    return pd.DataFrame(rows, columns=["category", "name", "total_hours", "total_cost", "average_hourly_cost"])
