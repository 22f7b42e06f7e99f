from __future__ import annotations

from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple

import pandas as pd

from casefees.utils import to_timestamp


FEE_ESTIMATE_PARAMETER_DEFAULTS: Dict[str, Any] = {
    "number_of_employees": 0,
    "number_of_creditors": 0,
    "number_of_shareholders": 0,
    "liquidation_committee": "no",
    "stakeholder_concerns_sip2": "no",
    "investigations_complexity": "standard",
    "antecedent_transactions_identified": "no",
    "public_interest": "low",
    "assets_realisations_complexity": "simple",
    "disputes_with_key_creditors": "no",
    "case_complexity_assessment": "simple",
}

FEE_BASIS_FLAGS = (
    ("fee_resolution_fixed", "Fixed Fee"),
    ("fee_resolution_time_costs", "Time Costs"),
    ("fee_resolution_percentage", "% of Realisations"),
)


def fee_basis(case: Mapping[str, Any]) -> str:
    """Describe the fee bases resolved for a case."""
    basis = [label for flag, label in FEE_BASIS_FLAGS if case.get(flag)]
    return ", ".join(basis) if basis else "Not Set"


def case_age(appointment_date: Any, today: Any = None) -> str:
    """Years and months since appointment, e.g. ``"1 Year, 3 Months"``."""
    start = to_timestamp(appointment_date)
    if start is None:
        return "N/A"
    end = to_timestamp(today) if today is not None else pd.Timestamp(date.today())
    years = end.year - start.year
    months = end.month - start.month
    if months < 0:
        years -= 1
        months += 12

    parts = []
    if years > 0:
        parts.append(f"{years} Year{'s' if years != 1 else ''}")
    if months > 0:
        parts.append(f"{months} Month{'s' if months != 1 else ''}")
    return ", ".join(parts) if parts else "Less than a month"


def case_parameters_with_defaults(case: Mapping[str, Any]) -> Dict[str, Any]:
    """Fee estimate parameter block with every field populated."""
    params = dict(case.get("fee_estimate") or {})
    for key, default in FEE_ESTIMATE_PARAMETER_DEFAULTS.items():
        params[key] = params.get(key) or default
    return params


def default_date_range(case: Mapping[str, Any], today: Any = None) -> Tuple[Optional[str], str]:
    """Ledger period from the appointment date up to today."""
    start = to_timestamp(case.get("appointment_date"))
    end = to_timestamp(today) if today is not None else pd.Timestamp(date.today())
    return (start.date().isoformat() if start is not None else None, end.date().isoformat())
