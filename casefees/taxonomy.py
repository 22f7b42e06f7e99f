"""Shared constants for fee estimates, time ledgers and WIP.

Every module that needs a category, a display name, a grade or a rate reads
it from here.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from casefees.utils import normalize_whitespace, safe_float


STATUTORY = "statutory"
REALISATION = "realisation"
INVESTIGATIONS = "investigations"
CREDITORS = "creditors"
EMPLOYEES = "employees"
TRADING = "trading"

CATEGORY_NAMES: Dict[str, str] = {
    STATUTORY: "STATUTORY AND ADMINISTRATIVE TASKS",
    REALISATION: "REALISATION OF ASSETS",
    INVESTIGATIONS: "INVESTIGATIONS",
    CREDITORS: "CREDITORS",
    EMPLOYEES: "EMPLOYEES",
    TRADING: "TRADING",
}

# Time ledger rows, in display order.
LEDGER_CATEGORIES: Tuple[str, ...] = (
    STATUTORY,
    REALISATION,
    INVESTIGATIONS,
    CREDITORS,
    EMPLOYEES,
    TRADING,
)

# Fee estimate grand totals never include trading.
FEE_ESTIMATE_CATEGORIES: Tuple[str, ...] = (
    STATUTORY,
    REALISATION,
    INVESTIGATIONS,
    CREDITORS,
    EMPLOYEES,
)

REPORT_CATEGORIES: Tuple[str, ...] = (
    STATUTORY,
    REALISATION,
    TRADING,
    INVESTIGATIONS,
    CREDITORS,
    EMPLOYEES,
)

TRADING_CASE_TYPES: Tuple[str, ...] = ("Administration",)

KEYWORD_GROUPS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (STATUTORY, ("admin", "planning", "meeting", "correspondence", "statutory", "filing", "reporting")),
    (REALISATION, ("asset", "realisation", "sale", "property", "retention of title")),
    (INVESTIGATIONS, ("investigation", "sip", "director", "pension", "financial records", "cdda")),
    (CREDITORS, ("creditor", "claims", "proof", "adjudication", "secured")),
    (EMPLOYEES, ("employee", "redundancy", "wages", "staff")),
    (TRADING, ("trading", "trade")),
)
DEFAULT_CATEGORY = STATUTORY

PARTNER = "Partner"
MANAGER = "Manager"
EXECUTIVE = "Executive"
SECRETARY = "Secretary"
RATE_GRADES: Tuple[str, ...] = (PARTNER, MANAGER, EXECUTIVE, SECRETARY)

GRADE_HOUR_FIELDS: Dict[str, str] = {
    PARTNER: "partner_hours",
    MANAGER: "manager_hours",
    EXECUTIVE: "executive_hours",
    SECRETARY: "secretary_hours",
}

IP_DIRECTORS = "IP Directors"
MANAGERS = "Managers"
ADMINISTRATORS = "Administrators"
ROLE_GROUPS: Tuple[str, ...] = (IP_DIRECTORS, MANAGERS, ADMINISTRATORS)

_ROLE_GRADES = {
    "admin": PARTNER,
    "partner": PARTNER,
    "manager": MANAGER,
    "secretary": SECRETARY,
}
_ROLE_GROUPS = {
    "admin": IP_DIRECTORS,
    "partner": IP_DIRECTORS,
    "manager": MANAGERS,
}


@dataclass(frozen=True)
class RateTable:
    """Hourly charge-out rate per grade, in pounds."""

    partner: float = 700.0
    manager: float = 500.0
    executive: float = 250.0
    secretary: float = 70.0

    def for_grade(self, grade: str) -> float:
        return float(getattr(self, grade.lower()))

    def as_dict(self) -> Dict[str, float]:
        return {grade: self.for_grade(grade) for grade in RATE_GRADES}


DEFAULT_RATES = RateTable()


@dataclass(frozen=True)
class Totals:
    total_hours: float = 0.0
    total_cost: float = 0.0

    def __add__(self, other: "Totals") -> "Totals":
        return Totals(self.total_hours + other.total_hours, self.total_cost + other.total_cost)

    @property
    def average_rate(self) -> float:
        if self.total_hours > 0:
            return self.total_cost / self.total_hours
        return 0.0

    def as_dict(self) -> Dict[str, float]:
        return {"total_hours": self.total_hours, "total_cost": self.total_cost}


def rates_from_settings(settings: Mapping[str, Any] | None) -> RateTable:
    """Build the rate table from the ``rates`` block of the settings file."""
    if not settings or not settings.get("rates"):
        return DEFAULT_RATES
    configured = settings["rates"]
    missing = [grade for grade in RATE_GRADES if grade not in configured]
    if missing:
        raise ValueError(f"Rate table is missing grades: {', '.join(missing)}")
    values = {grade.lower(): safe_float(configured[grade]) for grade in RATE_GRADES}
    negative = [grade for grade in RATE_GRADES if values[grade.lower()] < 0]
    if negative:
        raise ValueError(f"Rates must not be negative: {', '.join(negative)}")
    return RateTable(**values)


def trading_case_types(settings: Mapping[str, Any] | None) -> Tuple[str, ...]:
    if not settings or not settings.get("trading_case_types"):
        return TRADING_CASE_TYPES
    return tuple(str(v) for v in settings["trading_case_types"])


def categorize(description: Any) -> str:
    """Map a free-text task description to a category id."""
    text = description.lower() if isinstance(description, str) else ""
    for category, keywords in KEYWORD_GROUPS:
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def category_name(category: str) -> str:
    return CATEGORY_NAMES.get(category, str(category).upper())


def _role_key(role: Any) -> str:
    return normalize_whitespace(role).lower()


def grade_for_role(role: Any) -> str:
    """Rate grade used to cost time booked by a user with this directory role."""
    return _ROLE_GRADES.get(_role_key(role), EXECUTIVE)


def role_group_for_role(role: Any) -> str:
    """Ledger column for a user with this directory role."""
    return _ROLE_GROUPS.get(_role_key(role), ADMINISTRATORS)
