from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from casefees.taxonomy import (
    DEFAULT_RATES,
    GRADE_HOUR_FIELDS,
    RateTable,
    categorize,
    grade_for_role,
    role_group_for_role,
)
from casefees.utils import (
    get_logger,
    normalize_whitespace,
    safe_to_numeric,
    standardize_email,
    to_timestamp,
    truthy_flag,
)


TIMESHEET_COLUMNS = [
    "case_reference",
    "user_email",
    "task_description",
    "duration_seconds",
    "date",
    "status",
]
APPROVED = "approved"
ENTRY_FIELDS = list(GRADE_HOUR_FIELDS.values()) + ["notes"]


def parse_json_list(raw: Any, label: str) -> List[Any]:
    """Accept a JSON-encoded list or an already parsed one."""
    logger = get_logger()
    if raw is None:
        return []
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            logger.error("Could not parse %s: %s", label, exc)
            return []
    if isinstance(raw, (list, tuple)):
        return list(raw)
    logger.warning("Ignoring %s of type %s", label, type(raw).__name__)
    return []


def parse_activities(template_data: Any) -> List[Dict[str, str]]:
    """Normalise template activities to ``{id, category, label}`` records."""
    activities = []
    for item in parse_json_list(template_data, "template data"):
        if not isinstance(item, Mapping):
            continue
        activities.append(
            {
                "id": normalize_whitespace(item.get("id")),
                "category": normalize_whitespace(item.get("category")).lower(),
                "label": normalize_whitespace(item.get("activity") or item.get("label")),
            }
        )
    return activities


def select_default_template(templates: Iterable[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    """Return the template flagged as default, else the first one."""
    templates = list(templates or [])
    for template in templates:
        if truthy_flag(template.get("is_default")):
            return template
    return templates[0] if templates else None


def parse_fee_estimate_data(raw: Any) -> Dict[str, Dict[str, Any]]:
    """Turn a stored ``fee_estimate_data`` blob into entries keyed by activity id."""
    entries: Dict[str, Dict[str, Any]] = {}
    for item in parse_json_list(raw, "fee estimate data"):
        if not isinstance(item, Mapping) or item.get("id") is None:
            continue
        entries[normalize_whitespace(item["id"])] = {field: item.get(field) for field in ENTRY_FIELDS}
    return entries


def build_directory(users: Iterable[Mapping[str, Any]] | None) -> Dict[str, Dict[str, str]]:
    """Index directory users by standardized e-mail."""
    directory: Dict[str, Dict[str, str]] = {}
    for user in users or []:
        key = standardize_email(user.get("email"))
        if not key:
            continue
        directory[key] = {
            "email": normalize_whitespace(user.get("email")),
            "full_name": normalize_whitespace(user.get("full_name")),
            "role": normalize_whitespace(user.get("role")).lower(),
        }
    return directory


def _resolve_directory(directory: Any) -> Dict[str, Dict[str, str]]:
    if isinstance(directory, Mapping):
        return directory
    return build_directory(directory)


def prepare_timesheet(
    entries: Iterable[Mapping[str, Any]] | pd.DataFrame,
    directory: Any = None,
    rates: RateTable = DEFAULT_RATES,
    categorizer: Callable[[Any], str] = categorize,
) -> pd.DataFrame:
    """Normalise raw timesheet entries and cost each one."""
    if isinstance(entries, pd.DataFrame):
        df = entries.reindex(columns=TIMESHEET_COLUMNS).copy()
    else:
        df = pd.DataFrame(list(entries or []), columns=TIMESHEET_COLUMNS)
    users = _resolve_directory(directory)

    df["case_reference"] = df["case_reference"].apply(normalize_whitespace)
    df["user_email"] = df["user_email"].apply(normalize_whitespace)
    df["user_key"] = df["user_email"].apply(standardize_email)
    df["task_description"] = df["task_description"].apply(normalize_whitespace)
    df["status"] = df["status"].apply(lambda v: normalize_whitespace(v).lower())
    df["entry_date"] = pd.to_datetime(df["date"].apply(to_timestamp))

    seconds = safe_to_numeric(df["duration_seconds"]).astype(float).replace([np.inf, -np.inf], np.nan)
    df["hours"] = (seconds.clip(lower=0).fillna(0) / 3600).astype(float)

    df["resolved_user"] = df["user_key"].isin(list(users))
    df["role"] = df["user_key"].map(lambda key: users.get(key, {}).get("role", ""))
    df["user_name"] = [
        users.get(key, {}).get("full_name") or email
        for key, email in zip(df["user_key"], df["user_email"])
    ]
    df["grade"] = df["role"].apply(grade_for_role)
    df["role_group"] = df["role"].apply(role_group_for_role)
    df["rate"] = df["grade"].map(rates.as_dict()).astype(float)
    df["cost"] = df["hours"] * df["rate"]
    df["category"] = df["task_description"].apply(categorizer)
    return df


def filter_timesheet(
    df: pd.DataFrame,
    case_reference: Any = None,
    date_from: Any = None,
    date_to: Any = None,
) -> pd.DataFrame:
    """Keep approved rows for the case inside the inclusive date range."""
    mask = df["status"].eq(APPROVED)
    reference = normalize_whitespace(case_reference)
    if reference:
        mask &= df["case_reference"].eq(reference)

    start = to_timestamp(date_from)
    end = to_timestamp(date_to)
    if start is not None and end is not None:
        mask &= df["entry_date"].notna() & (df["entry_date"] >= start) & (df["entry_date"] <= end)

    return df[mask].copy()


def prepare_filtered_timesheet(
    entries: Iterable[Mapping[str, Any]] | pd.DataFrame,
    directory: Any = None,
    date_from: Any = None,
    date_to: Any = None,
    case_reference: Any = None,
    rates: RateTable = DEFAULT_RATES,
    categorizer: Callable[[Any], str] = categorize,
) -> pd.DataFrame:
    prepared = prepare_timesheet(entries, directory, rates=rates, categorizer=categorizer)
    return filter_timesheet(prepared, case_reference, date_from, date_to)
