from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List

import numpy as np
import pandas as pd
import yaml
from rapidfuzz import fuzz, process


LOGGER_NAME = "casefees"
DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"


def get_logger() -> logging.Logger:
    """Create or return a module-level logger."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def load_settings(path: str | Path = DEFAULT_SETTINGS_PATH) -> Dict[str, Any]:
    """Load YAML settings from disk."""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def normalize_whitespace(value: Any) -> str:
    """Collapse whitespace to single spaces and strip ends."""
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return ""
    text = str(value)
    return " ".join(text.split()).strip()


def standardize_email(value: Any) -> str:
    """Standardize e-mail addresses for directory joins."""
    return normalize_whitespace(value).lower()


def truthy_flag(value: Any, truthy_values: Iterable[Any] = ("TRUE", "YES", "Y", "1", True, 1)) -> bool:
    """Evaluate whether a stored flag should be treated as set."""
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return False
    str_val = str(value).strip().upper()
    for item in truthy_values:
        if isinstance(item, str):
            if str_val == item.strip().upper():
                return True
        else:
            if value == item:
                return True
    return False


def safe_float(value: Any) -> float:
    """Parse a user-entered number, treating blanks and junk as zero."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not np.isfinite(number):
        return 0.0
    return number


def safe_hours(value: Any) -> float:
    """Parse an hours field; negative values count as zero."""
    return max(safe_float(value), 0.0)


def safe_to_numeric(series: pd.Series) -> pd.Series:
    """Convert a Series to numeric values, coercing errors to NaN."""
    return pd.to_numeric(series, errors="coerce")


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, returning zero when the denominator is not positive."""
    if denominator > 0:
        return float(numerator / denominator)
    return 0.0


def to_timestamp(value: Any) -> pd.Timestamp | None:
    """Parse a date-like value to a midnight Timestamp, or None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    if getattr(parsed, "tzinfo", None) is not None:
        parsed = parsed.tz_localize(None)
    return parsed.normalize()


def write_json(path: str | Path, payload: Dict[str, Any]) -> None:
    """Write a JSON payload to disk."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=str)


def fuzzy_email_suggestions(
    unresolved: Iterable[str], known: Iterable[str], limit: int = 10
) -> List[Dict[str, Any]]:
    """Return fuzzy match suggestions for e-mails missing from the directory."""
    suggestions = []
    known_list = sorted({k for k in known if k})
    if not known_list:
        return suggestions
    for email in sorted({e for e in unresolved if e})[:limit]:
        match = process.extractOne(email, known_list, scorer=fuzz.WRatio)
        if match:
            suggestions.append({"email": email, "candidate": match[0], "score": match[1]})
    return suggestions
