# wims/utils/parsers.py
from __future__ import annotations

import math
from typing import Any, Optional

from flask import request


def json_body() -> dict:
    """Request payload as a dict: JSON first, form fields as a fallback."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def parse_float(val) -> Optional[float]:
    # "nan" and "inf" parse as floats but are never valid amounts.
    try:
        if val is None or str(val).strip() == "":
            return None
        value = float(val)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def parse_int(val) -> Optional[int]:
    try:
        if val is None or str(val).strip() == "":
            return None
        return int(val)
    except (TypeError, ValueError):
        return None


def parse_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    if val is None:
        return False
    return str(val).strip().lower() in {"1", "true", "yes", "on", "y"}


def clean_str(val) -> Optional[str]:
    """Trim; empty becomes None."""
    if val is None:
        return None
    s = str(val).strip()
    return s or None


def first_present(data: dict, *keys: str) -> Any:
    # Aliased payload fields: the first key that is present and non-empty wins.
    for key in keys:
        value = data.get(key)
        if value is not None and str(value).strip() != "":
            return value
    return None
