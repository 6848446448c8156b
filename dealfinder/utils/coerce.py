import math
from datetime import datetime
from typing import Optional

import pandas as pd


def to_float(v) -> Optional[float]:
    try:
        if v is None or v == "" or str(v).strip().lower() in ("null", "none", "nan"):
            return None
        result = float(v)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def to_str(v) -> str:
    return "" if v is None else str(v).strip()


def to_timestamp(v) -> Optional[pd.Timestamp]:
    """Parse a date-ish value to a UTC timestamp, ``None`` when unparseable."""
    if v is None or v == "":
        return None
    try:
        ts = pd.to_datetime(v, errors="coerce", utc=True)
    except (TypeError, ValueError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts


def finite_or_zero(v) -> float:
    f = to_float(v)
    return 0.0 if f is None else f


def round_half_up(v) -> int:
    """Round to the nearest integer with .5 going up; non-finite input gives 0."""
    f = to_float(v)
    if f is None:
        return 0
    return int(math.floor(f + 0.5))


def to_datetime(v) -> Optional[datetime]:
    ts = to_timestamp(v)
    return None if ts is None else ts.to_pydatetime()


def as_utc(v) -> pd.Timestamp:
    """``pd.Timestamp`` in UTC; naive values are taken to already be UTC."""
    ts = pd.Timestamp(v)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
