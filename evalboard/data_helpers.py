"""General data processing and formatting utilities."""

import csv
import io
import math
from datetime import datetime, timezone
from typing import Any


def maybe_load_dotenv() -> None:
    """Attempt to load environment variables from .env file."""
    try:
        from dotenv import load_dotenv
        load_dotenv(override=False)
    except Exception:
        return


def iso_utc(dt: datetime) -> str:
    """Convert a datetime to ISO format in UTC."""
    return dt.astimezone(timezone.utc).isoformat()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_float(x: Any) -> float | None:
    """Safely convert a value to a finite float."""
    if x is None or isinstance(x, bool):
        return None
    try:
        out = float(x)
    except Exception:
        return None
    return out if math.isfinite(out) else None


def as_int(x: Any) -> int | None:
    """Safely convert a value (including numeric strings like "12" or "12.0") to int."""
    f = as_float(x)
    if f is None:
        return None
    return int(f)


def as_str(x: Any) -> str | None:
    """Strip a value to a string, mapping blanks to None."""
    if x is None:
        return None
    out = str(x).strip()
    return out or None


def parse_dt(raw: Any) -> datetime | None:
    """Parse an ISO string or epoch (seconds or milliseconds) into an aware datetime."""
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        try:
            ts = float(raw)
            if ts > 10_000_000_000:
                ts = ts / 1000.0
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except Exception:
            return None
    if not isinstance(raw, str) or not raw.strip():
        return None
    s = raw.strip().replace(" ", "T")
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def ms_to_seconds(value: float | None) -> float | None:
    """Convert milliseconds to seconds rounded to 2 decimals."""
    if value is None:
        return None
    return round(value / 1000.0, 2)


def csv_bytes_any(rows: list[dict[str, Any]]) -> bytes:
    """Convert arbitrary dict rows to CSV bytes."""
    if not rows:
        return b""
    fields: list[str] = []
    for r in rows:
        for k in r.keys():
            if k not in fields:
                fields.append(k)
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fields)
    writer.writeheader()
    for r in rows:
        writer.writerow({k: r.get(k) for k in fields})
    return buf.getvalue().encode("utf-8")


def init_session_state(defaults: dict[str, Any]) -> None:
    """Initialize multiple session state keys with defaults if not already set.

    Example:
        init_session_state({"compare_selected": [], "report_current_key": None})
    """
    import streamlit as st
    for key, default in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = default
