# utils/helpers.py
from __future__ import annotations

import logging
import math
import sys
import uuid
from datetime import datetime
from typing import Callable, Optional, Union

from .validators import parse_float

NumberLike = Union[float, int, str]
Clock = Callable[[], datetime]

_log = logging.getLogger(__name__)

_EPSILON = sys.float_info.epsilon


def local_now() -> datetime:
    """Timezone-aware 'now' in the host's local zone (default clock)."""
    return datetime.now().astimezone()


def now_iso(clock: Optional[Clock] = None) -> str:
    return (clock or local_now)().isoformat(timespec="seconds")


def new_id() -> str:
    return uuid.uuid4().hex


def safe_round(x: float) -> float:
    """
    Round to 2 decimal places, half-up, nudged by machine epsilon.

    Counteracts binary representation error (``0.1 + 0.2``) before it compounds
    across repeated currency/weight arithmetic. NaN and infinities pass through;
    callers guard upstream.
    """
    x = float(x)
    if math.isnan(x) or math.isinf(x):
        return x
    return math.floor((x + _EPSILON) * 100 + 0.5) / 100


def parse_amount(value: NumberLike) -> float:
    """
    Parse operator input into a rounded, finite number.

    Raises ValidationError (from parse_float) on anything non-numeric.
    """
    return safe_round(parse_float(value))


def _to_datetime(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def is_same_calendar_day(timestamp: Union[str, datetime], reference_now: datetime) -> bool:
    """
    True iff `timestamp` falls on the same calendar day as `reference_now`.

    Aware timestamps are converted into the reference's zone first (or the local
    zone when the reference is naive). Unparsable timestamps never match.
    """
    try:
        ts = _to_datetime(timestamp)
    except (TypeError, ValueError):
        _log.debug("is_same_calendar_day: unparsable timestamp %r", timestamp)
        return False

    if ts.tzinfo is not None:
        if reference_now.tzinfo is not None:
            ts = ts.astimezone(reference_now.tzinfo)
        else:
            ts = ts.astimezone().replace(tzinfo=None)
    return ts.date() == reference_now.date()


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    symbol: str = "",
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    On parse failure returns `sentinel` when given, else str(v).
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        return str(sentinel) if sentinel is not None else str(v)
    sign = "-" if x < 0 else ""
    return f"{sign}{symbol}{abs(x):,.{places}f}"
