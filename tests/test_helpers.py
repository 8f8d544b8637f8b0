# tests/test_helpers.py
import math
from datetime import datetime, timezone

import pytest

from retail_ops.errors import ValidationError
from retail_ops.utils.helpers import fmt_money, is_same_calendar_day, parse_amount, safe_round
from retail_ops.utils.validators import parse_float, require_positive, require_text, try_parse_float

REF = datetime(2026, 3, 14, 10, 30, tzinfo=timezone.utc)


# =========================
# safe_round
# =========================
@pytest.mark.parametrize(
    "raw, expected",
    [
        (0.1 + 0.2, 0.3),
        (1.005, 1.01),
        (320 / 90 * 10, 35.56),
        (114.44, 114.44),
        (-1.234, -1.23),
        (0, 0.0),
    ],
)
def test_safe_round_two_places_half_up(raw, expected):
    assert safe_round(raw) == expected


def test_safe_round_is_idempotent():
    for raw in (0.1 + 0.2, 1.005, 3.5555555, 99.999):
        once = safe_round(raw)
        assert safe_round(once) == once


def test_safe_round_passes_nan_and_inf_through():
    assert math.isnan(safe_round(float("nan")))
    assert safe_round(float("inf")) == float("inf")


def test_parse_amount_rounds_and_rejects_garbage():
    assert parse_amount("12.346") == 12.35
    assert parse_amount(" 7 ") == 7.0
    with pytest.raises(ValidationError):
        parse_amount("abc")


# =========================
# Validators
# =========================
def test_try_parse_float_rejects_non_numbers():
    assert try_parse_float("1.5") == (True, 1.5)
    assert try_parse_float(None) == (False, None)
    assert try_parse_float(True) == (False, None)
    assert try_parse_float("nan") == (False, None)
    assert try_parse_float(float("inf")) == (False, None)


def test_require_helpers_raise_validation_error():
    with pytest.raises(ValidationError):
        parse_float("")
    with pytest.raises(ValidationError):
        require_positive(0, "Weight")
    with pytest.raises(ValidationError):
        require_text("   ", "Name")
    assert require_text("  Blue Dream ", "Name") == "Blue Dream"


# =========================
# Calendar-day predicate
# =========================
@pytest.mark.parametrize(
    "ts, expected",
    [
        ("2026-03-14T00:00:00+00:00", True),
        ("2026-03-14T23:59:59+00:00", True),
        ("2026-03-14T01:00:00Z", True),
        ("2026-03-13T23:59:59+00:00", False),
        ("2026-03-15T00:00:00+00:00", False),
        # 23:30 in UTC-5 is already the 15th in UTC
        ("2026-03-14T23:30:00-05:00", False),
        ("not a timestamp", False),
        ("", False),
    ],
)
def test_is_same_calendar_day(ts, expected):
    assert is_same_calendar_day(ts, REF) is expected


def test_is_same_calendar_day_accepts_datetime():
    assert is_same_calendar_day(datetime(2026, 3, 14, 22, 0, tzinfo=timezone.utc), REF)


# =========================
# Formatting
# =========================
def test_fmt_money():
    assert fmt_money(1234.5) == "1,234.50"
    assert fmt_money(-3, symbol="$") == "-$3.00"
    assert fmt_money("oops", sentinel="—") == "—"
