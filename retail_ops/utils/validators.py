# utils/validators.py
import math

from ..errors import ValidationError


def non_empty(text: str) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to a finite float.

    Returns:
        (ok: bool, value: float|None)

    ok == False means parsing failed (or produced NaN/inf) and value is None.
    """
    if x is None or isinstance(x, bool):
        return False, None
    try:
        val = float(str(x).strip()) if isinstance(x, str) else float(x)
    except (TypeError, ValueError):
        return False, None
    if math.isnan(val) or math.isinf(val):
        return False, None
    return True, val


def parse_float(x) -> float:
    """
    Strict parse to float; raises ValidationError with a clear message on failure.
    """
    ok, val = try_parse_float(x)
    if not ok:
        raise ValidationError(f"Could not parse '{x}' as a number.")
    return val  # type: ignore[return-value]


def require_non_negative(x, field_label: str) -> float:
    val = parse_float(x)
    if val < 0:
        raise ValidationError(f"{field_label} cannot be negative.")
    return val


def require_positive(x, field_label: str) -> float:
    val = parse_float(x)
    if val <= 0:
        raise ValidationError(f"{field_label} must be greater than zero.")
    return val


def require_text(value, field_label: str) -> str:
    if not non_empty(value):
        raise ValidationError(f"{field_label} cannot be empty.")
    return str(value).strip()


def require_text_list(values, field_label: str) -> tuple:
    """
    Strip, drop blanks and de-duplicate a list of labels (first one wins).
    A bare string is rejected rather than split into characters.
    """
    if values is None:
        return ()
    if isinstance(values, (str, bytes)):
        raise ValidationError(f"{field_label} must be a list of text values, not a single string.")
    try:
        items = list(values)
    except TypeError:
        raise ValidationError(f"{field_label} must be a list of text values.") from None
    if any(not isinstance(v, str) for v in items):
        raise ValidationError(f"{field_label} may only contain text values.")
    return tuple(dict.fromkeys(v.strip() for v in items if v.strip()))
