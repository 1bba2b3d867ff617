"""
common.utils

Block range and fixed point helpers shared by the scanners and reports.
"""
from decimal import Decimal, InvalidOperation

TOKEN_DECIMALS = 18


def chunked(start: int, end: int, size: int):
    """
    Yield inclusive (start, end) windows of at most `size` blocks.
    """
    if size < 1:
        raise ValueError("window size must be positive")
    cur = start
    while cur <= end:
        sub_end = min(cur + size - 1, end)
        yield (cur, sub_end)
        cur = sub_end + 1


def format_fixed_point(raw: int, decimals: int = TOKEN_DECIMALS) -> str:
    """
    Render an integer base unit amount as a fixed point decimal string,
    e.g. 1500000000000000000 -> "1.500000000000000000".
    """
    sign = "-" if raw < 0 else ""
    digits = str(abs(int(raw))).rjust(decimals + 1, "0")
    return f"{sign}{digits[:-decimals]}.{digits[-decimals:]}"


def to_decimal(value) -> Decimal:
    """Parse a persisted balance (fixed point string or int) without going through float."""
    if isinstance(value, bool):
        raise ValueError(f"not a balance: {value!r}")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"not a balance: {value!r}") from e


def commify(value) -> str:
    """
    Thousands separators on the integer part, trailing fraction zeros trimmed.
    "1234.500" -> "1,234.5", "5" -> "5.0"
    """
    s = str(value).strip()
    neg = s.startswith("-")
    if neg:
        s = s[1:]
    whole, _, frac = s.partition(".")
    if not (whole or frac) or not (whole + frac).isdigit():
        raise ValueError(f"bad formatted number: {value!r}")
    frac = frac.rstrip("0") or "0"
    return f"{'-' if neg else ''}{int(whole or 0):,}.{frac}"
