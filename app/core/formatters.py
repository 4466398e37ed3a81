"""
Numeric helpers shared by every calculator.
Spreadsheet-compatible rounding, safe ratios and pt-BR currency/percent conversion.
All functions are total: they never raise on malformed input.
"""
import math
import re
from typing import Any, Optional

_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

CURRENCY_SYMBOL = "R$"
_NBSP = "\u00a0"


def round_half_up(value: float, decimals: int = 0) -> float:
    """
    Rounds halves towards positive infinity, like the spreadsheet does.
    Python's round() uses banker's rounding and must not be used for money here.
    """
    if not math.isfinite(value):
        return value
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def safe_divide(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """Division that degrades to `fallback` on a zero denominator or a non-finite result."""
    if denominator == 0:
        return fallback
    result = numerator / denominator
    if not math.isfinite(result):
        return fallback
    return result


def _leading_number(text: str) -> Optional[float]:
    match = _NUMBER_PREFIX.match(text)
    if not match:
        return None
    number = float(match.group())
    return number if math.isfinite(number) else None


def parse_currency_input(value: Any) -> float:
    """
    Parses user-typed BRL amounts ("R$ 120.000,00", "1.500", "99,9") into floats.
    Dots are thousands separators and the first comma is the decimal mark.
    Returns 0.0 for empty or unparseable input.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else 0.0

    cleaned = re.sub(r"[^0-9.,]", "", str(value)).strip()
    if not cleaned:
        return 0.0

    normalized = cleaned.replace(".", "").replace(",", ".", 1)
    number = _leading_number(normalized)
    return number if number is not None else 0.0


def parse_percent_input(value: Any, default: float = 0.0) -> float:
    """Parses "2,5" or "2.5" into 2.5, falling back to `default` on garbage."""
    if value is None:
        return default
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else default

    text = str(value).replace(",", ".").strip()
    if not text:
        return default
    number = _leading_number(text)
    return number if number is not None else default


def _pt_br_number(value: float, decimals: int) -> str:
    # 1,234.56 -> 1.234,56
    grouped = f"{value:,.{decimals}f}"
    return grouped.translate(str.maketrans({",": ".", ".": ","}))


def format_currency(value: float) -> str:
    """Formats a value as Brazilian Real, e.g. 120000 -> 'R$ 120.000,00'."""
    if not math.isfinite(value):
        value = 0.0
    amount = round_half_up(abs(value), 2)
    sign = "-" if value < 0 and amount != 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{_NBSP}{_pt_br_number(amount, 2)}"


def format_percentage(value: float) -> str:
    """Formats percentage points with one decimal, e.g. 15 -> '15,0%'."""
    if not math.isfinite(value):
        value = 0.0
    amount = round_half_up(abs(value), 1)
    sign = "-" if value < 0 and amount != 0 else ""
    return f"{sign}{_pt_br_number(amount, 1)}%"
