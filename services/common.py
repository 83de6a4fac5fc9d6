"""
Common utilities and shared functions.
Boundary parsing of user-entered text and symbol normalization for quote lookups.
"""

import math
import logging
from datetime import date, datetime
from typing import Optional, Any

from services.errors import InvalidInput

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str, market_type: str) -> str:
    """
    Convert a stock code to yfinance format based on market type.

    Args:
        symbol: Stock code (e.g., "7203", "NVDA", "0700", "600519")
        market_type: Market type ("JP", "US", "HK", "CN")

    Returns:
        Properly formatted yfinance symbol

    Examples:
        >>> normalize_symbol("7203", "JP")
        '7203.T'
        >>> normalize_symbol("NVDA", "US")
        'NVDA'
        >>> normalize_symbol("0700", "HK")
        '0700.HK'
    """
    symbol = symbol.strip().upper()
    if market_type == "US":
        return symbol
    elif market_type == "JP":
        if not symbol.endswith(".T"):
            return f"{symbol}.T"
        return symbol
    elif market_type == "HK":
        if not symbol.endswith(".HK"):
            return f"{symbol}.HK"
        return symbol
    elif market_type == "CN":
        if symbol.endswith((".SS", ".SZ")):
            return symbol
        return f"{symbol}.SS"
    else:
        logger.warning(f"Unknown market type: {market_type}, returning symbol as-is")
        return symbol


def parse_quantity(value: Any, allow_zero: bool = False) -> int:
    """
    Parse a unit count entered as text or number.

    Args:
        value: Text or number from a form
        allow_zero: Accept 0 (holding counts) as well as positive counts (trades)

    Raises:
        InvalidInput: if the value is not a whole number in range
    """
    if isinstance(value, bool):
        raise InvalidInput(f"Quantity must be a number, got {value!r}")
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip() if value is not None else ""
        try:
            as_float = float(text)
        except ValueError:
            raise InvalidInput(f"Quantity must be a number, got {value!r}")
        if not math.isfinite(as_float) or not as_float.is_integer():
            raise InvalidInput(f"Quantity must be a whole number, got {value!r}")
        number = int(as_float)
    if number < 0 or (number == 0 and not allow_zero):
        bound = "zero or more" if allow_zero else "greater than zero"
        raise InvalidInput(f"Quantity must be {bound}, got {number}")
    return number


def parse_amount(value: Any, allow_zero: bool = True, allow_negative: bool = False) -> float:
    """
    Parse a monetary amount. Blank text counts as zero.

    Args:
        value: Text or number from a form
        allow_zero: If False, zero is rejected as well as negatives
        allow_negative: Accept signed figures such as a realized loss

    Raises:
        InvalidInput: on non-numeric, NaN/inf or out-of-range values
    """
    if isinstance(value, bool):
        raise InvalidInput(f"Amount must be a number, got {value!r}")
    if value is None or (isinstance(value, str) and not value.strip()):
        number = 0.0
    else:
        try:
            number = float(str(value).strip().replace(",", ""))
        except ValueError:
            raise InvalidInput(f"Amount must be a number, got {value!r}")
    if not math.isfinite(number):
        raise InvalidInput(f"Amount must be finite, got {value!r}")
    if allow_negative:
        return number
    if number < 0 or (number == 0 and not allow_zero):
        bound = "zero or more" if allow_zero else "greater than zero"
        raise InvalidInput(f"Amount must be {bound}, got {number}")
    return number


def parse_date(value: Any, default: Optional[date] = None) -> Optional[date]:
    """
    Parse an ISO date (YYYY-MM-DD). Blank input returns ``default``.

    Raises:
        InvalidInput: if non-blank input is not a valid date
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    parsed = coerce_date(value)
    if parsed is None:
        raise InvalidInput(f"Date must be YYYY-MM-DD, got {value!r}")
    return parsed


def coerce_date(value: Any) -> Optional[date]:
    """Lenient date conversion; returns None for missing or malformed values."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None
