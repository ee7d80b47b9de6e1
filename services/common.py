"""
Common utilities and shared functions.
Symbol normalization, market type inference, and decimal rounding rules.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

logger = logging.getLogger(__name__)

# Scale of every stored quantity/amount and of intermediate lot math
INTERNAL_SCALE = Decimal("0.000001")
# Display scale for money (average price, dividend amounts)
MONEY_SCALE = Decimal("0.01")
# Scale of ratios (risk/reward, R-multiple)
RATIO_SCALE = Decimal("0.0001")

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    """Convert ints, strings and floats to Decimal without binary float noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_internal(value) -> Decimal:
    """Round to the 6 decimal places used for stored quantities and costs (half-up)."""
    return to_decimal(value).quantize(INTERNAL_SCALE, rounding=ROUND_HALF_UP)


def round_money(value) -> Decimal:
    """Round to 2 decimal places, half-up."""
    return to_decimal(value).quantize(MONEY_SCALE, rounding=ROUND_HALF_UP)


def round_ratio(value) -> Decimal:
    """Round to 4 decimal places, half-up."""
    return to_decimal(value).quantize(RATIO_SCALE, rounding=ROUND_HALF_UP)


def round_whole(value) -> Decimal:
    """Round to an integral amount, half-up."""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def normalize_symbol(symbol: str, market_type: str) -> str:
    """
    Convert a stock symbol to yfinance format based on market type.

    Args:
        symbol: Stock symbol (e.g., "NVDA", "0700", "600519", "005930")
        market_type: Market type ("US", "HK", "CN", "KR")

    Returns:
        Properly formatted yfinance symbol

    Examples:
        >>> normalize_symbol("NVDA", "US")
        'NVDA'
        >>> normalize_symbol("0700", "HK")
        '0700.HK'
        >>> normalize_symbol("600519", "CN")
        '600519.SS'
        >>> normalize_symbol("005930", "KR")
        '005930.KS'
    """
    if market_type == "US":
        return symbol
    elif market_type == "HK":
        if not symbol.endswith(".HK"):
            return f"{symbol}.HK"
        return symbol
    elif market_type == "CN":
        if symbol.endswith((".SS", ".SZ")):
            return symbol
        return f"{symbol}.SS"
    elif market_type == "KR":
        if symbol.endswith((".KS", ".KQ")):
            return symbol
        return f"{symbol}.KS"
    else:
        logger.warning(f"Unknown market type: {market_type}, returning symbol as-is")
        return symbol


def infer_market_type(symbol: str) -> str:
    """
    Infer market type from symbol format.

    Args:
        symbol: Stock symbol

    Returns:
        Inferred market type ("US", "HK", "CN" or "KR")
    """
    if symbol.endswith(".HK"):
        return "HK"
    if symbol.endswith((".SS", ".SZ")):
        return "CN"
    if symbol.endswith((".KS", ".KQ")):
        return "KR"
    # Bare numeric codes: 6 digits starting with 0 are Korean, other 6 digits Chinese
    if len(symbol) == 6 and symbol.isdigit():
        return "KR" if symbol.startswith("0") else "CN"
    if len(symbol) == 4 and symbol.isdigit():
        return "HK"
    return "US"


def percent(part: Decimal, whole: Decimal) -> Optional[Decimal]:
    """part / whole as a percentage rounded to 2 dp, None when whole is zero."""
    if not whole:
        return None
    return round_money(part / whole * 100)
