"""
Money Utilities - Safe Decimal operations for monetary values.

Prices are stored as plain JSON numbers; all arithmetic on them goes through
Decimal so float prices (e.g. 12.9) add up without drift.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Union

Number = Union[str, int, float, Decimal]

# Default precision for money operations (2 decimal places)
MONEY_PRECISION = Decimal("0.01")

# Currencies displayed without minor units
INTEGER_CURRENCIES = frozenset({"THB", "JPY"})

CURRENCY_SYMBOLS = {
    "THB": "฿",
    "USD": "$",
    "EUR": "€",
    "JPY": "¥",
}


def to_decimal(value: Union[Number, None]) -> Decimal:
    """
    Convert any value to Decimal safely.

    Args:
        value: Value to convert (str, int, float, Decimal, or None)

    Returns:
        Decimal representation of the value, or Decimal("0") if None/invalid
    """
    if value is None:
        return Decimal("0")

    if isinstance(value, Decimal):
        return value

    try:
        # Go through str() so 0.1 stays 0.1 instead of its binary expansion
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0")


def round_money(value: Number, to_int: bool = False) -> Decimal:
    """Round monetary value to 2 places, or to a whole unit when to_int is set."""
    precision = Decimal("1") if to_int else MONEY_PRECISION
    return to_decimal(value).quantize(precision, rounding=ROUND_HALF_UP)


def multiply(value: Number, factor: Number) -> Decimal:
    """Safe multiplication of monetary value by a factor."""
    return to_decimal(value) * to_decimal(factor)


def total(values: Iterable[Number]) -> Decimal:
    """Sum monetary values exactly."""
    result = Decimal("0")
    for value in values:
        result += to_decimal(value)
    return result


def to_json_number(value: Number) -> Union[int, float]:
    """
    Convert a Decimal back to a JSON number.

    Integral amounts become int so 300 does not turn into 300.0.
    """
    decimal_value = to_decimal(value)
    if decimal_value == decimal_value.to_integral_value():
        return int(decimal_value)
    return float(decimal_value)


def format_money(value: Number, currency: str = "THB") -> str:
    """
    Format monetary value with currency symbol.

    Args:
        value: Value to format
        currency: Currency code (THB, USD, EUR, ...)

    Returns:
        Formatted string with currency symbol, e.g. "฿1,250"
    """
    symbol = CURRENCY_SYMBOLS.get(currency, currency)

    if currency in INTEGER_CURRENCIES and to_decimal(value) == round_money(value, to_int=True):
        formatted = f"{int(round_money(value, to_int=True)):,}"
    else:
        formatted = f"{round_money(value):,.2f}"

    if currency in CURRENCY_SYMBOLS:
        return f"{symbol}{formatted}"
    return f"{formatted} {symbol}"
