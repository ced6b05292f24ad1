"""Shared utilities used across the conversation engine."""

import re

CURRENCY_SYMBOLS = {"USD": "$", "CAD": "$", "AUD": "$", "EUR": "€", "GBP": "£"}


def normalize_phone(value: str) -> str:
    """Normalize a North American phone number to ``NNN-NNN-NNNN``.

    A leading country code of 1 is dropped. Anything that does not reduce
    to ten digits is returned as bare digits so validation can reject it.

    Examples:
        >>> normalize_phone("(805) 555-0142")
        '805-555-0142'
        >>> normalize_phone("+1 805.555.0142")
        '805-555-0142'
    """
    digits = re.sub(r"[^\d]", "", value.strip())
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10:
        return digits
    return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"


def format_currency(value: float, currency: str = "USD") -> str:
    """Format an amount with two decimals, e.g. ``$283.50``.

    Examples:
        >>> format_currency(283.5)
        '$283.50'
        >>> format_currency(1200, "CHF")
        '1,200.00 CHF'
    """
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{value:,.2f} {currency.upper()}"
    return f"{symbol}{value:,.2f}"
