"""Currency-related utilities: minor units and formatting.

The ledger never converts between currencies. Amounts are integer minor
units end to end; conversion to a decimal display string happens only here.
"""

import os

from utils.errors import CurrencyMismatchError


DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")

# Number of decimal places in each currency's minor unit
CURRENCY_EXPONENTS = {
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "JPY": 0,
    "CAD": 2,
    "CNY": 2,
    "HKD": 2,
    "INR": 2,
    "KRW": 0
}

# Currency symbols for formatting
CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "CA$",
    "CNY": "¥",
    "HKD": "HK$",
    "INR": "₹",
    "KRW": "₩"
}

SUPPORTED_CURRENCIES = list(CURRENCY_EXPONENTS.keys())


def format_currency(amount_minor: int, currency: str) -> str:
    """
    Format an amount in minor units as a currency string with symbol.

    Args:
        amount_minor: Amount in minor units (e.g., 1234 for $12.34)
        currency: Currency code (e.g., "USD", "JPY")

    Returns:
        Formatted string with symbol (e.g., "$12.34", "-¥500")
    """
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    exponent = CURRENCY_EXPONENTS.get(currency, 2)
    sign = "-" if amount_minor < 0 else ""
    whole, frac = divmod(abs(amount_minor), 10 ** exponent)

    if exponent == 0:
        return f"{sign}{symbol}{whole}"
    return f"{sign}{symbol}{whole}.{frac:0{exponent}d}"


def ensure_same_currency(expected: str, actual: str, record_id: int = None) -> None:
    """Raise CurrencyMismatchError instead of silently mixing currencies."""
    if expected != actual:
        raise CurrencyMismatchError(
            f"Record is in {actual} but balance is computed in {expected}",
            record_id=record_id
        )
