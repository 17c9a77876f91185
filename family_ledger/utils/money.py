"""
Money Utilities

DESIGN DECISION: Amounts cross the package boundary as Decimal quantized
to the cent, and all arithmetic that must conserve value (allocation,
split suggestions, totals) is done on integer minor units.
Floats never touch a balance.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

CENT = Decimal("0.01")

MoneyLike = Union[Decimal, int, float, str]

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}

# Currencies formatted without a fractional part
ZERO_DECIMAL_CURRENCIES = {"JPY"}


def quantize_money(value: MoneyLike) -> Decimal:
    """Convert to a Decimal rounded half-up to the cent."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: MoneyLike) -> int:
    """Decimal amount -> integer cents."""
    return int(quantize_money(amount) * 100)


def from_minor_units(cents: int) -> Decimal:
    """Integer cents -> Decimal amount."""
    return (Decimal(cents) / 100).quantize(CENT)


def sum_money(amounts: Iterable[MoneyLike]) -> Decimal:
    """Exact sum of money amounts."""
    return from_minor_units(sum(to_minor_units(a) for a in amounts))


def percentage_of(cents: int, percentage: MoneyLike) -> int:
    """
    Take a percentage of an amount in cents, rounded half-up to the cent.

    percentage is on the 0-100 scale and may be fractional (e.g. 12.5).
    """
    share = Decimal(cents) * Decimal(str(percentage)) / Decimal(100)
    return int(share.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_currency(amount: MoneyLike, currency: str = "USD") -> str:
    """
    Format an amount for display, e.g. "$1,234.50" or "-₹500.00".

    Unknown currency codes are rendered as a prefix: "CHF 12.00".
    """
    code = currency.upper()
    value = quantize_money(amount)

    if code in ZERO_DECIMAL_CURRENCIES:
        value = value.quantize(Decimal(1), rounding=ROUND_HALF_UP)
        body = f"{abs(value):,.0f}"
    else:
        body = f"{abs(value):,.2f}"

    symbol = CURRENCY_SYMBOLS.get(code)
    prefix = symbol if symbol else f"{code} "
    sign = "-" if value < 0 else ""
    return f"{sign}{prefix}{body}"
