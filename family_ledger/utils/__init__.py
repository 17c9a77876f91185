"""Money and date helpers shared by the engine."""

from family_ledger.utils.dates import (
    Clock,
    end_of_day,
    ensure_utc,
    fixed_clock,
    iter_month_keys,
    month_key,
    months_between,
    step,
    system_clock,
)
from family_ledger.utils.money import (
    format_currency,
    from_minor_units,
    percentage_of,
    quantize_money,
    sum_money,
    to_minor_units,
)

__all__ = [
    "Clock",
    "end_of_day",
    "ensure_utc",
    "fixed_clock",
    "format_currency",
    "from_minor_units",
    "iter_month_keys",
    "month_key",
    "months_between",
    "percentage_of",
    "quantize_money",
    "step",
    "sum_money",
    "system_clock",
    "to_minor_units",
]
