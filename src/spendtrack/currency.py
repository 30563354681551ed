"""
currency.py - static-rate currency normalization

Rates are "units of USD per 1 unit of currency" (config.RATE_TO_USD).
Unknown currency codes are normalized to the default currency first.
"""

from typing import Dict, Optional

from spendtrack.config import RATE_TO_USD, Currency


def normalize_currency(code) -> str:
    return Currency.parse(code).value


def convert(amount: float, from_code, to_code, rates: Optional[Dict[str, float]] = None) -> float:
    """Convert `amount` from one currency to another: amount * rate[from] / rate[to]."""
    if rates is None:
        rates = RATE_TO_USD
    src = normalize_currency(from_code)
    dst = normalize_currency(to_code)
    from_rate = rates.get(src)
    to_rate = rates.get(dst)
    # a caller-supplied table may be missing a rate; leave the amount as-is then
    if not from_rate or not to_rate:
        return amount
    if src == dst:
        return amount
    return amount * from_rate / to_rate


def format_amount(amount: float, code) -> str:
    return f"{amount:.2f} {normalize_currency(code)}"
