"""Currency display helpers (symbol, name, formatted amount)."""

from __future__ import annotations

from typing import Optional

from invoice_fx.models.constants import CURRENCIES, DEFAULT_CURRENCY, CurrencyInfo
from .money import round2


def get_currency(code: str) -> Optional[CurrencyInfo]:
    return CURRENCIES.get(code)


def get_currency_symbol(code: str) -> str:
    info = CURRENCIES.get(code)
    return info.symbol if info else CURRENCIES[DEFAULT_CURRENCY].symbol


def get_currency_name(code: str) -> str:
    info = CURRENCIES.get(code)
    return info.name if info else CURRENCIES[DEFAULT_CURRENCY].name


def format_currency(amount: float, code: Optional[str] = None) -> str:
    """Render ``amount`` with its currency symbol and two decimals.

    Unknown or missing codes fall back to the default currency symbol.
    """
    symbol = get_currency_symbol(code or DEFAULT_CURRENCY)
    return f"{symbol}{round2(amount):.2f}"
