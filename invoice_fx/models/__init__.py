"""Pydantic domain models for the currency conversion service."""

from .constants import CURRENCIES, DEFAULT_CURRENCY, CurrencyInfo  # re-export
from .rates import ExchangeRate, MonetaryAmount

__all__ = [
    "CURRENCIES",
    "DEFAULT_CURRENCY",
    "CurrencyInfo",
    "ExchangeRate",
    "MonetaryAmount",
]
