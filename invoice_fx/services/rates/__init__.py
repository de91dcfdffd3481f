"""Multi-currency conversion: resolver, converter and batch engine."""

from .base import RateSource, ResolvedRate
from .conversion import ConversionResult
from .service import (
    CurrencyConversionService,
    batch_convert,
    build_conversion_service,
    convert_amounts_to_currency,
    convert_currency,
    get_conversion_service,
    get_exchange_rate,
)

__all__ = [
    "RateSource",
    "ResolvedRate",
    "ConversionResult",
    "CurrencyConversionService",
    "batch_convert",
    "build_conversion_service",
    "convert_amounts_to_currency",
    "convert_currency",
    "get_conversion_service",
    "get_exchange_rate",
]
