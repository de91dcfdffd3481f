from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from typing import Iterable, Optional

import httpx

from invoice_fx.core.config import Settings, get_settings
from invoice_fx.db.rate_store import SQLiteRateStore
from invoice_fx.db.schema import init_db
from .base import RateStore, ResolvedRate
from .batch import BatchConversionEngine
from .cache import Clock, RateCache, utc_now
from .conversion import AmountLike, ConversionResult, CurrencyConverter
from .providers import RateProviderClient
from .resolver import ExchangeRateResolver

"""Conversion service wiring and module-level entry points.

``CurrencyConversionService`` owns one resolver (and therefore one in-process
cache) and exposes the converter and batch engine on top of it. The
module-level coroutines delegate to a process-wide instance built from
settings, which is what the rest of the application imports.
"""


class CurrencyConversionService:
    def __init__(self, resolver: ExchangeRateResolver):
        self.resolver = resolver
        self.converter = CurrencyConverter(resolver)
        self.batch = BatchConversionEngine(resolver)

    async def get_rate(self, base: str, target: str) -> ResolvedRate:
        return await self.resolver.resolve_detailed(base, target)

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        return await self.converter.convert(amount, from_currency, to_currency)

    async def convert_detailed(
        self, amount: float, from_currency: str, to_currency: str
    ) -> ConversionResult:
        return await self.converter.convert_detailed(amount, from_currency, to_currency)

    async def convert_amounts(self, amounts: Iterable[AmountLike], target: str) -> float:
        return await self.converter.convert_amounts(amounts, target)

    async def batch_convert(self, amounts: Iterable[AmountLike], target: str) -> float:
        return await self.batch.batch_convert(amounts, target)


def build_conversion_service(
    settings: Settings,
    *,
    store: Optional[RateStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Clock = utc_now,
) -> CurrencyConversionService:
    if store is None:
        init_db(settings.db_path)  # type: ignore[arg-type]
        store = SQLiteRateStore(settings.db_path)  # type: ignore[arg-type]
    cache = RateCache(ttl=timedelta(seconds=settings.rates_cache_ttl_seconds), clock=clock)
    resolver = ExchangeRateResolver(
        RateProviderClient.from_settings(settings, http_client),
        cache,
        store,
        single_flight=settings.rates_single_flight,
    )
    return CurrencyConversionService(resolver)


# Singleton dependency helper used by FastAPI DI and the module-level API
@lru_cache
def get_conversion_service() -> CurrencyConversionService:
    return build_conversion_service(get_settings())


async def get_exchange_rate(base: str, target: str) -> float:
    return await get_conversion_service().resolver.resolve(base, target)


async def convert_currency(amount: float, from_currency: str, to_currency: str) -> float:
    return await get_conversion_service().convert(amount, from_currency, to_currency)


async def convert_amounts_to_currency(amounts: Iterable[AmountLike], target: str) -> float:
    return await get_conversion_service().convert_amounts(amounts, target)


async def batch_convert(amounts: Iterable[AmountLike], target: str) -> float:
    return await get_conversion_service().batch_convert(amounts, target)
