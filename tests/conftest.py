from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

from invoice_fx.core.errors import ProviderError, StoreError
from invoice_fx.models import ExchangeRate
from invoice_fx.services.rates.base import RateProvider
from invoice_fx.services.rates.cache import RateCache
from invoice_fx.services.rates.providers import RateProviderClient
from invoice_fx.services.rates.resolver import ExchangeRateResolver

T0 = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class FakeProvider(RateProvider):
    """Serves fixed tables per base; ``fail=True`` raises ProviderError."""

    def __init__(
        self,
        tables: Optional[Dict[str, Dict[str, float]]] = None,
        *,
        fail: bool = False,
        delay: float = 0.0,
        name: str = "fake",
    ):
        self.tables = tables or {}
        self.fail = fail
        self.delay = delay
        self.name = name
        self.calls: List[str] = []

    async def fetch_rates(
        self, base: str, symbols: Optional[Sequence[str]] = None
    ) -> Mapping[str, float]:
        self.calls.append(base)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ProviderError("provider down", provider=self.name)
        if base not in self.tables:
            raise ProviderError(f"unknown base {base}", provider=self.name)
        return self.tables[base]


class MemoryRateStore:
    def __init__(self, *, fail_reads: bool = False, fail_writes: bool = False):
        self.records: Dict[Tuple[str, str], ExchangeRate] = {}
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.reads: List[Tuple[str, str]] = []
        self.writes: List[ExchangeRate] = []

    def read_rate(self, base: str, target: str) -> Optional[ExchangeRate]:
        self.reads.append((base, target))
        if self.fail_reads:
            raise StoreError("store unavailable")
        return self.records.get((base, target))

    def upsert_rate(self, rate: ExchangeRate) -> None:
        self.writes.append(rate)
        if self.fail_writes:
            raise StoreError("store read-only")
        self.records[(rate.base_currency, rate.target_currency)] = rate


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> RateCache:
    return RateCache(ttl=timedelta(hours=24), clock=clock)


@pytest.fixture
def store() -> MemoryRateStore:
    return MemoryRateStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider({"EUR": {"USD": 1.1, "GBP": 0.85}, "USD": {"EUR": 0.9, "GBP": 0.78}})


@pytest.fixture
def resolver(provider, cache, store) -> ExchangeRateResolver:
    return ExchangeRateResolver(RateProviderClient(provider), cache, store)
