from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from fastapi.concurrency import run_in_threadpool

from invoice_fx.core.errors import ProviderError, StoreError
from invoice_fx.models import ExchangeRate
from .base import RateSource, RateStore, ResolvedRate
from .cache import PairKey, RateCache
from .providers import RateProviderClient

"""Exchange rate resolver.

Answers "what is the rate from A to B right now" by walking, in order:

    identity (A == A) -> in-process cache -> persistent store -> provider client
    -> reciprocal of a cached B->A rate -> identity fallback (1.0)

Both cache tiers share the same TTL. Store and provider failures are caught
here and turned into the next branch; nothing is raised to callers. Every
result carries a ``RateSource`` tag so degraded answers stay visible in logs
and API responses even though the public ``resolve`` returns a bare float.

Concurrent lookups of the same uncached pair share one in-flight task when
``single_flight`` is on.
"""

logger = logging.getLogger("invoice_fx.rates.resolver")


class ExchangeRateResolver:
    def __init__(
        self,
        client: RateProviderClient,
        cache: RateCache,
        store: Optional[RateStore] = None,
        *,
        single_flight: bool = True,
    ):
        self._client = client
        self._cache = cache
        self._store = store
        self._single_flight = single_flight
        self._inflight: Dict[PairKey, "asyncio.Task[ResolvedRate]"] = {}

    @property
    def cache(self) -> RateCache:
        return self._cache

    # Public API -----------------------------------------------
    async def resolve(self, base: str, target: str) -> float:
        return (await self.resolve_detailed(base, target)).rate

    async def resolve_detailed(self, base: str, target: str) -> ResolvedRate:
        if base == target:
            return ResolvedRate(base, target, 1.0, RateSource.IDENTITY)
        cached = self._cache.get_fresh(base, target)
        if cached is not None:
            return ResolvedRate(base, target, cached, RateSource.MEMORY)
        if not self._single_flight:
            return await self._resolve_uncached(base, target)

        key = (base, target)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._resolve_uncached(base, target))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        # shield: one abandoned caller must not cancel the lookup for the others
        return await asyncio.shield(task)

    # Internal --------------------------------------------------
    def _forget(self, key: PairKey, task: "asyncio.Task[ResolvedRate]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _resolve_uncached(self, base: str, target: str) -> ResolvedRate:
        persisted = await self._read_store(base, target)
        if persisted is not None and self._cache.is_fresh(persisted.updated_at):
            self._cache.put(base, target, persisted.rate, persisted.updated_at)
            return ResolvedRate(base, target, persisted.rate, RateSource.STORE)

        try:
            rate = await self._client.fetch_rate(base, target)
        except ProviderError as e:
            logger.warning(
                "rate providers failed for %s->%s: %s",
                base,
                target,
                e,
                extra={
                    "event": "fx.provider_failed",
                    "base": base,
                    "target": target,
                    "provider": e.provider,
                },
            )
            return self._degrade(base, target)

        fetched_at = self._cache.now()
        await self._write_store(base, target, rate, fetched_at)
        self._cache.put(base, target, rate, fetched_at)
        return ResolvedRate(base, target, rate, RateSource.PROVIDER)

    def _degrade(self, base: str, target: str) -> ResolvedRate:
        reverse = self._cache.get(target, base)
        if reverse is not None and reverse.rate > 0:
            logger.warning(
                "using reciprocal of cached %s->%s rate",
                target,
                base,
                extra={
                    "event": "fx.reciprocal_fallback",
                    "base": base,
                    "target": target,
                    "source": RateSource.RECIPROCAL.value,
                },
            )
            return ResolvedRate(base, target, 1 / reverse.rate, RateSource.RECIPROCAL)
        logger.warning(
            "could not get exchange rate for %s to %s, using 1.0",
            base,
            target,
            extra={
                "event": "fx.identity_fallback",
                "base": base,
                "target": target,
                "source": RateSource.FALLBACK.value,
            },
        )
        return ResolvedRate(base, target, 1.0, RateSource.FALLBACK)

    async def _read_store(self, base: str, target: str) -> Optional[ExchangeRate]:
        if self._store is None:
            return None
        try:
            return await run_in_threadpool(self._store.read_rate, base, target)
        except StoreError as e:
            logger.warning(
                "rate store read failed, treating as miss: %s",
                e,
                extra={"event": "fx.store_read_failed", "base": base, "target": target},
            )
            return None

    async def _write_store(self, base: str, target: str, rate: float, fetched_at) -> None:
        if self._store is None:
            return
        try:
            record = ExchangeRate(
                base_currency=base, target_currency=target, rate=rate, updated_at=fetched_at
            )
            await run_in_threadpool(self._store.upsert_rate, record)
        except (StoreError, ValueError) as e:
            logger.warning(
                "rate %s->%s not persisted: %s",
                base,
                target,
                e,
                extra={"event": "fx.store_write_failed", "base": base, "target": target},
            )
