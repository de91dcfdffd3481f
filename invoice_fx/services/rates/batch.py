from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List

from .base import RateSource, ResolvedRate
from .conversion import AmountLike, SupportsRateLookup, coerce_amount

"""Batch conversion engine.

Sums many (amount, currency) pairs into one target-currency total while
resolving one rate per distinct source currency instead of one per line:

    1. one pass groups amounts by currency into subtotals
    2. the target-currency group is taken as-is
    3. every other group resolves a single rate, concurrently
    4. contributions are summed

Items with a missing/blank currency count as the target currency. A group
whose lookup degraded still contributes its numeric subtotal.
"""

logger = logging.getLogger("invoice_fx.rates.batch")


def group_by_currency(amounts: Iterable[AmountLike], target: str) -> Dict[str, float]:
    groups: Dict[str, float] = {}
    for item in amounts:
        m = coerce_amount(item)
        currency = m.currency or target
        groups[currency] = groups.get(currency, 0.0) + m.amount
    return groups


class BatchConversionEngine:
    def __init__(self, resolver: SupportsRateLookup):
        self._resolver = resolver

    async def _group_rate(self, currency: str, target: str) -> ResolvedRate:
        try:
            return await self._resolver.resolve_detailed(currency, target)
        except Exception:
            # one broken group must not drop the others; keep its subtotal unconverted
            logger.exception(
                "rate lookup for %s->%s raised, counting group unconverted",
                currency,
                target,
                extra={"event": "fx.batch_degraded", "base": currency, "target": target},
            )
            return ResolvedRate(currency, target, 1.0, RateSource.FALLBACK)

    async def batch_convert(self, amounts: Iterable[AmountLike], target: str) -> float:
        groups = group_by_currency(amounts, target)
        if not groups:
            return 0.0

        foreign = [c for c in groups if c != target]
        resolved: List[ResolvedRate] = list(
            await asyncio.gather(*(self._group_rate(c, target) for c in foreign))
        )

        total = groups.get(target, 0.0)
        for currency, r in zip(foreign, resolved):
            total += groups[currency] * r.rate

        degraded = [c for c, r in zip(foreign, resolved) if r.degraded]
        logger.debug(
            "batch conversion result: %s %s",
            total,
            target,
            extra={"event": "fx.batch_converted", "target": target, "groups": len(groups)},
        )
        if degraded:
            logger.warning(
                "batch total in %s used degraded rates for %s",
                target,
                ",".join(degraded),
                extra={"event": "fx.batch_degraded", "target": target},
            )
        return total
