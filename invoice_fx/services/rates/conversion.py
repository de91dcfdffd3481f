from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Iterable, Mapping, Protocol, Union

from invoice_fx.models import MonetaryAmount
from .base import RateSource, ResolvedRate

"""Single-amount currency conversion.

Same-currency conversions short-circuit before the resolver so the amount
comes back bit-for-bit unchanged. No rounding happens here; callers that
display money use ``money.round2`` / ``currencies.format_currency``.
"""

AmountLike = Union[MonetaryAmount, Mapping[str, object]]


class SupportsRateLookup(Protocol):
    async def resolve_detailed(self, base: str, target: str) -> ResolvedRate: ...


@dataclass(frozen=True)
class ConversionResult:
    original_amount: float
    from_currency: str
    to_currency: str
    rate: float
    source: RateSource
    converted_amount: float


def coerce_amount(item: AmountLike) -> MonetaryAmount:
    if isinstance(item, MonetaryAmount):
        return item
    return MonetaryAmount.model_validate(item)


class CurrencyConverter:
    def __init__(self, resolver: SupportsRateLookup):
        self._resolver = resolver

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        if from_currency == to_currency:
            return amount
        resolved = await self._resolver.resolve_detailed(from_currency, to_currency)
        return amount * resolved.rate

    async def convert_detailed(
        self, amount: float, from_currency: str, to_currency: str
    ) -> ConversionResult:
        if from_currency == to_currency:
            rate, source, converted = 1.0, RateSource.IDENTITY, amount
        else:
            resolved = await self._resolver.resolve_detailed(from_currency, to_currency)
            rate, source, converted = resolved.rate, resolved.source, amount * resolved.rate
        return ConversionResult(
            original_amount=amount,
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            source=source,
            converted_amount=converted,
        )

    async def convert_amounts(self, amounts: Iterable[AmountLike], target: str) -> float:
        """Convert every item on its own and sum; no grouping.

        Fine for a handful of lines. Use ``BatchConversionEngine`` for long lists.
        """
        items = [coerce_amount(a) for a in amounts]
        converted = await asyncio.gather(
            *(self.convert(m.amount, m.currency or target, target) for m in items)
        )
        return sum(converted, 0.0)
