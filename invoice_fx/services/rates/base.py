from __future__ import annotations

"""Rate provider / store abstractions and the tagged resolution result.

Providers return a full rate table for one base currency. Stores persist the
last fetched rate per directional pair. The resolver only talks to both via
these interfaces so tests can plug in fakes.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Protocol, Sequence

from invoice_fx.models import ExchangeRate


class RateProvider(ABC):
    name: str = "abstract"

    @abstractmethod
    async def fetch_rates(
        self, base: str, symbols: Optional[Sequence[str]] = None
    ) -> Mapping[str, float]:
        """Return ``{quote: units of quote per 1 base}``; raise ProviderError on failure.

        ``symbols`` is a hint; providers may return the full table regardless.
        """
        raise NotImplementedError


class RateStore(Protocol):
    def read_rate(self, base: str, target: str) -> Optional[ExchangeRate]: ...

    def upsert_rate(self, rate: ExchangeRate) -> None: ...


class RateSource(str, Enum):
    IDENTITY = "identity"
    MEMORY = "memory"
    STORE = "store"
    PROVIDER = "provider"
    RECIPROCAL = "reciprocal"
    FALLBACK = "fallback"

    @property
    def degraded(self) -> bool:
        return self in (RateSource.RECIPROCAL, RateSource.FALLBACK)


@dataclass(frozen=True)
class ResolvedRate:
    base: str
    target: str
    rate: float
    source: RateSource

    @property
    def degraded(self) -> bool:
        return self.source.degraded
