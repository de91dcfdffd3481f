from __future__ import annotations

"""Concrete rate providers, factory and the primary/fallback client.

'static' ships fixed USD-relative placeholders so the service can run offline;
the two HTTP providers hit free public endpoints that need no API key.
"""
import logging
from typing import Dict, Mapping, Optional, Sequence

import httpx

from invoice_fx.core.config import Settings
from invoice_fx.core.errors import ProviderError
from invoice_fx.services.http_client import HttpError, get_json
from .base import RateProvider

logger = logging.getLogger("invoice_fx.rates.providers")

# Units of currency per 1 USD
_STATIC_USD_RATES: Dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "NGN": 1550.0,
    "CAD": 1.37,
    "AUD": 1.52,
    "JPY": 150.0,
    "INR": 83.0,
    "ZAR": 18.5,
}


def _parse_rates_payload(data: Mapping[str, object], provider: str) -> Dict[str, float]:
    rates = data.get("rates")
    if not isinstance(rates, dict) or not rates:
        raise ProviderError("payload has no 'rates' object", provider=provider)
    parsed: Dict[str, float] = {}
    for code, value in rates.items():
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if value > 0:
            parsed[str(code)] = float(value)
    if not parsed:
        raise ProviderError("payload has no usable rates", provider=provider)
    return parsed


class StaticRateProvider(RateProvider):
    name = "static"

    async def fetch_rates(
        self, base: str, symbols: Optional[Sequence[str]] = None
    ) -> Mapping[str, float]:
        base_per_usd = _STATIC_USD_RATES.get(base)
        if base_per_usd is None:
            raise ProviderError(f"no static rates for base {base}", provider=self.name)
        return {
            code: per_usd / base_per_usd
            for code, per_usd in _STATIC_USD_RATES.items()
            if code != base
        }


class _HTTPRateProvider(RateProvider):
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = str(base_url).rstrip("/")
        self._timeout = timeout
        self._client = client

    async def _get(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        try:
            data = await get_json(
                url, params=params, timeout=self._timeout, retries=0, client=self._client
            )
        except HttpError as e:
            raise ProviderError(str(e), provider=self.name) from e
        return _parse_rates_payload(data, self.name)


class ExchangeRateApiProvider(_HTTPRateProvider):
    """exchangerate-api.com v4: ``GET {base_url}/{BASE}``."""

    name = "exchangerate-api"

    async def fetch_rates(
        self, base: str, symbols: Optional[Sequence[str]] = None
    ) -> Mapping[str, float]:
        return await self._get(f"{self._base_url}/{base}")


class ExchangeRateHostProvider(_HTTPRateProvider):
    """exchangerate.host: ``GET {base_url}?base=BASE&symbols=A,B``."""

    name = "exchangerate-host"

    async def fetch_rates(
        self, base: str, symbols: Optional[Sequence[str]] = None
    ) -> Mapping[str, float]:
        params = {"base": base}
        if symbols:
            params["symbols"] = ",".join(symbols)
        return await self._get(self._base_url, params)


def make_rate_provider(
    kind: str, settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> RateProvider:
    if kind == "static":
        return StaticRateProvider()
    if kind == "exchangerate-api":
        return ExchangeRateApiProvider(
            str(settings.exchange_api_base_url),
            timeout=settings.http_timeout_seconds,
            client=client,
        )
    if kind == "exchangerate-host":
        return ExchangeRateHostProvider(
            str(settings.fallback_api_base_url),
            timeout=settings.http_timeout_seconds,
            client=client,
        )
    raise ValueError(f"Unknown rate provider kind '{kind}'")


class RateProviderClient:
    """Primary provider first, then exactly one fallback with the same parameters."""

    def __init__(self, primary: RateProvider, fallback: Optional[RateProvider] = None):
        self._primary = primary
        self._fallback = fallback

    @classmethod
    def from_settings(
        cls, settings: Settings, client: Optional[httpx.AsyncClient] = None
    ) -> "RateProviderClient":
        primary = make_rate_provider(settings.primary_rate_provider, settings, client)
        fallback = None
        if settings.fallback_rate_provider != settings.primary_rate_provider:
            fallback = make_rate_provider(settings.fallback_rate_provider, settings, client)
        return cls(primary, fallback)

    @staticmethod
    async def _fetch_from(provider: RateProvider, base: str, target: str) -> float:
        rates = await provider.fetch_rates(base, symbols=[target])
        rate = rates.get(target)
        if not rate:
            raise ProviderError(f"rate not found for {target}", provider=provider.name)
        return rate

    async def fetch_rates(self, base: str) -> Mapping[str, float]:
        try:
            return await self._primary.fetch_rates(base)
        except ProviderError as e:
            if self._fallback is None:
                raise
            logger.warning(
                "primary provider failed for %s: %s",
                base,
                e,
                extra={"event": "fx.provider_failed", "base": base, "provider": e.provider},
            )
            return await self._fallback.fetch_rates(base)

    async def fetch_rate(self, base: str, target: str) -> float:
        try:
            return await self._fetch_from(self._primary, base, target)
        except ProviderError as e:
            if self._fallback is None:
                raise
            logger.warning(
                "primary provider failed for %s->%s: %s",
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
            return await self._fetch_from(self._fallback, base, target)
