import logging
from datetime import datetime

import pytest

from invoice_fx.models import ExchangeRate, MonetaryAmount
from invoice_fx.services.rates.base import RateSource, ResolvedRate
from invoice_fx.services.rates.batch import BatchConversionEngine, group_by_currency
from invoice_fx.services.rates.conversion import CurrencyConverter
from invoice_fx.services.rates.providers import RateProviderClient
from invoice_fx.services.rates.resolver import ExchangeRateResolver

from conftest import FakeProvider


class StubResolver:
    """Fixed pair -> rate table; records every lookup."""

    def __init__(self, rates=None, source=RateSource.PROVIDER):
        self.rates = rates or {}
        self.source = source
        self.calls = []

    async def resolve_detailed(self, base, target):
        self.calls.append((base, target))
        return ResolvedRate(base, target, self.rates.get((base, target), 1.0), self.source)


# Converter ------------------------------------------------------------


@pytest.mark.parametrize("amount", [0.0, 0.1, 19.99, -42.5, 1e12])
async def test_same_currency_returns_amount_exactly(amount):
    resolver = StubResolver()
    converter = CurrencyConverter(resolver)
    assert await converter.convert(amount, "JPY", "JPY") == amount
    assert resolver.calls == []


async def test_convert_multiplies_by_resolved_rate():
    resolver = StubResolver({("EUR", "USD"): 1.1})
    converter = CurrencyConverter(resolver)
    assert await converter.convert(10, "EUR", "USD") == pytest.approx(11.0)
    assert resolver.calls == [("EUR", "USD")]


async def test_convert_detailed_reports_rate_and_source():
    converter = CurrencyConverter(StubResolver({("GBP", "USD"): 1.25}))
    result = await converter.convert_detailed(8, "GBP", "USD")
    assert result.rate == 1.25
    assert result.source is RateSource.PROVIDER
    assert result.converted_amount == 10.0

    same = await converter.convert_detailed(8, "USD", "USD")
    assert same.source is RateSource.IDENTITY
    assert same.converted_amount == 8


async def test_convert_twice_within_ttl_fetches_once(resolver, provider, store):
    converter = CurrencyConverter(resolver)
    first = await converter.convert(100, "EUR", "USD")
    second = await converter.convert(100, "EUR", "USD")
    assert first == second == pytest.approx(110.0)
    assert provider.calls == ["EUR"]
    assert len(store.reads) == 1


async def test_convert_identity_fallback_when_provider_down(cache, store):
    resolver = ExchangeRateResolver(RateProviderClient(FakeProvider(fail=True)), cache, store)
    converter = CurrencyConverter(resolver)
    assert await converter.convert(250.0, "USD", "ZAR") == 250.0


async def test_convert_uses_reciprocal_of_cached_reverse(cache, store):
    cache.put("B", "A", 2.0)
    resolver = ExchangeRateResolver(RateProviderClient(FakeProvider(fail=True)), cache, store)
    converter = CurrencyConverter(resolver)
    assert await converter.convert(10, "A", "B") == 5.0


async def test_convert_amounts_converts_each_item():
    resolver = StubResolver({("EUR", "USD"): 1.1})
    converter = CurrencyConverter(resolver)
    total = await converter.convert_amounts(
        [{"amount": 10, "currency": "EUR"}, {"amount": 10, "currency": "EUR"}, {"amount": 5}],
        "USD",
    )
    assert total == pytest.approx(27.0)
    assert resolver.calls == [("EUR", "USD"), ("EUR", "USD")]


# Batch engine ---------------------------------------------------------


async def test_batch_empty_input_is_zero():
    resolver = StubResolver()
    assert await BatchConversionEngine(resolver).batch_convert([], "USD") == 0
    assert resolver.calls == []


async def test_batch_groups_by_currency():
    resolver = StubResolver({("EUR", "USD"): 1.1})
    engine = BatchConversionEngine(resolver)
    total = await engine.batch_convert(
        [
            MonetaryAmount(amount=100, currency="USD"),
            MonetaryAmount(amount=50, currency="USD"),
            MonetaryAmount(amount=20, currency="EUR"),
        ],
        "USD",
    )
    assert total == pytest.approx(172)
    assert resolver.calls == [("EUR", "USD")]


async def test_batch_resolves_once_per_distinct_currency():
    resolver = StubResolver({("EUR", "USD"): 1.1, ("GBP", "USD"): 1.3})
    engine = BatchConversionEngine(resolver)
    items = [{"amount": 1, "currency": c} for c in ["EUR", "GBP", "EUR", "GBP", "EUR", "USD"] * 20]
    total = await engine.batch_convert(items, "USD")
    assert total == pytest.approx(60 * 1.1 + 40 * 1.3 + 20)
    assert sorted(resolver.calls) == [("EUR", "USD"), ("GBP", "USD")]


@pytest.mark.parametrize("currency", [None, ""])
async def test_batch_missing_currency_counts_as_target(currency):
    resolver = StubResolver({("EUR", "USD"): 2.0})
    engine = BatchConversionEngine(resolver)
    total = await engine.batch_convert(
        [{"amount": 30, "currency": currency}, {"amount": 5, "currency": "EUR"}], "USD"
    )
    assert total == pytest.approx(40)
    assert resolver.calls == [("EUR", "USD")]


async def test_batch_degraded_group_still_contributes(cache, store):
    resolver = ExchangeRateResolver(RateProviderClient(FakeProvider(fail=True)), cache, store)
    engine = BatchConversionEngine(resolver)
    total = await engine.batch_convert(
        [{"amount": 10, "currency": "USD"}, {"amount": 7, "currency": "NGN"}], "USD"
    )
    assert total == pytest.approx(17)


async def test_batch_matches_per_item_conversion(resolver):
    items = [
        {"amount": 12.5, "currency": "EUR"},
        {"amount": 3.2, "currency": "USD"},
        {"amount": 99.0, "currency": "EUR"},
        {"amount": 0.01, "currency": "USD"},
    ]
    converter = CurrencyConverter(resolver)
    per_item = 0.0
    for item in items:
        per_item += await converter.convert(item["amount"], item["currency"], "GBP")
    batched = await BatchConversionEngine(resolver).batch_convert(items, "GBP")
    assert batched == pytest.approx(per_item)


def test_group_by_currency_sums_subtotals():
    groups = group_by_currency(
        [{"amount": 1, "currency": "EUR"}, {"amount": 2, "currency": "EUR"}, {"amount": 4}],
        "USD",
    )
    assert groups == {"EUR": 3.0, "USD": 4.0}


class RaisingResolver(StubResolver):
    def __init__(self, rates, broken):
        super().__init__(rates)
        self.broken = broken

    async def resolve_detailed(self, base, target):
        if base == self.broken:
            self.calls.append((base, target))
            raise RuntimeError(f"lookup exploded for {base}")
        return await super().resolve_detailed(base, target)


async def test_batch_group_whose_lookup_raises_counts_unconverted(caplog):
    resolver = RaisingResolver({("EUR", "USD"): 1.1, ("GBP", "USD"): 1.3}, broken="CHF")
    engine = BatchConversionEngine(resolver)
    with caplog.at_level(logging.WARNING, logger="invoice_fx.rates.batch"):
        total = await engine.batch_convert(
            [
                {"amount": 100, "currency": "USD"},
                {"amount": 10, "currency": "EUR"},
                {"amount": 10, "currency": "GBP"},
                {"amount": 7, "currency": "CHF"},
            ],
            "USD",
        )
    assert total == pytest.approx(100 + 11 + 13 + 7)
    assert sorted(resolver.calls) == [("CHF", "USD"), ("EUR", "USD"), ("GBP", "USD")]
    events = [getattr(r, "event", None) for r in caplog.records]
    assert events.count("fx.batch_degraded") == 2


async def test_batch_with_naive_store_timestamp(provider, cache, store):
    store.records[("EUR", "USD")] = ExchangeRate(
        base_currency="EUR", target_currency="USD", rate=1.2, updated_at=datetime(2026, 1, 15)
    )
    resolver = ExchangeRateResolver(RateProviderClient(provider), cache, store)
    total = await BatchConversionEngine(resolver).batch_convert(
        [{"amount": 10, "currency": "EUR"}], "USD"
    )
    assert total == pytest.approx(12.0)
    assert provider.calls == []
