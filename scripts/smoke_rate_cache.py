"""Smoke script for the two-tier rate cache.

Demonstrates:
 1. First access triggers a provider fetch and persists the rate.
 2. Subsequent access within TTL is served from memory.
 3. Backdating the cache entry beyond TTL forces a refresh.
 4. The persisted tier as stored in SQLite.
 5. A batch total over mixed currencies.

Uses the static provider and a throwaway SQLite file, so it runs offline.
NOTE: This is a lightweight diagnostic and not a formal test.
"""

import asyncio
import tempfile
from datetime import timedelta
from pathlib import Path
from pprint import pprint

from invoice_fx.core.config import Settings
from invoice_fx.db.rate_store import SQLiteRateStore
from invoice_fx.services.rates import build_conversion_service


async def run():
    with tempfile.TemporaryDirectory() as d:
        settings = Settings(
            db_path=Path(d) / "smoke.sqlite3",
            primary_rate_provider="static",
            fallback_rate_provider="static",
        )
        settings.init_post_load()
        svc = build_conversion_service(settings)
        cache = svc.resolver.cache
        out = {"initial": {}, "second": {}, "forced_refresh": {}}

        for key in out:
            if key == "forced_refresh":
                for c in ("EUR", "GBP"):
                    entry = cache.get("USD", c)
                    entry.fetched_at = cache.now() - cache.ttl - timedelta(seconds=5)
            for c in ("EUR", "GBP"):
                resolved = await svc.get_rate("USD", c)
                out[key][c] = {
                    "rate": resolved.rate,
                    "source": resolved.source.value,
                    "fetched_at": cache.get("USD", c).fetched_at.isoformat(),
                }

        out["persisted"] = SQLiteRateStore(settings.db_path).list_rates()

        out["batch_total_usd"] = await svc.batch_convert(
            [
                {"amount": 100, "currency": "USD"},
                {"amount": 50, "currency": "EUR"},
                {"amount": 20, "currency": "GBP"},
                {"amount": 5},
            ],
            "USD",
        )
        pprint(out)


if __name__ == "__main__":
    asyncio.run(run())
