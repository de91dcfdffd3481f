from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

"""In-process rate cache.

Keyed by directional (base, target) pair. Entries are overwritten on refresh
and never evicted; staleness is decided at read time against the TTL so an
expired entry can still serve the reciprocal fallback.
"""

Clock = Callable[[], datetime]
PairKey = Tuple[str, str]

DEFAULT_TTL = timedelta(hours=24)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    rate: float
    fetched_at: datetime


class RateCache:
    def __init__(self, ttl: timedelta = DEFAULT_TTL, clock: Clock = utc_now):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[PairKey, CacheEntry] = {}

    def now(self) -> datetime:
        return self._clock()

    def is_fresh(self, stamp: datetime) -> bool:
        return self.now() - stamp < self.ttl

    def get(self, base: str, target: str) -> Optional[CacheEntry]:
        """Entry for the pair regardless of age."""
        return self._entries.get((base, target))

    def get_fresh(self, base: str, target: str) -> Optional[float]:
        entry = self._entries.get((base, target))
        if entry and self.is_fresh(entry.fetched_at):
            return entry.rate
        return None

    def put(
        self, base: str, target: str, rate: float, fetched_at: Optional[datetime] = None
    ) -> None:
        self._entries[(base, target)] = CacheEntry(
            rate=rate, fetched_at=fetched_at or self.now()
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: PairKey) -> bool:
        return key in self._entries
