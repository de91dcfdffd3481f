"""SQLite-backed persistent rate store.

Responsibilities
----------------
- Read the last persisted rate for a directional currency pair.
- Upsert a freshly fetched rate, replacing any prior record for that pair.
- Wrap every ``sqlite3.Error`` in ``StoreError`` so the resolver can treat a
  broken store the same way as an empty one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import re
import sqlite3
from typing import Any, Dict, List, Optional

from invoice_fx.core.errors import StoreError
from invoice_fx.models import ExchangeRate


_SHORT_OFFSET = re.compile(r"(:\d{2}(?:\.\d+)?)([+-]\d{2})$")


def _parse_timestamp(value: str) -> datetime:
    # Postgres writes "+00"; fromisoformat before 3.11 only takes "+00:00"
    text = _SHORT_OFFSET.sub(r"\1\2:00", str(value).strip().replace("Z", "+00:00"))
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class SQLiteRateStore:
    def __init__(self, db_path: Path):
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _row_to_rate(row: sqlite3.Row) -> ExchangeRate:
        return ExchangeRate(
            base_currency=row["base_currency"],
            target_currency=row["target_currency"],
            rate=row["rate"],
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    # ------------------------------------------------------------------
    # Store contract
    def read_rate(self, base: str, target: str) -> Optional[ExchangeRate]:
        try:
            with self._connect() as conn:
                cur = conn.cursor()
                cur.execute(
                    """
                    SELECT base_currency, target_currency, rate, updated_at
                    FROM currency_rates
                    WHERE base_currency = ? AND target_currency = ?
                    """,
                    (base, target),
                )
                row = cur.fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"failed to read rate {base}->{target}: {e}") from e
        if row is None:
            return None
        try:
            return self._row_to_rate(row)
        except (ValueError, TypeError) as e:  # includes pydantic.ValidationError
            raise StoreError(f"corrupt rate record {base}->{target}: {e}") from e

    def upsert_rate(self, rate: ExchangeRate) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO currency_rates (base_currency, target_currency, rate, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(base_currency, target_currency) DO UPDATE SET
                        rate = excluded.rate,
                        updated_at = excluded.updated_at
                    """,
                    (
                        rate.base_currency,
                        rate.target_currency,
                        rate.rate,
                        rate.updated_at.isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(
                f"failed to upsert rate {rate.base_currency}->{rate.target_currency}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Diagnostics
    def list_rates(self) -> List[Dict[str, Any]]:
        try:
            with self._connect() as conn:
                cur = conn.cursor()
                cur.execute(
                    "SELECT base_currency, target_currency, rate, updated_at "
                    "FROM currency_rates ORDER BY base_currency, target_currency"
                )
                return [dict(r) for r in cur.fetchall()]
        except sqlite3.Error as e:
            raise StoreError(f"failed to list rates: {e}") from e
