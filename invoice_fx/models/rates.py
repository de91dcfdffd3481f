from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class ExchangeRate(BaseModel):
    """Persisted rate for one directional currency pair."""

    model_config = ConfigDict(frozen=True)

    base_currency: str = Field(..., min_length=3, max_length=3)
    target_currency: str = Field(..., min_length=3, max_length=3)
    rate: float = Field(..., gt=0)
    updated_at: datetime

    @field_validator("target_currency")
    @classmethod
    def not_same(cls, v: str, info: ValidationInfo) -> str:
        if info.data.get("base_currency") == v:
            raise ValueError("target cannot equal base")
        return v

    @field_validator("updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class MonetaryAmount(BaseModel):
    """An amount with its (possibly missing) currency code.

    A missing or blank currency is interpreted by callers as "same as target".
    """

    model_config = ConfigDict(frozen=True)

    amount: float
    currency: Optional[str] = None
