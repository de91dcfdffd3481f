from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import Dict, List

from invoice_fx.models import CURRENCIES, MonetaryAmount
from invoice_fx.services.rates import CurrencyConversionService, get_conversion_service

"""Rates router exposing resolution and conversion over HTTP.

Endpoints:
    - GET  /rates/currencies        -> display metadata for known currencies
    - GET  /rates/{base}/{target}   -> resolved rate with its source tag
    - POST /rates/convert           -> single conversion with rate + source
    - POST /rates/batch             -> grouped total for many line items

Conversions never fail on FX problems; a degraded answer is flagged through
``source`` (``reciprocal`` / ``fallback``) instead of an error status.
"""

router = APIRouter(prefix="/rates", tags=["rates"])


def get_service() -> CurrencyConversionService:
    return get_conversion_service()


class ConvertPayload(BaseModel):
    amount: float
    from_currency: str = Field(..., min_length=3, max_length=3)
    to_currency: str = Field(..., min_length=3, max_length=3)


class BatchPayload(BaseModel):
    amounts: List[MonetaryAmount] = Field(default_factory=list)
    target: str = Field(..., min_length=3, max_length=3)


@router.get("/currencies", summary="List currencies with symbol and name")
async def list_currencies() -> List[Dict[str, str]]:
    return [info._asdict() for info in CURRENCIES.values()]


@router.get("/{base}/{target}", summary="Resolve the current rate for a pair")
async def get_rate(
    base: str,
    target: str,
    svc: CurrencyConversionService = Depends(get_service),
):
    resolved = await svc.get_rate(base, target)
    return {
        "base": resolved.base,
        "target": resolved.target,
        "rate": resolved.rate,
        "source": resolved.source.value,
    }


@router.post("/convert", summary="Convert one amount")
async def convert(
    payload: ConvertPayload,
    svc: CurrencyConversionService = Depends(get_service),
):
    result = await svc.convert_detailed(
        payload.amount, payload.from_currency, payload.to_currency
    )
    return {
        "original_amount": result.original_amount,
        "from_currency": result.from_currency,
        "to_currency": result.to_currency,
        "rate": result.rate,
        "source": result.source.value,
        "converted_amount": result.converted_amount,
    }


@router.post("/batch", summary="Sum many amounts into one target currency")
async def batch(
    payload: BatchPayload,
    svc: CurrencyConversionService = Depends(get_service),
):
    total = await svc.batch_convert(payload.amounts, payload.target)
    return {"target": payload.target, "total": total, "count": len(payload.amounts)}
