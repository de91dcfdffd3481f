from __future__ import annotations

"""Lightweight async HTTP client util with optional retry.

Focus: GET JSON. Callers may pass a shared ``httpx.AsyncClient`` (tests inject
one backed by ``httpx.MockTransport``); otherwise a short-lived client is used.
"""
import asyncio
from typing import Any, Dict, Mapping, Optional

import httpx


class HttpError(Exception):
    pass


async def _get_once(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Mapping[str, str]],
    timeout: float,
) -> Dict[str, Any]:
    resp = await client.get(url, params=params, timeout=timeout)
    if resp.status_code >= 400:
        raise HttpError(f"HTTP {resp.status_code} for {url}")
    data = resp.json()
    if not isinstance(data, dict):
        raise HttpError(f"Expected JSON object from {url}")
    return data


async def get_json(
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    timeout: float = 5.0,
    retries: int = 0,
    backoff: float = 0.5,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    last_err: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            if client is not None:
                return await _get_once(client, url, params, timeout)
            async with httpx.AsyncClient() as own_client:
                return await _get_once(own_client, url, params, timeout)
        except (httpx.HTTPError, HttpError, ValueError) as e:  # ValueError for JSON decode
            last_err = e
            if attempt == retries:
                break
            await asyncio.sleep(backoff * (2**attempt))
    raise HttpError(f"Failed to fetch JSON from {url}: {last_err}")
