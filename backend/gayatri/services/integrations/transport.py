from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from ...core.errors import IntegrationError


def _provider_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return err.get("message") or err.get("code") or str(err)
        return (
            body.get("error_description")
            or body.get("error_message")
            or (str(err) if err else None)
            or str(body)[:200]
        )
    return str(body)[:200]


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    provider: str,
    allow_404: bool = False,
    **kwargs: Any,
) -> Optional[Dict[str, Any]]:
    """
    Helper that:
    - returns None for 404 when ``allow_404`` is set
    - handles 429 with a short backoff
    - raises IntegrationError for other 4xx (not retried)
    - raises for 5xx so Tenacity can retry
    """
    resp = await client.request(method, url, **kwargs)

    if resp.status_code == 429:
        retry_after = resp.headers.get("Retry-After")
        delay = int(retry_after) if retry_after and retry_after.isdigit() else 5
        await asyncio.sleep(delay)
        resp = await client.request(method, url, **kwargs)

    if resp.status_code == 404 and allow_404:
        return None

    if 400 <= resp.status_code < 500:
        raise IntegrationError(
            f"{provider} API error ({resp.status_code}): {_provider_message(resp)}"
        )

    resp.raise_for_status()
    return resp.json()
