"""Async JSON GET with retry on 503/429, shared by the provider clients."""

import asyncio
import logging
from typing import Any

import httpx

from weatherwidget.errors import ParseError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "weatherwidget/0.1.0"
RETRY_STATUSES = (503, 429)


async def get_json(
    url: str,
    params: dict[str, Any] | None = None,
    *,
    timeout: float = 10.0,
    max_retries: int = 2,
    retry_base_delay: float = 1.0,
    user_agent: str = DEFAULT_USER_AGENT,
    client: httpx.AsyncClient | None = None,
) -> Any:
    """Fetch ``url`` and decode its JSON body.

    Retries on 503/429 and transport errors with exponential backoff.
    Raises ProviderError when the request ultimately fails and ParseError
    when the body is not JSON.
    """
    headers = {"User-Agent": user_agent, "Accept": "application/json"}

    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            return await _get_json(
                own_client, url, params, headers, max_retries, retry_base_delay
            )
    return await _get_json(client, url, params, headers, max_retries, retry_base_delay)


async def _get_json(
    client: httpx.AsyncClient,
    url: str,
    params: dict[str, Any] | None,
    headers: dict[str, str],
    max_retries: int,
    retry_base_delay: float,
) -> Any:
    for attempt in range(max_retries + 1):
        try:
            resp = await client.get(url, params=params, headers=headers)
        except httpx.RequestError as e:
            if attempt < max_retries:
                delay = retry_base_delay * (2**attempt)
                logger.warning(
                    "Request to %s failed, retrying in %.1fs: %s", url, delay, e
                )
                await asyncio.sleep(delay)
                continue
            raise ProviderError(f"Request to {url} failed: {e}") from e

        if resp.status_code in RETRY_STATUSES and attempt < max_retries:
            delay = retry_base_delay * (2**attempt)
            logger.warning(
                "%s returned %d, retrying in %.1fs (attempt %d/%d)",
                url, resp.status_code, delay, attempt + 1, max_retries,
            )
            await asyncio.sleep(delay)
            continue

        if resp.status_code >= 400:
            raise ProviderError(
                f"{url} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise ParseError(f"{url} returned malformed JSON: {e}") from e

    raise ProviderError(f"Request to {url} exhausted {max_retries} retries")
