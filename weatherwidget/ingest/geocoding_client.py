"""Google Geocoding API client: city names to coordinates."""

import asyncio
import logging
from collections.abc import Sequence

import httpx

from weatherwidget.config.schema import GOOGLE_GEOCODE_URL
from weatherwidget.errors import ParseError, ProviderError
from weatherwidget.ingest.http import get_json
from weatherwidget.models.forecast import Coordinates

logger = logging.getLogger(__name__)


class GeocodingClient:
    def __init__(
        self,
        api_key: str = "",
        base_url: str = GOOGLE_GEOCODE_URL,
        region: str = "Russia",
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.region = region
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.client = client

    async def resolve(self, names: Sequence[str]) -> dict[str, Coordinates]:
        """Resolve every name to coordinates.

        All names must resolve; a single failure fails the whole call.
        """
        logger.info("Resolving coordinates for %s", list(names))
        results = await asyncio.gather(*(self.resolve_one(n) for n in names))
        return dict(zip(names, results, strict=True))

    async def resolve_one(self, name: str) -> Coordinates:
        params = {"address": f"{self.region},{name}" if self.region else name}
        if self.api_key:
            params["key"] = self.api_key

        body = await get_json(
            self.base_url,
            params,
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_base_delay=self.retry_base_delay,
            client=self.client,
        )
        if not isinstance(body, dict):
            raise ProviderError(f"Unexpected geocoding response for '{name}'")

        status = body.get("status")
        if status != "OK":
            raise ProviderError(f"Bad geocoding result for '{name}': status={status}")

        # Assume the first result is the one we want.
        try:
            location = body["results"][0]["geometry"]["location"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Geocoding response for '{name}' has no location") from e

        try:
            return Coordinates.from_dict(location)
        except ParseError as e:
            raise ProviderError(f"Bad geocoding location for '{name}': {e}") from e
