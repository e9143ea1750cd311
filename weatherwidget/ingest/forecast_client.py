"""Dark Sky compatible forecast API client."""

import logging

import httpx

from weatherwidget.config.schema import DARKSKY_COMPATIBLE_URL
from weatherwidget.errors import ParseError
from weatherwidget.ingest.http import get_json

logger = logging.getLogger(__name__)

EXCLUDE_BLOCKS = "minutely,hourly,alerts,flags"


class ForecastClient:
    def __init__(
        self,
        api_key: str = "",
        base_url: str = DARKSKY_COMPATIBLE_URL,
        timeout: float = 10.0,
        max_retries: int = 2,
        retry_base_delay: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.client = client

    async def fetch(self, lat: float, lng: float, units: str = "si") -> dict:
        """Fetch current conditions and the daily outlook for a point."""
        url = f"{self.base_url}/{self.api_key}/{lat},{lng}"
        logger.debug("Fetching forecast for %s,%s", lat, lng)
        body = await get_json(
            url,
            {"units": units, "exclude": EXCLUDE_BLOCKS},
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_base_delay=self.retry_base_delay,
            client=self.client,
        )
        if not isinstance(body, dict):
            raise ParseError(f"Unexpected forecast response for {lat},{lng}")
        return body
