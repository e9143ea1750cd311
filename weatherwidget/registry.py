"""City registry: in-memory city state backed by the key/value cache.

Coordinates are loaded once at startup, from the ``cities`` key when cached or
from one batched geocoding call otherwise. Forecasts are optionally seeded
from the ``forecast`` hash, then refreshed immediately and on every scheduler
tick. Cache writes run as background tasks; their failures are logged and
never undo the in-memory value.
"""

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import Any

from weatherwidget.config.schema import WidgetConfig
from weatherwidget.errors import NotFoundError, ProviderError, WidgetError
from weatherwidget.ingest.forecast_client import ForecastClient
from weatherwidget.ingest.forecast_parser import parse_forecast
from weatherwidget.ingest.geocoding_client import GeocodingClient
from weatherwidget.models.common import local_midnight_timestamp, utc_now_iso
from weatherwidget.models.forecast import Coordinates, Forecast
from weatherwidget.models.registry import CityState, RefreshSummary, RegistryEntry
from weatherwidget.scheduler import DEFAULT_INTERVAL, RefreshScheduler
from weatherwidget.storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

COORDINATES_KEY = "cities"
FORECAST_HASH = "forecast"


class CityRegistry:
    def __init__(
        self,
        cities: Iterable[str],
        store: KeyValueStore,
        geocoder: GeocodingClient,
        forecaster: ForecastClient,
        refresh_interval: float = DEFAULT_INTERVAL,
        seed_forecast_from_cache: bool = True,
        units: str = "si",
        owns_store: bool = False,
    ):
        self._entries: dict[str, RegistryEntry] = {
            name: RegistryEntry(name=name) for name in cities
        }
        self.store = store
        self.geocoder = geocoder
        self.forecaster = forecaster
        self.seed_forecast_from_cache = seed_forecast_from_cache
        self.units = units
        self.scheduler = RefreshScheduler(self.refresh_all, refresh_interval)
        self._owns_store = owns_store
        self._in_flight: set[str] = set()
        self._background: set[asyncio.Task] = set()
        self._last_write: dict[str, asyncio.Task] = {}
        self._startup: asyncio.Task | None = None

    @classmethod
    def from_config(
        cls, config: WidgetConfig, store: KeyValueStore | None = None
    ) -> "CityRegistry":
        """Wire a registry with clients and store built from config."""
        owns_store = store is None
        if store is None:
            store = KeyValueStore(config.store.path)
        geocoder = GeocodingClient(
            api_key=config.geocoding.api_key,
            base_url=config.geocoding.base_url,
            region=config.geocoding.region,
            timeout=config.geocoding.timeout_seconds,
            max_retries=config.geocoding.max_retries,
        )
        forecaster = ForecastClient(
            api_key=config.forecast.api_key,
            base_url=config.forecast.base_url,
            timeout=config.forecast.timeout_seconds,
            max_retries=config.forecast.max_retries,
        )
        return cls(
            config.cities,
            store,
            geocoder,
            forecaster,
            refresh_interval=config.refresh.interval_minutes * 60,
            seed_forecast_from_cache=config.refresh.seed_forecast_from_cache,
            units=config.forecast.units,
            owns_store=owns_store,
        )

    # --- Read side ---

    def get_cities(self) -> list[str]:
        return list(self._entries)

    def get_city(self, name: str) -> RegistryEntry:
        try:
            return self._entries[name]
        except KeyError:
            raise NotFoundError(f"City '{name}' does not exist") from None

    def get_city_coordinates(self, name: str) -> Coordinates | None:
        return self.get_city(name).coordinates

    def get_city_forecast(self, name: str) -> Forecast | None:
        return self.get_city(name).forecast

    def snapshot(self) -> dict[str, dict]:
        return {name: entry.to_dict() for name, entry in self._entries.items()}

    # --- Lifecycle ---

    async def start(self) -> None:
        """Load coordinates, seed cached forecasts and start periodic refresh."""
        if not await self.init_coordinates():
            logger.warning("No coordinates available, forecasts will not be fetched")
            return
        if self.seed_forecast_from_cache:
            await self.seed_forecasts()
        self.scheduler.start()

    def launch(self) -> None:
        """Run start() as a background task and return immediately.

        Lookups answer from whatever is loaded so far while coordinates and
        forecasts arrive. No-op while a previous launch is still running.
        """
        if self._startup is not None and not self._startup.done():
            return
        self._startup = asyncio.create_task(self._run_startup(), name="registry-startup")

    async def _run_startup(self) -> None:
        try:
            await self.start()
        except Exception:
            logger.exception("Registry startup crashed")

    async def stop(self) -> None:
        if self._startup is not None:
            self._startup.cancel()
            try:
                await self._startup
            except asyncio.CancelledError:
                pass
            self._startup = None
        await self.scheduler.stop()
        await self.wait_for_persistence()
        if self._owns_store:
            self.store.close()

    async def wait_for_persistence(self) -> None:
        """Wait until all pending cache writes have finished."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # --- Coordinates ---

    async def init_coordinates(self) -> bool:
        """Populate coordinates from the cache, falling back to the geocoder.

        Returns True when every city has coordinates.
        """
        if all(e.coordinates is not None for e in self._entries.values()):
            return True

        logger.info("Initializing coordinates for %d cities", len(self._entries))
        self._set_state(CityState.COORDINATES_PENDING)

        coordinates = await self._load_cached_coordinates()
        if coordinates is not None:
            self._set_coordinates(coordinates)
            return True

        names = self.get_cities()
        try:
            coordinates = await self.geocoder.resolve(names)
            missing = [n for n in names if n not in coordinates]
            if missing:
                raise ProviderError(f"Geocoder returned no coordinates for {missing}")
        except Exception as e:
            logger.warning("Could not retrieve coordinates: %s", e)
            self._set_state(CityState.COORDINATES_FAILED, error=str(e))
            return False

        logger.info("Downloaded coordinates for %s", names)
        self._set_coordinates(coordinates)
        self._persist(
            self.store.set_object(
                COORDINATES_KEY, {n: coordinates[n].to_dict() for n in names}
            ),
            "coordinates",
            key=COORDINATES_KEY,
        )
        return True

    async def _load_cached_coordinates(self) -> dict[str, Coordinates] | None:
        try:
            cached = await self.store.get_object(COORDINATES_KEY)
            if not isinstance(cached, dict):
                raise WidgetError(f"'{COORDINATES_KEY}' is not an object")
            coordinates = {
                name: Coordinates.from_dict(cached[name]) for name in self._entries
            }
        except NotFoundError:
            logger.info("No cached coordinates")
            return None
        except KeyError as e:
            logger.info("Cached coordinates do not cover city %s, refetching", e)
            return None
        except Exception as e:
            logger.warning("Could not read cached coordinates: %s", e)
            return None
        logger.info("Loaded cached coordinates for %d cities", len(coordinates))
        return coordinates

    def _set_coordinates(self, coordinates: dict[str, Coordinates]) -> None:
        for name, entry in self._entries.items():
            if entry.coordinates is None:
                entry.coordinates = coordinates[name]
            entry.state = CityState.COORDINATES_READY
            entry.last_error = None

    def _set_state(self, state: CityState, error: str | None = None) -> None:
        for entry in self._entries.values():
            entry.state = state
            entry.last_error = error

    # --- Forecasts ---

    async def seed_forecasts(self) -> int:
        """Fill unset forecasts from the cache. Returns how many were seeded."""
        today = local_midnight_timestamp()
        seeded = 0
        for entry in self._entries.values():
            if entry.coordinates is None or entry.forecast is not None:
                continue
            try:
                cached = await self.store.hash_get_object(FORECAST_HASH, entry.name)
                forecast = Forecast.from_dict(cached)
            except NotFoundError:
                logger.debug("No cached forecast for %s", entry.name)
                continue
            except Exception as e:
                logger.warning("Could not read cached forecast for %s: %s", entry.name, e)
                continue
            entry.forecast = Forecast(
                current=forecast.current,
                week=[d for d in forecast.week if d.time >= today],
            )
            entry.state = CityState.FORECAST_READY
            seeded += 1
        logger.info("Seeded %d forecasts from cache", seeded)
        return seeded

    async def refresh_city(self, name: str) -> bool:
        """Fetch and replace one city's forecast. Returns True on success.

        Skipped when the city has no coordinates yet or when a refresh for it
        is already in flight. On failure the previous forecast stays.
        """
        entry = self.get_city(name)
        if entry.coordinates is None:
            logger.debug("Skipping forecast for %s: no coordinates", name)
            return False
        if name in self._in_flight:
            logger.info("Forecast refresh for %s already in flight, skipping", name)
            return False

        self._in_flight.add(name)
        entry.state = CityState.FORECAST_PENDING
        try:
            raw = await self.forecaster.fetch(
                entry.coordinates.lat, entry.coordinates.lng, self.units
            )
            forecast = parse_forecast(raw)
        except WidgetError as e:
            logger.warning("Could not refresh forecast for %s: %s", name, e)
            entry.state = CityState.FORECAST_FAILED
            entry.last_error = str(e)
            return False
        except Exception as e:
            logger.exception("Forecast refresh for %s crashed", name)
            entry.state = CityState.FORECAST_FAILED
            entry.last_error = str(e)
            return False
        finally:
            self._in_flight.discard(name)

        entry.forecast = forecast
        entry.forecast_updated_at = utc_now_iso()
        entry.state = CityState.FORECAST_READY
        entry.last_error = None
        logger.info("Refreshed forecast for %s: %d days", name, len(forecast.week))

        self._persist(
            self.store.hash_set_object(FORECAST_HASH, name, forecast.to_dict()),
            f"forecast for {name}",
            key=f"{FORECAST_HASH}:{name}",
        )
        return True

    async def refresh_all(self) -> RefreshSummary:
        """Refresh every city that has coordinates, concurrently."""
        names = [n for n, e in self._entries.items() if e.coordinates is not None]
        results = await asyncio.gather(*(self.refresh_city(n) for n in names))
        succeeded = sum(1 for ok in results if ok)
        summary = RefreshSummary(
            attempted=len(names),
            succeeded=succeeded,
            failed=len(names) - succeeded,
            skipped=len(self._entries) - len(names),
        )
        logger.info(
            "Refresh cycle: %d/%d forecasts updated, %d skipped",
            summary.succeeded, summary.attempted, summary.skipped,
        )
        return summary

    # --- Background persistence ---

    def _persist(self, write: Awaitable[Any], what: str, key: str) -> None:
        """Schedule a cache write. Writes to the same key land in call order."""
        previous = self._last_write.get(key)
        task = asyncio.create_task(self._guarded_write(write, what, previous))
        self._last_write[key] = task
        self._background.add(task)
        task.add_done_callback(lambda t: self._forget_write(key, t))

    def _forget_write(self, key: str, task: asyncio.Task) -> None:
        self._background.discard(task)
        if self._last_write.get(key) is task:
            del self._last_write[key]

    async def _guarded_write(
        self, write: Awaitable[Any], what: str, previous: asyncio.Task | None
    ) -> None:
        if previous is not None:
            await asyncio.wait([previous])
        try:
            await write
        except Exception as e:
            logger.warning("Could not cache %s: %s", what, e)
        else:
            logger.debug("Cached %s", what)
