"""Per-city registry entry and its refresh state."""

from dataclasses import dataclass
from enum import StrEnum

from weatherwidget.models.forecast import Coordinates, Forecast


class CityState(StrEnum):
    UNINITIALIZED = "uninitialized"
    COORDINATES_PENDING = "coordinates_pending"
    COORDINATES_READY = "coordinates_ready"
    COORDINATES_FAILED = "coordinates_failed"
    FORECAST_PENDING = "forecast_pending"
    FORECAST_READY = "forecast_ready"
    FORECAST_FAILED = "forecast_failed"


@dataclass
class RegistryEntry:
    name: str
    coordinates: Coordinates | None = None
    forecast: Forecast | None = None
    state: CityState = CityState.UNINITIALIZED
    last_error: str | None = None
    forecast_updated_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "coordinates": self.coordinates.to_dict() if self.coordinates else None,
            "forecast": self.forecast.to_dict() if self.forecast else None,
            "forecast_updated_at": self.forecast_updated_at,
            "last_error": self.last_error,
        }


@dataclass(frozen=True)
class RefreshSummary:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
