"""Pydantic v2 configuration schema with strict validation."""

from pydantic import BaseModel, Field, field_validator

from weatherwidget.config.defaults import DEFAULT_CITIES

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
# Any Dark Sky compatible endpoint works; Pirate Weather keeps the same schema.
DARKSKY_COMPATIBLE_URL = "https://api.pirateweather.net/forecast"


class GeocodingConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = GOOGLE_GEOCODE_URL
    api_key: str = ""
    region: str = "Russia"
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)


class ForecastConfig(BaseModel):
    model_config = {"extra": "forbid"}

    base_url: str = DARKSKY_COMPATIBLE_URL
    api_key: str = ""
    units: str = "si"
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=2, ge=0)


class RefreshConfig(BaseModel):
    model_config = {"extra": "forbid"}

    interval_minutes: int = Field(default=60, ge=1)
    seed_forecast_from_cache: bool = True


class StoreConfig(BaseModel):
    model_config = {"extra": "forbid"}

    path: str = "data/weatherwidget.db"


class ServerConfig(BaseModel):
    model_config = {"extra": "forbid"}

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    day_presets: list[int] = [1, 3, 7]
    widget_types: list[str] = ["horizontal", "vertical"]
    log_level: str = "INFO"

    @field_validator("day_presets")
    @classmethod
    def _positive_days(cls, v: list[int]) -> list[int]:
        if any(d < 1 for d in v):
            raise ValueError("day presets must be positive")
        return v


class WidgetConfig(BaseModel):
    model_config = {"extra": "forbid"}

    cities: list[str] = Field(default_factory=lambda: list(DEFAULT_CITIES), min_length=1)
    geocoding: GeocodingConfig = GeocodingConfig()
    forecast: ForecastConfig = ForecastConfig()
    refresh: RefreshConfig = RefreshConfig()
    store: StoreConfig = StoreConfig()
    server: ServerConfig = ServerConfig()

    @field_validator("cities")
    @classmethod
    def _unique_cities(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("city names must be unique")
        return v
