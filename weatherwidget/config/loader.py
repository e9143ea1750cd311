"""YAML config loader with environment overrides and dotted-key lookup."""

import os
from pathlib import Path
from typing import Any

import yaml

from weatherwidget.config.defaults import DEFAULT_CITIES
from weatherwidget.config.schema import WidgetConfig

ENV_GEOCODING_API_KEY = "WEATHERWIDGET_GEOCODING_API_KEY"
ENV_FORECAST_API_KEY = "WEATHERWIDGET_FORECAST_API_KEY"


def load_config(path: str | Path | None = None) -> WidgetConfig:
    """Load and validate config from a YAML file.

    A missing file means all defaults. If no cities are specified, injects
    DEFAULT_CITIES. API keys from the environment win over the YAML values.
    """
    raw: dict = {}
    if path is not None:
        path = Path(path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    if "cities" not in raw or not raw["cities"]:
        raw["cities"] = list(DEFAULT_CITIES)

    config = WidgetConfig(**raw)
    return _apply_env_overrides(config)


def _apply_env_overrides(config: WidgetConfig) -> WidgetConfig:
    geocoding_key = os.environ.get(ENV_GEOCODING_API_KEY)
    forecast_key = os.environ.get(ENV_FORECAST_API_KEY)
    update: dict[str, Any] = {}
    if geocoding_key:
        update["geocoding"] = config.geocoding.model_copy(
            update={"api_key": geocoding_key}
        )
    if forecast_key:
        update["forecast"] = config.forecast.model_copy(
            update={"api_key": forecast_key}
        )
    if not update:
        return config
    return config.model_copy(update=update)


def get_config_value(config: WidgetConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'refresh.interval_minutes'."""
    parts = dotted_key.split(".")
    obj: Any = config
    for part in parts:
        if isinstance(obj, list):
            obj = obj[int(part)]
        elif isinstance(obj, dict):
            obj = obj[part]
        elif hasattr(obj, part):
            obj = getattr(obj, part)
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj
