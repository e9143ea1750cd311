"""Shared test fixtures."""

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from weatherwidget.ingest.forecast_client import ForecastClient
from weatherwidget.ingest.geocoding_client import GeocodingClient
from weatherwidget.models.common import local_midnight_timestamp
from weatherwidget.storage.kv_store import KeyValueStore

DAY = 86400


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def load_fixture(fixtures_dir: Path) -> Callable[[str], dict]:
    def _load(name: str) -> dict:
        with open(fixtures_dir / name) as f:
            return json.load(f)

    return _load


@pytest.fixture
def store(tmp_path: Path):
    """A real SQLite-backed store in a temp directory."""
    kv = KeyValueStore(tmp_path / "cache.db")
    yield kv
    kv.close()


@pytest.fixture
def mock_store() -> MagicMock:
    """Store double: every read misses, every write succeeds."""
    from weatherwidget.errors import NotFoundError

    kv = MagicMock(spec=KeyValueStore)
    kv.get_object.side_effect = NotFoundError("cities")
    kv.hash_get_object.side_effect = NotFoundError("forecast")
    kv.set_object.return_value = None
    kv.hash_set_object.return_value = None
    return kv


@pytest.fixture
def geocoder() -> MagicMock:
    return MagicMock(spec=GeocodingClient)


@pytest.fixture
def forecaster() -> MagicMock:
    return MagicMock(spec=ForecastClient)


@pytest.fixture
def raw_forecast() -> Callable[..., dict]:
    """Build a Dark Sky style response around today's local midnight.

    ``offsets`` are whole days relative to today; negative means past days.
    """

    def _build(offsets: tuple[int, ...] = (-1, 0, 1, 2), current_temp: float = 3.0) -> dict:
        today = local_midnight_timestamp()
        return {
            "currently": {
                "time": today + 3600,
                "summary": "Clear",
                "temperature": current_temp,
                "windSpeed": 2.5,
                "humidity": 0.6,
            },
            "daily": {
                "data": [
                    {
                        "time": today + offset * DAY,
                        "summary": f"Day {offset}",
                        "temperatureMin": 5 + offset,
                        "temperatureMax": 10 + offset,
                        "windSpeed": 3.0,
                        "humidity": 0.5,
                    }
                    for offset in offsets
                ]
            },
        }

    return _build


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "refresh": {"interval_minutes": 30},
        "store": {"path": str(tmp_path / "widget.db")},
    }
    path = tmp_path / "test_config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path
