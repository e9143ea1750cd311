"""City coordinates and forecast data models.

The ``to_dict``/``from_dict`` pairs produce the JSON shapes stored in the
key/value cache, so a forecast written by one process can be read back by the
next one.
"""

from dataclasses import dataclass, field
from typing import Any

from weatherwidget.errors import ParseError


def as_number(data: dict, key: str, default: float | None = None) -> float:
    try:
        value = data[key]
    except (KeyError, TypeError) as e:
        if default is not None and isinstance(data, dict):
            return default
        raise ParseError(f"Missing field '{key}'") from e
    if isinstance(value, bool):
        raise ParseError(f"Field '{key}' is not a number: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Field '{key}' is not a number: {value!r}") from e


def as_timestamp(data: dict, key: str) -> int:
    return int(as_number(data, key))


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Any) -> "Coordinates":
        if not isinstance(data, dict):
            raise ParseError(f"Coordinates must be an object, got {type(data).__name__}")
        return cls(lat=as_number(data, "lat"), lng=as_number(data, "lng"))


@dataclass(frozen=True)
class CurrentConditions:
    time: int  # epoch seconds
    summary: str
    temperature: float
    wind_speed: float
    humidity: float  # fraction in [0, 1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "summary": self.summary,
            "temperature": self.temperature,
            "wind_speed": self.wind_speed,
            "humidity": self.humidity,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CurrentConditions":
        if not isinstance(data, dict):
            raise ParseError("Current conditions must be an object")
        return cls(
            time=as_timestamp(data, "time"),
            summary=str(data.get("summary", "")),
            temperature=as_number(data, "temperature"),
            wind_speed=as_number(data, "wind_speed"),
            humidity=as_number(data, "humidity"),
        )


@dataclass(frozen=True)
class TemperatureRange:
    min: float
    max: float

    def to_dict(self) -> dict[str, float]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class DailyForecast:
    time: int  # epoch seconds of the day's local midnight
    summary: str
    temperature: TemperatureRange
    wind_speed: float
    humidity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time,
            "summary": self.summary,
            "temperature": self.temperature.to_dict(),
            "wind_speed": self.wind_speed,
            "humidity": self.humidity,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "DailyForecast":
        if not isinstance(data, dict):
            raise ParseError("Daily forecast must be an object")
        temperature = data.get("temperature")
        if not isinstance(temperature, dict):
            raise ParseError("Daily forecast temperature must be {min, max}")
        return cls(
            time=as_timestamp(data, "time"),
            summary=str(data.get("summary", "")),
            temperature=TemperatureRange(
                min=as_number(temperature, "min"),
                max=as_number(temperature, "max"),
            ),
            wind_speed=as_number(data, "wind_speed"),
            humidity=as_number(data, "humidity"),
        )


@dataclass(frozen=True)
class Forecast:
    current: CurrentConditions
    week: list[DailyForecast] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current.to_dict(),
            "week": [day.to_dict() for day in self.week],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Forecast":
        if not isinstance(data, dict) or "current" not in data:
            raise ParseError("Forecast must be an object with 'current'")
        week = data.get("week", [])
        if not isinstance(week, list):
            raise ParseError("Forecast 'week' must be a list")
        return cls(
            current=CurrentConditions.from_dict(data["current"]),
            week=sorted(
                (DailyForecast.from_dict(d) for d in week), key=lambda d: d.time
            ),
        )
