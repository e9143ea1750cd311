"""Turn a raw Dark Sky style response into a Forecast."""

import logging
from datetime import datetime

from weatherwidget.errors import ParseError
from weatherwidget.models.common import local_midnight_timestamp
from weatherwidget.models.forecast import (
    CurrentConditions,
    DailyForecast,
    Forecast,
    TemperatureRange,
    as_number,
    as_timestamp,
)

logger = logging.getLogger(__name__)


def parse_forecast(raw: dict, now: datetime | None = None) -> Forecast:
    """Build a Forecast from ``currently`` and ``daily.data``.

    Days that start before today's local midnight are dropped; the rest are
    ordered by time.
    """
    if not isinstance(raw, dict):
        raise ParseError("Forecast response must be an object")
    currently = raw.get("currently")
    if not isinstance(currently, dict):
        raise ParseError("Forecast response has no 'currently' block")

    current = CurrentConditions(
        time=as_timestamp(currently, "time"),
        summary=str(currently.get("summary", "")),
        temperature=as_number(currently, "temperature"),
        wind_speed=as_number(currently, "windSpeed", default=0.0),
        humidity=as_number(currently, "humidity", default=0.0),
    )

    daily = raw.get("daily") or {}
    data = daily.get("data", []) if isinstance(daily, dict) else []
    if not isinstance(data, list):
        raise ParseError("Forecast 'daily.data' must be a list")

    today = local_midnight_timestamp(now)
    week: list[DailyForecast] = []
    for day in data:
        if not isinstance(day, dict):
            raise ParseError("Forecast 'daily.data' entries must be objects")
        day_time = as_timestamp(day, "time")
        if day_time < today:
            continue
        week.append(
            DailyForecast(
                time=day_time,
                summary=str(day.get("summary", "")),
                temperature=TemperatureRange(
                    min=as_number(day, "temperatureMin"),
                    max=as_number(day, "temperatureMax"),
                ),
                wind_speed=as_number(day, "windSpeed", default=0.0),
                humidity=as_number(day, "humidity", default=0.0),
            )
        )

    week.sort(key=lambda d: d.time)
    logger.debug(
        "Parsed forecast: %d of %d daily entries kept", len(week), len(data)
    )
    return Forecast(current=current, week=week)
