"""Tests for turning raw provider responses into forecasts."""

from datetime import datetime

import pytest

from weatherwidget.errors import ParseError
from weatherwidget.ingest.forecast_parser import parse_forecast
from weatherwidget.models.common import local_midnight_timestamp
from weatherwidget.models.forecast import TemperatureRange


class TestParseForecast:
    def test_drops_days_before_today(self, raw_forecast):
        forecast = parse_forecast(raw_forecast(offsets=(-1, 0)))

        assert len(forecast.week) == 1
        assert forecast.week[0].time == local_midnight_timestamp()
        assert forecast.week[0].temperature == TemperatureRange(min=5, max=10)

    def test_current_conditions(self, raw_forecast):
        forecast = parse_forecast(raw_forecast(current_temp=-4.5))

        assert forecast.current.temperature == -4.5
        assert forecast.current.summary == "Clear"
        assert forecast.current.wind_speed == 2.5
        assert forecast.current.humidity == 0.6

    def test_week_sorted_ascending(self, raw_forecast):
        forecast = parse_forecast(raw_forecast(offsets=(3, 0, 2, 1)))

        times = [d.time for d in forecast.week]
        assert times == sorted(times)
        assert len(times) == 4

    def test_explicit_now(self, load_fixture):
        raw = load_fixture("forecast_moscow.json")
        days = raw["daily"]["data"]
        # Noon of the second day in local time: the first day is in the past.
        now = datetime.fromtimestamp(days[1]["time"] + 12 * 3600)
        today = local_midnight_timestamp(now)

        forecast = parse_forecast(raw, now=now)

        expected = [d["time"] for d in days if d["time"] >= today]
        assert [d.time for d in forecast.week] == expected

    def test_no_daily_block(self, raw_forecast):
        raw = raw_forecast()
        del raw["daily"]
        assert parse_forecast(raw).week == []

    def test_missing_wind_and_humidity_default_to_zero(self, raw_forecast):
        raw = raw_forecast(offsets=(0,))
        del raw["currently"]["windSpeed"]
        del raw["daily"]["data"][0]["humidity"]

        forecast = parse_forecast(raw)
        assert forecast.current.wind_speed == 0.0
        assert forecast.week[0].humidity == 0.0

    def test_missing_currently(self, raw_forecast):
        raw = raw_forecast()
        del raw["currently"]
        with pytest.raises(ParseError):
            parse_forecast(raw)

    def test_non_numeric_temperature(self, raw_forecast):
        raw = raw_forecast(offsets=(0,))
        raw["daily"]["data"][0]["temperatureMax"] = "hot"
        with pytest.raises(ParseError):
            parse_forecast(raw)

    def test_missing_temperature_min(self, raw_forecast):
        raw = raw_forecast(offsets=(1,))
        del raw["daily"]["data"][0]["temperatureMin"]
        with pytest.raises(ParseError):
            parse_forecast(raw)
