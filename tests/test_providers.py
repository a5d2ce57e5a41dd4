"""
Tests for the provider connectors

Every connector is driven through httpx.MockTransport, so these tests check
the mapping from each provider's JSON into a NormalizedReading (units,
condition codes, daily/hourly/astronomy blocks) and the conversion of every
failure into a SourceFailure. No real network calls are made.

Run with: python -m pytest tests/test_providers.py -v
"""

import json
import logging
import sys
from pathlib import Path

import httpx
import pytest

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

sys.path.insert(0, str(Path(__file__).parent.parent))

from smart_meteo.config import load_settings
from smart_meteo.errors import SourceFailure
from smart_meteo.providers import build_providers
from smart_meteo.providers.accuweather import AccuWeatherProvider
from smart_meteo.providers.met_no import MetNoProvider
from smart_meteo.providers.meteomatics import MeteomaticsProvider, symbol_to_text
from smart_meteo.providers.meteostat import MeteostatProvider
from smart_meteo.providers.open_meteo import OpenMeteoProvider
from smart_meteo.providers.openweathermap import OpenWeatherMapProvider
from smart_meteo.providers.tomorrow import TomorrowProvider
from smart_meteo.providers.weatherapi import WeatherAPIProvider
from smart_meteo.providers.weatherstack import WeatherstackProvider
from smart_meteo.providers.worldweatheronline import WorldWeatherOnlineProvider, hourly_time
from smart_meteo.registry import DEFAULT_SOURCES

LAT, LON = 45.46, 9.19


class Recorder:
    """MockTransport handler that serves canned JSON and remembers requests."""

    def __init__(self, body=None, status=200, routes=None):
        self.body = body
        self.status = status
        self.routes = routes or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for fragment, (status, body) in self.routes.items():
            if fragment in request.url.path:
                return httpx.Response(status, json=body)
        return httpx.Response(self.status, json=self.body)

    @property
    def transport(self):
        return httpx.MockTransport(self)


def open_meteo_payload():
    hours = [f"2026-10-19T{h:02d}:00" for h in range(24)] + [f"2026-10-20T{h:02d}:00" for h in range(24)]
    days = [f"2026-10-{d}" for d in range(19, 26)]
    return {
        "current": {
            "time": "2026-10-19T10:15",
            "temperature_2m": 14.26,
            "relative_humidity_2m": 71,
            "apparent_temperature": 13.1,
            "precipitation": 0.2,
            "weather_code": 61,
            "pressure_msl": 1014.2,
            "wind_speed_10m": 3.4,
            "wind_direction_10m": 250,
            "wind_gusts_10m": 7.9,
        },
        "hourly": {
            "time": hours,
            "temperature_2m": [10.0 + i * 0.1 for i in range(48)],
            "precipitation_probability": [i for i in range(48)],
            "weather_code": [3] * 48,
        },
        "daily": {
            "time": days,
            "weather_code": [61, 0, 3, 45, 95, 71, 2],
            "temperature_2m_max": [16.0, 18.0, 17.0, 15.0, 14.0, 5.0, 12.0],
            "temperature_2m_min": [9.0, 8.0, 7.0, 6.0, 5.0, -1.0, 3.0],
            "precipitation_probability_max": [80, 0, 10, 20, 90, 60, 5],
            "sunrise": [f"{d}T07:30" for d in days],
            "sunset": [f"{d}T18:20" for d in days],
        },
    }


class TestOpenMeteo:

    @pytest.mark.asyncio
    async def test_full_payload(self):
        rec = Recorder(open_meteo_payload())
        reading = await OpenMeteoProvider(transport=rec.transport).fetch(LAT, LON)

        logger.info(f"[TEST] Open-Meteo reading: {reading.temperature}C {reading.condition_code}")
        assert reading.source == "open-meteo"
        assert reading.temperature == 14.3
        assert reading.humidity == 71.0
        assert reading.wind_speed == 3.4
        assert reading.condition_text == "Light Rain"
        assert reading.condition_code == "rain"
        # current probability is taken from the current hour
        assert reading.precipitation_probability == 10.0

        assert len(reading.hourly) == 24
        assert reading.hourly[0].time == "2026-10-19T10:00"
        assert reading.hourly[0].condition_code == "cloudy"

        assert len(reading.daily) == 7
        assert reading.daily[1].condition_code == "clear"
        assert reading.daily[3].condition_code == "fog"
        assert reading.daily[4].condition_code == "storm"

        assert reading.astronomy.sunrise == "2026-10-19T07:30"
        assert reading.astronomy.moon_phase is not None

        params = rec.requests[0].url.params
        assert params["wind_speed_unit"] == "ms"
        assert params["latitude"] == str(LAT)

    @pytest.mark.asyncio
    async def test_server_error(self):
        rec = Recorder({"error": True, "reason": "boom"}, status=500)
        with pytest.raises(SourceFailure) as exc:
            await OpenMeteoProvider(transport=rec.transport).fetch(LAT, LON)
        assert exc.value.source == "open-meteo"
        assert exc.value.error_type == "api_error"
        assert "500" in exc.value.message

    @pytest.mark.asyncio
    async def test_malformed_payload(self):
        rec = Recorder({"hourly": {}})
        with pytest.raises(SourceFailure) as exc:
            await OpenMeteoProvider(transport=rec.transport).fetch(LAT, LON)
        assert exc.value.error_type == "parse_error"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(SourceFailure) as exc:
            await OpenMeteoProvider(transport=httpx.MockTransport(handler)).fetch(LAT, LON)
        assert exc.value.error_type == "parse_error"

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(SourceFailure) as exc:
            await OpenMeteoProvider(transport=httpx.MockTransport(handler)).fetch(LAT, LON)
        assert exc.value.error_type == "timeout"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SourceFailure) as exc:
            await OpenMeteoProvider(transport=httpx.MockTransport(handler)).fetch(LAT, LON)
        assert exc.value.error_type == "api_error"


class TestKeyedProviders:

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self):
        rec = Recorder({})
        with pytest.raises(SourceFailure) as exc:
            await TomorrowProvider(api_key="", transport=rec.transport).fetch(LAT, LON)
        assert exc.value.error_type == "missing_credentials"
        assert "TOMORROW_API_KEY" in exc.value.message
        assert rec.requests == []

    @pytest.mark.asyncio
    async def test_tomorrow(self):
        rec = Recorder({"data": {"time": "2026-10-19T10:00:00Z", "values": {
            "temperature": 11.2, "temperatureApparent": 10.0, "humidity": 80,
            "windSpeed": 4.1, "windDirection": 180, "windGust": 8.0,
            "weatherCode": 4001, "precipitationProbability": 65, "rainIntensity": 0.8,
        }}})
        reading = await TomorrowProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)

        assert reading.condition_text == "Rain"
        assert reading.condition_code == "rain"
        assert reading.precipitation_probability == 65.0
        assert reading.precipitation_intensity == 0.8
        assert rec.requests[0].url.params["units"] == "metric"

    @pytest.mark.asyncio
    async def test_openweathermap(self):
        rec = Recorder({
            "dt": 1760868000,
            "main": {"temp": 9.5, "feels_like": 7.9, "humidity": 88, "pressure": 1009},
            "wind": {"speed": 5.1, "deg": 10},
            "weather": [{"main": "Clouds", "description": "broken clouds"}],
        })
        reading = await OpenWeatherMapProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)

        assert reading.temperature == 9.5
        assert reading.wind_speed == 5.1
        assert reading.wind_gust is None
        assert reading.condition_code == "cloudy"
        assert reading.observed_at.startswith("2025-")

    @pytest.mark.asyncio
    async def test_rejected_key(self):
        rec = Recorder({"cod": 401, "message": "Invalid API key"}, status=401)
        with pytest.raises(SourceFailure) as exc:
            await OpenWeatherMapProvider(api_key="bad", transport=rec.transport).fetch(LAT, LON)
        assert exc.value.error_type == "missing_credentials"
        assert exc.value.message == "HTTP 401: credentials rejected"

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        rec = Recorder({}, status=429)
        with pytest.raises(SourceFailure) as exc:
            await WeatherAPIProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)
        assert exc.value.error_type == "rate_limit"

    @pytest.mark.asyncio
    async def test_weatherapi_converts_kmh(self):
        rec = Recorder({"current": {
            "last_updated": "2026-10-19 10:00",
            "temp_c": 15.0, "feelslike_c": 14.0, "humidity": 60,
            "wind_kph": 36.0, "wind_degree": 270, "gust_kph": 54.0,
            "condition": {"text": "Patchy light drizzle"},
            "air_quality": {"us-epa-index": 2},
        }})
        reading = await WeatherAPIProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)

        assert reading.wind_speed == 10.0
        assert reading.wind_gust == 15.0
        assert reading.air_quality_index == 2.0
        assert reading.condition_code == "rain"
        assert rec.requests[0].url.params["aqi"] == "yes"

    @pytest.mark.asyncio
    async def test_weatherstack_error_body(self):
        rec = Recorder({"success": False, "error": {"code": 101, "type": "invalid_access_key"}})
        with pytest.raises(SourceFailure) as exc:
            await WeatherstackProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)
        assert exc.value.error_type == "api_error"
        assert exc.value.message == "Weatherstack API error: invalid_access_key"

    @pytest.mark.asyncio
    async def test_weatherstack(self):
        rec = Recorder({
            "location": {"localtime_epoch": 1760868000},
            "current": {"temperature": 12, "feelslike": 11, "humidity": 70,
                        "wind_speed": 18, "wind_degree": 90,
                        "weather_descriptions": ["Sunny"]},
        })
        reading = await WeatherstackProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)
        assert reading.wind_speed == 5.0
        assert reading.condition_code == "clear"


class TestAccuWeather:

    def routes(self):
        return {
            "/geoposition/search": (200, {"Key": "214046"}),
            "/currentconditions/v1/214046": (200, [{
                "LocalObservationDateTime": "2026-10-19T10:00:00+02:00",
                "WeatherText": "Mostly cloudy",
                "Temperature": {"Metric": {"Value": 13.3}},
                "RealFeelTemperature": {"Metric": {"Value": 12.0}},
                "RelativeHumidity": 77,
                "Wind": {"Direction": {"Degrees": 45}, "Speed": {"Metric": {"Value": 7.2}}},
                "WindGust": {"Speed": {"Metric": {"Value": 18.0}}},
            }]),
        }

    @pytest.mark.asyncio
    async def test_current_conditions(self):
        rec = Recorder(routes=self.routes())
        reading = await AccuWeatherProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)

        assert reading.temperature == 13.3
        assert reading.feels_like == 12.0
        assert reading.wind_speed == 2.0
        assert reading.wind_gust == 5.0
        assert reading.condition_code == "cloudy"
        assert rec.requests[1].url.params["details"] == "true"

    @pytest.mark.asyncio
    async def test_location_key_cached_by_rounded_coordinates(self):
        rec = Recorder(routes=self.routes())
        provider = AccuWeatherProvider(api_key="k", transport=rec.transport)

        await provider.fetch(45.4612, 9.1901)
        await provider.fetch(45.4598, 9.1897)

        lookups = [r for r in rec.requests if "geoposition" in r.url.path]
        logger.info(f"[TEST] {len(rec.requests)} requests, {len(lookups)} geoposition lookups")
        assert len(lookups) == 1
        assert len(rec.requests) == 3

    @pytest.mark.asyncio
    async def test_cache_not_shared_between_instances(self):
        rec = Recorder(routes=self.routes())
        await AccuWeatherProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)
        await AccuWeatherProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)
        assert len([r for r in rec.requests if "geoposition" in r.url.path]) == 2

    @pytest.mark.asyncio
    async def test_failed_lookup_not_cached(self):
        rec = Recorder(routes={"/geoposition/search": (200, {})})
        provider = AccuWeatherProvider(api_key="k", transport=rec.transport)
        with pytest.raises(SourceFailure):
            await provider.fetch(LAT, LON)
        assert provider._location_keys == {}


class TestMeteomatics:

    def payload(self, symbol=5):
        def entry(name, value):
            return {"parameter": name, "coordinates": [{"dates": [{"value": value}]}]}
        return {"status": "OK", "data": [
            entry("t_2m:C", 8.4),
            entry("relative_humidity_2m:p", 91.0),
            entry("wind_speed_10m:ms", 2.5),
            entry("wind_dir_10m:d", 300.0),
            entry("weather_symbol_1h:idx", symbol),
            entry("prob_precip_1h:p", 45.0),
        ]}

    @pytest.mark.asyncio
    async def test_point_query(self):
        rec = Recorder(self.payload())
        provider = MeteomaticsProvider(username="u", password="p", transport=rec.transport)
        reading = await provider.fetch(LAT, LON)

        assert reading.temperature == 8.4
        assert reading.feels_like == 8.4
        assert reading.condition_code == "rain"
        assert reading.precipitation_probability == 45.0
        assert rec.requests[0].headers["authorization"].startswith("Basic ")
        assert rec.requests[0].url.path.endswith(f"/{LAT},{LON}/json")

    def test_night_symbols(self):
        assert symbol_to_text(101) == symbol_to_text(1) == "Clear sky"
        assert symbol_to_text(None) is None

    @pytest.mark.asyncio
    async def test_status_not_ok(self):
        rec = Recorder({"status": "error", "message": "no access"})
        provider = MeteomaticsProvider(username="u", password="p", transport=rec.transport)
        with pytest.raises(SourceFailure) as exc:
            await provider.fetch(LAT, LON)
        assert exc.value.error_type == "parse_error"

    @pytest.mark.asyncio
    async def test_missing_password(self):
        provider = MeteomaticsProvider(username="u", password="", transport=Recorder({}).transport)
        with pytest.raises(SourceFailure) as exc:
            await provider.fetch(LAT, LON)
        assert exc.value.error_type == "missing_credentials"


class TestWorldWeatherOnline:

    def payload(self):
        hourly = [
            {"time": str(h * 100), "tempC": str(8 + h), "chanceofrain": str(h * 4),
             "weatherDesc": [{"value": "Light rain" if h >= 12 else "Partly cloudy"}]}
            for h in range(0, 24, 3)
        ]
        return {"data": {
            "current_condition": [{
                "temp_C": "12", "FeelsLikeC": "10", "humidity": "82",
                "windspeedKmph": "18", "winddirDegree": "200", "WindGustKmph": "27",
                "pressure": "1012", "precipMM": "0.3",
                "weatherDesc": [{"value": "Light rain shower"}],
            }],
            "weather": [
                {"date": "2026-10-19", "maxtempC": "16", "mintempC": "7",
                 "astronomy": [{"sunrise": "07:31 AM", "sunset": "06:22 PM"}],
                 "hourly": hourly},
                {"date": "2026-10-20", "maxtempC": "15", "mintempC": "6", "hourly": []},
            ],
        }}

    @pytest.mark.asyncio
    async def test_string_numbers_and_blocks(self):
        rec = Recorder(self.payload())
        reading = await WorldWeatherOnlineProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)

        assert reading.temperature == 12.0
        assert reading.wind_speed == 5.0
        assert reading.wind_gust == 7.5
        assert reading.condition_code == "rain"

        assert [d.date for d in reading.daily] == ["2026-10-19", "2026-10-20"]
        assert reading.daily[0].temp_max == 16.0
        assert reading.daily[0].precipitation_probability == 84.0
        assert reading.daily[1].precipitation_probability is None

        assert len(reading.hourly) == 8
        assert reading.hourly[1].time == "2026-10-19T03:00:00"

        assert reading.astronomy.sunrise == "2026-10-19T07:31:00"
        assert reading.astronomy.sunset == "2026-10-19T18:22:00"

    @pytest.mark.asyncio
    async def test_non_numeric_chance_of_rain(self):
        payload = self.payload()
        days = payload["data"]["weather"]
        days[0]["hourly"][0]["chanceofrain"] = "N/A"
        days[0]["hourly"][7]["chanceofrain"] = ""
        days[1]["hourly"] = [{"time": "0", "tempC": "6", "chanceofrain": "N/A"}]

        rec = Recorder(payload)
        reading = await WorldWeatherOnlineProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)

        assert reading.temperature == 12.0
        # max over the numeric slots only (hour 18 -> 72)
        assert reading.daily[0].precipitation_probability == 72.0
        assert reading.daily[1].precipitation_probability is None
        assert reading.hourly[0].precipitation_probability is None
        assert reading.hourly[1].precipitation_probability == 12.0

    def test_hourly_time(self):
        assert hourly_time("2026-10-19", "0") == "2026-10-19T00:00:00"
        assert hourly_time("2026-10-19", "2300") == "2026-10-19T23:00:00"


class TestMeteostat:

    @pytest.mark.asyncio
    async def test_latest_row_with_temperature(self):
        rec = Recorder({"data": [
            {"time": "2026-10-19 08:00:00", "temp": 9.0, "rhum": 90, "wspd": 7.2, "coco": 3},
            {"time": "2026-10-19 09:00:00", "temp": 10.0, "rhum": 85, "wspd": 10.8, "coco": 7},
            {"time": "2026-10-19 10:00:00", "temp": None, "coco": None},
        ]})
        reading = await MeteostatProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)

        assert reading.temperature == 10.0
        assert reading.wind_speed == 3.0
        assert reading.condition_code == "rain"
        assert rec.requests[0].headers["x-rapidapi-key"] == "k"

    @pytest.mark.asyncio
    async def test_no_rows(self):
        rec = Recorder({"data": []})
        with pytest.raises(SourceFailure) as exc:
            await MeteostatProvider(api_key="k", transport=rec.transport).fetch(LAT, LON)
        assert exc.value.error_type == "api_error"


class TestMetNo:

    def payload(self):
        def item(time, temp, symbol):
            return {"time": time, "data": {
                "instant": {"details": {"air_temperature": temp, "relative_humidity": 70.0,
                                        "wind_speed": 3.0, "wind_from_direction": 120.0}},
                "next_1_hours": {"summary": {"symbol_code": symbol},
                                 "details": {"precipitation_amount": 0.4}},
            }}
        return {"properties": {"timeseries": [
            item("2026-10-19T10:00:00Z", 11.0, "lightrain_day"),
            item("2026-10-19T11:00:00Z", 13.0, "cloudy"),
            item("2026-10-19T12:00:00Z", 12.0, "lightrain_day"),
            item("2026-10-20T00:00:00Z", 4.0, "clearsky_night"),
        ]}}

    @pytest.mark.asyncio
    async def test_user_agent_and_mapping(self):
        rec = Recorder(self.payload())
        reading = await MetNoProvider(user_agent="TestAgent/1.0", transport=rec.transport).fetch(LAT, LON)

        assert rec.requests[0].headers["user-agent"] == "TestAgent/1.0"
        assert reading.temperature == 11.0
        assert reading.condition_code == "rain"
        assert len(reading.hourly) == 4

        days = {d.date: d for d in reading.daily}
        assert days["2026-10-19"].temp_max == 13.0
        assert days["2026-10-19"].temp_min == 11.0
        assert days["2026-10-19"].condition_code == "rain"
        assert days["2026-10-20"].condition_code == "clear"

    @pytest.mark.asyncio
    async def test_empty_timeseries(self):
        rec = Recorder({"properties": {"timeseries": []}})
        with pytest.raises(SourceFailure) as exc:
            await MetNoProvider(transport=rec.transport).fetch(LAT, LON)
        assert exc.value.error_type == "parse_error"


class TestBuildProviders:

    def test_one_connector_per_catalogue_entry(self):
        settings = load_settings(env={"TOMORROW_API_KEY": "t"})
        providers = build_providers(settings)
        assert set(providers) == {d.id for d in DEFAULT_SOURCES}
        assert providers["tomorrow.io"].api_key == "t"
        assert providers["weatherapi"].api_key == ""

    @pytest.mark.asyncio
    async def test_shared_transport(self):
        rec = Recorder(open_meteo_payload())
        providers = build_providers(load_settings(env={}), transport=rec.transport)
        reading = await providers["open-meteo"].fetch(LAT, LON)
        assert reading.source == "open-meteo"
        assert len(rec.requests) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
