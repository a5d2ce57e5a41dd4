"""
AccuWeather Provider for Smart Meteo

Two-step connector:
1. Geoposition search resolves the coordinates to an AccuWeather location key
2. Current conditions are fetched for that key (details=true for RealFeel,
   gusts and pressure)

RATE LIMITING:
- Free Tier: 50 calls/day
- Location keys are cached for the process lifetime, keyed by coordinates
  rounded to 2 decimals (~1 km), so repeated queries for the same place cost
  one call instead of two.

Native wind units are km/h (converted to m/s).
"""

import logging
import os
from typing import Dict, Optional, Tuple

import httpx

from smart_meteo.models import NormalizedReading
from smart_meteo.providers.base import WeatherProvider, dig, kmh_to_ms

logger = logging.getLogger(__name__)

LOCATION_KEY_PRECISION = 2


class AccuWeatherProvider(WeatherProvider):
    """
    Provider for AccuWeather current conditions.
    Restricted to 50 calls/day (Free Tier).
    """

    source_id = "accuweather"
    display_name = "AccuWeather"
    BASE_URL = "https://dataservice.accuweather.com"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("ACCUWEATHER_API_KEY")
        if not self.api_key:
            logger.warning("[AccuWeatherProvider] No API Key found in env!")
        self._location_keys: Dict[Tuple[float, float], str] = {}

    @staticmethod
    def cache_key(latitude: float, longitude: float) -> Tuple[float, float]:
        return (round(latitude, LOCATION_KEY_PRECISION), round(longitude, LOCATION_KEY_PRECISION))

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        api_key = self._require(self.api_key, "ACCUWEATHER_API_KEY")

        async with self._client() as client:
            location_key = await self._location_key(client, api_key, latitude, longitude)
            logger.info("[AccuWeatherProvider] API CALL - This counts against 50/day quota!")
            data = await self._get_json(
                client,
                f"{self.BASE_URL}/currentconditions/v1/{location_key}",
                params={"apikey": api_key, "details": "true"},
            )

        current = data[0] if isinstance(data, list) and data else None
        if not isinstance(current, dict):
            raise self._malformed("empty current conditions list")

        return self._reading(
            latitude, longitude,
            observed_at=current.get("LocalObservationDateTime"),
            temperature=dig(current, "Temperature", "Metric", "Value"),
            feels_like=dig(current, "RealFeelTemperature", "Metric", "Value"),
            humidity=current.get("RelativeHumidity"),
            wind_speed=kmh_to_ms(dig(current, "Wind", "Speed", "Metric", "Value")),
            wind_direction=dig(current, "Wind", "Direction", "Degrees"),
            wind_gust=kmh_to_ms(dig(current, "WindGust", "Speed", "Metric", "Value")),
            pressure=dig(current, "Pressure", "Metric", "Value"),
            condition_text=current.get("WeatherText"),
            precipitation_intensity=dig(current, "PrecipitationSummary", "PastHour", "Metric", "Value"),
        )

    async def _location_key(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        latitude: float,
        longitude: float,
    ) -> str:
        key = self.cache_key(latitude, longitude)
        cached = self._location_keys.get(key)
        if cached:
            logger.info(f"[AccuWeatherProvider] CACHE HIT - location key {cached} for {key}")
            return cached

        logger.info(f"[AccuWeatherProvider] Resolving location key for {key}...")
        data = await self._get_json(
            client,
            f"{self.BASE_URL}/locations/v1/cities/geoposition/search",
            params={"apikey": api_key, "q": f"{latitude},{longitude}"},
        )
        location_key = data.get("Key") if isinstance(data, dict) else None
        if not location_key:
            raise self._malformed("geoposition search returned no location key")

        self._location_keys[key] = str(location_key)
        return str(location_key)
