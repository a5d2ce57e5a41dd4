"""
Meteomatics Provider for Smart Meteo

Point query for "now" against the Meteomatics time-series API (HTTP basic
auth). Values come back per parameter; wind is requested in m/s. The weather
symbol index is translated to text, night symbols being day symbol + 100.

Meteomatics does not offer an apparent temperature in this parameter set, so
feels-like mirrors the air temperature.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from smart_meteo.conditions import METEOMATICS_SYMBOLS, code_to_text
from smart_meteo.models import NormalizedReading
from smart_meteo.providers.base import WeatherProvider, as_float, dig

logger = logging.getLogger(__name__)

PARAMETERS = (
    "t_2m:C",
    "prob_precip_1h:p",
    "wind_speed_10m:ms",
    "wind_dir_10m:d",
    "wind_gusts_10m_1h:ms",
    "weather_symbol_1h:idx",
    "relative_humidity_2m:p",
    "msl_pressure:hPa",
    "precip_1h:mm",
)


def symbol_to_text(symbol: Any) -> Optional[str]:
    index = as_float(symbol)
    if index is None:
        return None
    index = int(index)
    if index > 100:
        index -= 100
    return code_to_text(METEOMATICS_SYMBOLS, index) or f"Symbol_{index}"


class MeteomaticsProvider(WeatherProvider):
    """Connector for api.meteomatics.com."""

    source_id = "meteomatics"
    display_name = "Meteomatics"
    BASE_URL = "https://api.meteomatics.com"

    def __init__(self, username: Optional[str] = None, password: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.username = username if username is not None else os.getenv("METEOMATICS_USER")
        self.password = password if password is not None else os.getenv("METEOMATICS_PASSWORD")

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        username = self._require(self.username, "METEOMATICS_USER")
        password = self._require(self.password, "METEOMATICS_PASSWORD")

        now = datetime.now(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")
        url = f"{self.BASE_URL}/{now}/{','.join(PARAMETERS)}/{latitude},{longitude}/json"

        async with self._client(auth=(username, password)) as client:
            data = await self._get_json(client, url)

        if not isinstance(data, dict) or data.get("status") != "OK":
            raise self._malformed(f"status={dig(data, 'status')!r}")

        values = self._values_by_parameter(data)
        temperature = values.get("t_2m:C")

        return self._reading(
            latitude, longitude,
            observed_at=now,
            temperature=temperature,
            feels_like=temperature,
            humidity=values.get("relative_humidity_2m:p"),
            wind_speed=values.get("wind_speed_10m:ms"),
            wind_direction=values.get("wind_dir_10m:d"),
            wind_gust=values.get("wind_gusts_10m_1h:ms"),
            pressure=values.get("msl_pressure:hPa"),
            condition_text=symbol_to_text(values.get("weather_symbol_1h:idx")),
            precipitation_probability=values.get("prob_precip_1h:p"),
            precipitation_intensity=values.get("precip_1h:mm"),
        )

    @staticmethod
    def _values_by_parameter(data: Dict[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for entry in data.get("data") or []:
            name = entry.get("parameter") if isinstance(entry, dict) else None
            if name:
                values[name] = dig(entry, "coordinates", 0, "dates", 0, "value")
        return values
