"""
Met.no (Norwegian Meteorological Institute) Provider for Smart Meteo

Fetches weather data from api.met.no which uses the ECMWF (European) model.
No API key, but the terms of service require an identifying User-Agent.

The compact Locationforecast 2.0 product is a plain time series:
- first entry            -> current conditions
- next 24 entries        -> hourly summaries
- per-date high/low over the series -> daily summaries

Symbol codes look like "partlycloudy_day" or "lightrainshowers_night"; the
variant suffix is dropped before normalization.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from smart_meteo.conditions import met_no_symbol_to_text, normalize_condition
from smart_meteo.config import DEFAULT_USER_AGENT
from smart_meteo.models import DailySummary, HourlySummary, NormalizedReading
from smart_meteo.providers.base import WeatherProvider, as_float, dig

logger = logging.getLogger(__name__)

HOURLY_WINDOW = 24
DAILY_DAYS = 7


def _symbol(item: Dict[str, Any]) -> Optional[str]:
    return (dig(item, "data", "next_1_hours", "summary", "symbol_code")
            or dig(item, "data", "next_6_hours", "summary", "symbol_code"))


class MetNoProvider(WeatherProvider):
    """
    Provider for Met.no (YR.no backend) data.

    Uses the Locationforecast 2.0 API with compact format.
    """

    source_id = "met-no"
    display_name = "Met.no"
    BASE_URL = "https://api.met.no/weatherapi/locationforecast/2.0/compact"

    def __init__(self, user_agent: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.user_agent = user_agent or os.getenv("MET_NO_USER_AGENT") or DEFAULT_USER_AGENT

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        # Met.no asks clients to truncate coordinates to 4 decimals
        params = {"lat": round(latitude, 4), "lon": round(longitude, 4)}

        async with self._client(headers={"User-Agent": self.user_agent}) as client:
            data = await self._get_json(client, self.BASE_URL, params=params)

        timeseries = dig(data, "properties", "timeseries")
        if not isinstance(timeseries, list) or not timeseries:
            raise self._malformed("no timeseries data in response")

        first = timeseries[0]
        details = dig(first, "data", "instant", "details") or {}

        logger.info(f"[MetNoProvider] Retrieved {len(timeseries)} timeseries records")

        return self._reading(
            latitude, longitude,
            observed_at=first.get("time"),
            temperature=details.get("air_temperature"),
            humidity=details.get("relative_humidity"),
            wind_speed=details.get("wind_speed"),
            wind_direction=details.get("wind_from_direction"),
            wind_gust=details.get("wind_speed_of_gust"),
            pressure=details.get("air_pressure_at_sea_level"),
            condition_text=met_no_symbol_to_text(_symbol(first)),
            precipitation_probability=dig(first, "data", "next_1_hours", "details",
                                          "probability_of_precipitation"),
            precipitation_intensity=dig(first, "data", "next_1_hours", "details", "precipitation_amount"),
            hourly=self._parse_hourly(timeseries),
            daily=self.process_daily_high_low(timeseries),
        )

    def _parse_hourly(self, timeseries: List[Dict[str, Any]]) -> List[HourlySummary]:
        return [
            HourlySummary(
                time=item.get("time", ""),
                temperature=dig(item, "data", "instant", "details", "air_temperature"),
                precipitation_probability=dig(item, "data", "next_1_hours", "details",
                                              "probability_of_precipitation"),
                condition_text=met_no_symbol_to_text(_symbol(item)),
            )
            for item in timeseries[:HOURLY_WINDOW]
            if isinstance(item, dict) and item.get("time")
        ]

    def process_daily_high_low(self, timeseries: List[Dict[str, Any]]) -> List[DailySummary]:
        """
        Aggregate the time series into daily high/low summaries.

        The day's condition is the most frequent normalized condition among
        its entries (first seen wins a tie).
        """
        daily_map: Dict[str, Dict[str, list]] = {}

        for item in timeseries:
            time_str = item.get("time", "") if isinstance(item, dict) else ""
            temp = as_float(dig(item, "data", "instant", "details", "air_temperature"))
            if not time_str or temp is None:
                continue

            # Met.no uses ISO format like 2025-12-12T12:00:00Z
            date_key = time_str.split("T")[0]
            bucket = daily_map.setdefault(date_key, {"temps": [], "texts": []})
            bucket["temps"].append(temp)
            text = met_no_symbol_to_text(_symbol(item))
            if text:
                bucket["texts"].append(text)

        results: List[DailySummary] = []
        for date_key in sorted(daily_map)[:DAILY_DAYS]:
            bucket = daily_map[date_key]
            text = self._most_common_text(bucket["texts"])
            results.append(DailySummary(
                date=date_key,
                temp_max=max(bucket["temps"]),
                temp_min=min(bucket["temps"]),
                condition_text=text,
            ))
            logger.debug(f"[MetNoProvider] Daily {date_key}: High={max(bucket['temps']):.1f}C, "
                         f"Low={min(bucket['temps']):.1f}C")

        logger.info(f"[MetNoProvider] Aggregated {len(results)} days from hourly data")
        return results

    @staticmethod
    def _most_common_text(texts: List[str]) -> Optional[str]:
        counts: Dict[str, int] = {}
        first_text: Dict[str, str] = {}
        for text in texts:
            code = normalize_condition(text)
            counts[code] = counts.get(code, 0) + 1
            first_text.setdefault(code, text)
        if not counts:
            return None
        best = max(counts, key=lambda c: counts[c])
        return first_text[best]
