"""
Meteostat Provider for Smart Meteo

Station observations via RapidAPI (`point/hourly`). Meteostat is historical
data, so the "current" reading is the most recent hour available for today
(UTC); if the day has no rows yet the source abstains.

Response keys: time, temp, dwpt, rhum, prcp, snow, wdir, wspd, wpgt, pres,
tsun, coco. Wind speed and peak gust are km/h (converted to m/s).
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from smart_meteo.conditions import METEOSTAT_CODES, code_to_text
from smart_meteo.errors import SourceFailure
from smart_meteo.models import NormalizedReading
from smart_meteo.providers.base import WeatherProvider, kmh_to_ms

logger = logging.getLogger(__name__)


class MeteostatProvider(WeatherProvider):
    """Connector for meteostat.p.rapidapi.com point/hourly."""

    source_id = "meteostat"
    display_name = "Meteostat"
    HOST = "meteostat.p.rapidapi.com"
    URL = f"https://{HOST}/point/hourly"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key if api_key is not None else os.getenv("METEOSTAT_KEY")

    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        api_key = self._require(self.api_key, "METEOSTAT_KEY")
        today = datetime.now(timezone.utc).date().isoformat()
        params = {"lat": latitude, "lon": longitude, "start": today, "end": today, "tz": "UTC"}
        headers = {"x-rapidapi-host": self.HOST, "x-rapidapi-key": api_key}

        async with self._client(headers=headers) as client:
            data = await self._get_json(client, self.URL, params=params)

        rows = data.get("data") if isinstance(data, dict) else None
        rows = [r for r in (rows or []) if isinstance(r, dict)]
        if not rows:
            raise SourceFailure(self.source_id, f"No observations for {today} yet", "api_error")

        # Later hours can be empty placeholders; keep the last one with a temperature
        latest = next((r for r in reversed(rows) if r.get("temp") is not None), rows[-1])
        coco = latest.get("coco")
        logger.debug(f"[MeteostatProvider] {len(rows)} rows, using {latest.get('time')}")

        return self._reading(
            latitude, longitude,
            observed_at=latest.get("time"),
            temperature=latest.get("temp"),
            humidity=latest.get("rhum"),
            wind_speed=kmh_to_ms(latest.get("wspd")),
            wind_direction=latest.get("wdir"),
            wind_gust=kmh_to_ms(latest.get("wpgt")),
            pressure=latest.get("pres"),
            condition_text=code_to_text(METEOSTAT_CODES, coco) or (f"Code {coco}" if coco is not None else None),
            precipitation_intensity=latest.get("prcp"),
        )
