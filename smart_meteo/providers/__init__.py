"""
Providers package for Smart Meteo

One connector per weather data provider. Each implements the same capability,
`await provider.fetch(lat, lon) -> NormalizedReading`, and raises SourceFailure
when it cannot deliver.

Registry ids (keys of build_providers()):
1. tomorrow.io        - Tomorrow.io realtime
2. open-meteo         - Open-Meteo forecast (no key)
3. openweathermap     - OpenWeatherMap current weather
4. weatherapi         - WeatherAPI.com current + air quality
5. accuweather        - AccuWeather current conditions (location-key lookup)
6. meteomatics        - Meteomatics point query
7. worldweatheronline - World Weather Online (daily/hourly/astronomy)
8. weatherstack       - Weatherstack current
9. meteostat          - Meteostat station observations
10. met-no            - Met.no Locationforecast (no key)
"""

from typing import Dict, Optional

import httpx

from smart_meteo.config import Settings
from smart_meteo.providers.accuweather import AccuWeatherProvider
from smart_meteo.providers.base import WeatherProvider
from smart_meteo.providers.met_no import MetNoProvider
from smart_meteo.providers.meteomatics import MeteomaticsProvider
from smart_meteo.providers.meteostat import MeteostatProvider
from smart_meteo.providers.open_meteo import OpenMeteoProvider
from smart_meteo.providers.openweathermap import OpenWeatherMapProvider
from smart_meteo.providers.tomorrow import TomorrowProvider
from smart_meteo.providers.weatherapi import WeatherAPIProvider
from smart_meteo.providers.weatherstack import WeatherstackProvider
from smart_meteo.providers.worldweatheronline import WorldWeatherOnlineProvider


def build_providers(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, WeatherProvider]:
    """
    Instantiate every known connector, keyed by registry id.

    Credentials come from `settings`; a missing credential does not prevent
    construction - that connector simply fails (abstains) when called.
    """
    common = {"timeout": settings.http_timeout, "transport": transport}
    cred = settings.credential
    providers = [
        TomorrowProvider(api_key=cred("tomorrow") or "", **common),
        OpenMeteoProvider(**common),
        OpenWeatherMapProvider(api_key=cred("openweather") or "", **common),
        WeatherAPIProvider(api_key=cred("weatherapi") or "", **common),
        AccuWeatherProvider(api_key=cred("accuweather") or "", **common),
        MeteomaticsProvider(
            username=cred("meteomatics_user") or "",
            password=cred("meteomatics_password") or "",
            **common,
        ),
        WorldWeatherOnlineProvider(api_key=cred("worldweather") or "", **common),
        WeatherstackProvider(api_key=cred("weatherstack") or "", **common),
        MeteostatProvider(api_key=cred("meteostat") or "", **common),
        MetNoProvider(user_agent=settings.met_no_user_agent, **common),
    ]
    return {p.source_id: p for p in providers}


__all__ = [
    "build_providers",
    "WeatherProvider",
    "AccuWeatherProvider",
    "MeteomaticsProvider",
    "MeteostatProvider",
    "MetNoProvider",
    "OpenMeteoProvider",
    "OpenWeatherMapProvider",
    "TomorrowProvider",
    "WeatherAPIProvider",
    "WeatherstackProvider",
    "WorldWeatherOnlineProvider",
]
