"""
Condition Normalizer for Smart Meteo.

Maps every provider's vocabulary onto one closed taxonomy:
    clear, cloudy, rain, snow, storm, fog, unknown

Free text is matched case-insensitively against ordered keyword buckets. The
order is part of the contract: a text is classified by the FIRST bucket that
matches, so "Thunderstorm with rain" lands in `rain` and "Snow Showers" in `rain`
as well. Numeric-code providers translate their codes to text with the tables
below before normalizing.
"""

from typing import Any, Dict, Mapping, Optional, Tuple

CLEAR = "clear"
CLOUDY = "cloudy"
RAIN = "rain"
SNOW = "snow"
STORM = "storm"
FOG = "fog"
UNKNOWN = "unknown"

TAXONOMY = (CLEAR, CLOUDY, RAIN, SNOW, STORM, FOG, UNKNOWN)

CONDITION_BUCKETS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (CLEAR, ("clear", "sunny")),
    (CLOUDY, ("cloud", "overcast")),
    (RAIN, ("rain", "drizzle", "shower")),
    (SNOW, ("snow", "blizzard")),
    (STORM, ("thunder", "storm")),
    (FOG, ("fog", "mist")),
)


def normalize_condition(text: Any) -> str:
    """
    Classify a provider condition description into the taxonomy.

    Pure and total: None, empty strings and anything unrecognized yield
    "unknown".
    """
    if text is None:
        return UNKNOWN
    lowered = str(text).lower()
    if not lowered.strip():
        return UNKNOWN
    for code, keywords in CONDITION_BUCKETS:
        if any(keyword in lowered for keyword in keywords):
            return code
    return UNKNOWN


def code_to_text(table: Mapping[int, str], code: Any) -> Optional[str]:
    """Look up a numeric provider code, tolerating floats and strings."""
    if code is None:
        return None
    try:
        key = int(float(code))
    except (TypeError, ValueError):
        return None
    return table.get(key)


# WMO weather interpretation codes (Open-Meteo)
# Reference: https://open-meteo.com/en/docs
WMO_CODES: Dict[int, str] = {
    0: "Clear",
    1: "Mostly Clear",
    2: "Partly Cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Fog",
    51: "Light Drizzle",
    53: "Drizzle",
    55: "Heavy Drizzle",
    56: "Freezing Drizzle",
    57: "Freezing Drizzle",
    61: "Light Rain",
    63: "Rain",
    65: "Heavy Rain",
    66: "Freezing Rain",
    67: "Freezing Rain",
    71: "Light Snow",
    73: "Snow",
    75: "Heavy Snow",
    77: "Snow Grains",
    80: "Light Showers",
    81: "Showers",
    82: "Heavy Showers",
    85: "Snow Showers",
    86: "Snow Showers",
    95: "Thunderstorm",
    96: "Thunderstorm",
    99: "Thunderstorm",
}

# Tomorrow.io weatherCode values
TOMORROW_CODES: Dict[int, str] = {
    1000: "Clear, Sunny",
    1100: "Mostly Clear",
    1101: "Partly Cloudy",
    1102: "Mostly Cloudy",
    1001: "Cloudy",
    2000: "Fog",
    2100: "Light Fog",
    4000: "Drizzle",
    4001: "Rain",
    4200: "Light Rain",
    4201: "Heavy Rain",
    5000: "Snow",
    5001: "Flurries",
    5100: "Light Snow",
    5101: "Heavy Snow",
    6000: "Freezing Drizzle",
    6001: "Freezing Rain",
    6200: "Light Freezing Rain",
    6201: "Heavy Freezing Rain",
    7000: "Ice Pellets",
    7101: "Heavy Ice Pellets",
    7102: "Light Ice Pellets",
    8000: "Thunderstorm",
}

# Meteomatics weather_symbol_1h:idx (night variants are +100)
METEOMATICS_SYMBOLS: Dict[int, str] = {
    1: "Clear sky",
    2: "Light clouds",
    3: "Partly cloudy",
    4: "Cloudy",
    5: "Rain",
    6: "Rain and snow / sleet",
    7: "Snow",
    8: "Rain shower",
    9: "Snow shower",
    10: "Sleet shower",
    11: "Light fog",
    12: "Dense fog",
    13: "Freezing rain",
    14: "Thunderstorms",
    15: "Drizzle",
    16: "Sandstorm",
}

# Meteostat `coco` condition codes
METEOSTAT_CODES: Dict[int, str] = {
    1: "Clear",
    2: "Fair",
    3: "Cloudy",
    4: "Overcast",
    5: "Fog",
    6: "Freezing Fog",
    7: "Light Rain",
    8: "Rain",
    9: "Heavy Rain",
    10: "Freezing Rain",
    11: "Heavy Freezing Rain",
    12: "Sleet",
    13: "Heavy Sleet",
    14: "Light Snowfall",
    15: "Snowfall",
    16: "Heavy Snowfall",
    17: "Rain Shower",
    18: "Heavy Rain Shower",
    19: "Sleet Shower",
    20: "Heavy Sleet Shower",
    21: "Snow Shower",
    22: "Heavy Snow Shower",
    23: "Lightning",
    24: "Hail",
    25: "Thunderstorm",
    26: "Heavy Thunderstorm",
    27: "Storm",
}

# Met.no symbol codes whose bare name does not contain a bucket keyword
MET_NO_SYMBOLS: Dict[str, str] = {
    "clearsky": "Clear sky",
    "fair": "Mostly clear",
    "partlycloudy": "Partly cloudy",
    "cloudy": "Cloudy",
    "fog": "Fog",
}


def met_no_symbol_to_text(symbol_code: Optional[str]) -> Optional[str]:
    """Turn e.g. "lightrainshowers_day" into a normalizable description."""
    if not symbol_code:
        return None
    base = symbol_code.split("_", 1)[0]
    return MET_NO_SYMBOLS.get(base, base)
