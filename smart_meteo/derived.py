"""
Derived Meteorology for Smart Meteo

Deterministic helpers computed from already-aggregated values:
- Dew point via the Magnus-formula approximation (a=17.625, b=243.04)
- 16-point compass label for a wind direction in degrees
"""

import math
from typing import Optional

MAGNUS_A = 17.625
MAGNUS_B = 243.04

COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE",
    "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW",
    "W", "WNW", "NW", "NNW",
)


def dew_point(temperature_c: Optional[float], humidity_pct: Optional[float]) -> Optional[float]:
    """
    Calculate the dew point in Celsius, rounded to one decimal.

    Args:
        temperature_c: Air temperature in Celsius
        humidity_pct: Relative humidity in percent (0-100)

    Returns:
        Dew point, or None when either input is missing or humidity <= 0
    """
    if temperature_c is None or humidity_pct is None:
        return None
    if humidity_pct <= 0 or temperature_c <= -MAGNUS_B:
        return None

    alpha = math.log(humidity_pct / 100.0) + (MAGNUS_A * temperature_c) / (MAGNUS_B + temperature_c)
    return round(MAGNUS_B * alpha / (MAGNUS_A - alpha), 1)


def compass_label(degrees: Optional[float]) -> Optional[str]:
    """Bucket a direction into one of 16 compass points (N, NNE, ... NNW)."""
    if degrees is None:
        return None
    # Half-up rounding so 11.25 deg reads NNE, not N
    index = int(math.floor(degrees / 22.5 + 0.5)) % 16
    return COMPASS_POINTS[index]
