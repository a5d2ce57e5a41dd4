"""
Astronomy helpers for Smart Meteo.

Providers report sunrise/sunset; the moon phase is computed locally with a
synodic-month approximation so every astronomy block can carry one.
"""

import math
from datetime import date, datetime
from typing import Optional, Union

SYNODIC_MONTH_DAYS = 29.5305882

MOON_PHASES = (
    "New Moon",
    "Waxing Crescent",
    "First Quarter",
    "Waxing Gibbous",
    "Full Moon",
    "Waning Gibbous",
    "Last Quarter",
    "Waning Crescent",
)


def moon_phase(day: Union[date, datetime]) -> str:
    """Return one of the eight named moon phases for a calendar day."""
    year, month = day.year, day.month
    if month < 3:
        year -= 1
        month += 12
    month += 1

    elapsed = 365.25 * year + 30.6 * month + day.day - 694039.09
    cycles = elapsed / SYNODIC_MONTH_DAYS
    fraction = cycles - int(cycles)
    phase = int(math.floor(fraction * 8 + 0.5))
    if phase >= 8:
        phase = 0
    return MOON_PHASES[phase]


def moon_phase_for(date_str: Optional[str]) -> Optional[str]:
    """Moon phase for the date prefix of an ISO string ("2026-10-19T07:12")."""
    if not date_str:
        return None
    try:
        parsed = date.fromisoformat(date_str[:10])
    except ValueError:
        return None
    return moon_phase(parsed)


def twelve_hour_to_iso(date_str: str, clock: str) -> Optional[str]:
    """
    Convert a provider clock string like "07:12 AM" into "YYYY-MM-DDTHH:MM:00".

    Returns None when the clock string cannot be parsed.
    """
    try:
        parsed = datetime.strptime(clock.strip().upper(), "%I:%M %p")
    except (AttributeError, ValueError):
        return None
    return f"{date_str}T{parsed.hour:02d}:{parsed.minute:02d}:00"
