"""
Tests for the condition normalizer and provider code tables

Run with: python -m pytest tests/test_conditions.py -v
"""

import logging
import sys
from pathlib import Path

import pytest

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

sys.path.insert(0, str(Path(__file__).parent.parent))

from smart_meteo.conditions import (
    METEOMATICS_SYMBOLS,
    TAXONOMY,
    TOMORROW_CODES,
    WMO_CODES,
    code_to_text,
    met_no_symbol_to_text,
    normalize_condition,
)


class TestNormalizeCondition:
    """Free-text classification into the closed taxonomy."""

    @pytest.mark.parametrize("text,expected", [
        ("Sunny", "clear"),
        ("Clear sky", "clear"),
        ("Partly cloudy", "cloudy"),
        ("OVERCAST", "cloudy"),
        ("Light Drizzle", "rain"),
        ("Patchy rain possible", "rain"),
        ("Heavy Snow", "snow"),
        ("Blizzard", "snow"),
        ("Heavy Thunderstorm", "storm"),
        ("Mist", "fog"),
        ("Freezing fog", "fog"),
        ("Haze", "unknown"),
    ])
    def test_keyword_buckets(self, text, expected):
        logger.info(f"[TEST] normalize({text!r})")
        assert normalize_condition(text) == expected

    def test_empty_and_none_are_unknown(self):
        assert normalize_condition(None) == "unknown"
        assert normalize_condition("") == "unknown"
        assert normalize_condition("   ") == "unknown"

    def test_bucket_order_first_match_wins(self):
        """Earlier buckets win when a text matches several."""
        # "cloud" is checked before "rain"
        assert normalize_condition("Cloudy with rain") == "cloudy"
        # "shower" (rain bucket) is checked before "snow"
        assert normalize_condition("Snow Showers") == "rain"
        # "rain" is checked before "thunder"
        assert normalize_condition("Thunderstorm with rain") == "rain"

    def test_result_always_in_taxonomy(self):
        for text in list(WMO_CODES.values()) + list(TOMORROW_CODES.values()) + ["???", "42"]:
            assert normalize_condition(text) in TAXONOMY

    def test_pure(self):
        assert normalize_condition("Light Rain") == normalize_condition("Light Rain")


class TestCodeTables:
    """Numeric provider codes translate to text before normalizing."""

    def test_wmo_lookup(self):
        assert code_to_text(WMO_CODES, 0) == "Clear"
        assert code_to_text(WMO_CODES, 95) == "Thunderstorm"
        assert normalize_condition(code_to_text(WMO_CODES, 61)) == "rain"

    def test_lookup_tolerates_floats_and_strings(self):
        assert code_to_text(WMO_CODES, 3.0) == "Overcast"
        assert code_to_text(TOMORROW_CODES, "1000") == "Clear, Sunny"

    def test_unknown_codes_are_none(self):
        assert code_to_text(WMO_CODES, 12345) is None
        assert code_to_text(WMO_CODES, None) is None
        assert code_to_text(WMO_CODES, "abc") is None

    def test_meteomatics_symbols_cover_day_range(self):
        for symbol in range(1, 17):
            assert symbol in METEOMATICS_SYMBOLS

    def test_met_no_symbol_variant_stripped(self):
        day = met_no_symbol_to_text("partlycloudy_day")
        night = met_no_symbol_to_text("partlycloudy_night")
        logger.info(f"[TEST] met.no partlycloudy -> {day!r}")
        assert day == night
        assert normalize_condition(day) == "cloudy"
        assert met_no_symbol_to_text(None) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
