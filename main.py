"""
Smart Meteo: WEIGHTED CONSENSUS Architecture

Polls every active weather provider concurrently, drops the ones that fail,
and prints the weighted consensus for one coordinate as JSON.

Usage:
    python main.py forecast --lat 45.46 --lon 9.19
    python main.py sources
"""

import sys

from smart_meteo.cli import main

if __name__ == "__main__":
    sys.exit(main())
