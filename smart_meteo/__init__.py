"""
Smart Meteo: weighted-consensus weather aggregation

Queries several independent weather providers at once, tolerates any subset of
them failing, and merges the survivors into one reading using per-source
reliability weights.

Architecture:
    providers/     - One connector per provider, all returning NormalizedReading
                     * open_meteo.py, met_no.py   - keyless public models
                     * tomorrow.py, accuweather.py, weatherapi.py, ... - keyed APIs
    registry.py    - Source catalogue, weights, active flags, telemetry
    engine.py      - Concurrent fan-out + weighted consensus
    conditions.py  - Condition taxonomy and provider code tables
    derived.py     - Dew point and wind compass
    archive.py     - SQLite history of aggregated responses
    cli.py         - Command line entry point

Entry Points:
    main.py                      - forecast for a coordinate
    python -m smart_meteo.cli    - same, as a module
"""

__version__ = "1.0.0"
__author__ = "Smart Meteo"
