"""
Smart Meteo command line.

    smart-meteo forecast --lat 45.46 --lon 9.19
    smart-meteo forecast --lat 45.46 --lon 9.19 --sources open-meteo,met-no
    smart-meteo sources

`forecast` runs one aggregation cycle and prints the response as JSON on
stdout; status lines go to stderr so the output can be piped. Exit code 1 when
every source failed.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import List, Optional

from colorama import Fore, Style, init

from smart_meteo.archive import ForecastArchive
from smart_meteo.config import Settings, load_settings
from smart_meteo.engine import AggregationEngine
from smart_meteo.errors import AggregateFailure, ValidationError
from smart_meteo.providers import build_providers
from smart_meteo.registry import SourceRegistry, default_descriptors

logger = logging.getLogger(__name__)

LOG_DIR = "logs"


def setup_logging(level: str = "INFO") -> None:
    os.makedirs(LOG_DIR, exist_ok=True)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(LOG_DIR, "smart_meteo.log"), mode='a', encoding='utf-8'),
            logging.StreamHandler(sys.stderr)
        ]
    )


def _latitude(raw: str) -> float:
    value = float(raw)
    if not -90.0 <= value <= 90.0:
        raise argparse.ArgumentTypeError(f"latitude must be within [-90, 90], got {value}")
    return value


def _longitude(raw: str) -> float:
    value = float(raw)
    if not -180.0 <= value <= 180.0:
        raise argparse.ArgumentTypeError(f"longitude must be within [-180, 180], got {value}")
    return value


def _source_list(raw: str) -> List[str]:
    return [s.strip() for s in raw.split(",") if s.strip()]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="smart-meteo",
        description="Smart Meteo - weighted consensus weather from multiple providers",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    forecast = sub.add_parser("forecast", help="Aggregate current weather for a coordinate")
    forecast.add_argument("--lat", type=_latitude, required=True, help="Latitude in degrees")
    forecast.add_argument("--lon", type=_longitude, required=True, help="Longitude in degrees")
    forecast.add_argument("--sources", type=_source_list, default=None,
                          help="Comma-separated source ids to activate (overrides SMART_METEO_ACTIVE_SOURCES)")

    sub.add_parser("sources", help="Show the source registry")

    return parser.parse_args(argv)


def build_registry(active_sources: Optional[List[str]] = None) -> SourceRegistry:
    return SourceRegistry(default_descriptors(active_sources))


def build_engine(settings: Settings, registry: Optional[SourceRegistry] = None,
                 transport=None) -> AggregationEngine:
    """Wire registry, connectors and (optional) archive from settings."""
    registry = registry or build_registry(settings.active_sources)
    observers = []
    if settings.archive_path is not None:
        observers.append(ForecastArchive(settings.archive_path))
    return AggregationEngine(
        registry,
        build_providers(settings, transport=transport),
        observers=observers,
        source_timeout=settings.source_timeout,
    )


def print_banner(registry: SourceRegistry) -> None:
    err = sys.stderr
    print(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}", file=err)
    print(f"{Fore.CYAN}   SMART METEO: WEIGHTED CONSENSUS FORECAST{Style.RESET_ALL}", file=err)
    print(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}", file=err)
    weights = ", ".join(f"{d.id}({d.weight})" for d in registry.list() if d.active)
    print(f"{Fore.WHITE}   [SOURCES] {weights}{Style.RESET_ALL}\n", file=err)


def print_source_status(registry: SourceRegistry, used: List[str]) -> None:
    err = sys.stderr
    for desc in registry.list():
        if not desc.active:
            continue
        latency = f"{desc.last_latency_ms}ms" if desc.last_latency_ms is not None else "-"
        if desc.id in used:
            print(f"   {Fore.GREEN}OK{Style.RESET_ALL}          {desc.id} ({latency})", file=err)
        else:
            print(f"   {Fore.RED}UNAVAILABLE{Style.RESET_ALL} {desc.id} ({latency}) - {desc.last_error}", file=err)


async def run_forecast(engine: AggregationEngine, lat: float, lon: float) -> int:
    print_banner(engine.registry)
    try:
        response = await engine.aggregate(lat, lon)
    except AggregateFailure as e:
        print_source_status(engine.registry, [])
        print(f"\n{Fore.RED}FAILED:{Style.RESET_ALL} {e}", file=sys.stderr)
        return 1

    print_source_status(engine.registry, response.sources_used)
    print(json.dumps(response.to_dict(), indent=2))
    return 0


def show_sources(registry: SourceRegistry) -> int:
    print(json.dumps(registry.snapshot(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    init()
    args = parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"{Fore.RED}Configuration error:{Style.RESET_ALL} {e}", file=sys.stderr)
        return 2

    setup_logging(settings.log_level)

    active = getattr(args, "sources", None) or settings.active_sources
    try:
        registry = build_registry(active)
    except ValidationError as e:
        print(f"{Fore.RED}Invalid source selection:{Style.RESET_ALL} {e}", file=sys.stderr)
        return 2

    if args.command == "sources":
        return show_sources(registry)

    engine = build_engine(settings, registry=registry)
    try:
        return asyncio.run(run_forecast(engine, args.lat, args.lon))
    finally:
        for observer in engine.observers:
            if isinstance(observer, ForecastArchive):
                observer.close()


if __name__ == "__main__":
    sys.exit(main())
