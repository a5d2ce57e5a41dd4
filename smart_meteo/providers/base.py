"""
Provider Connector base for Smart Meteo

Every connector answers one question: "given coordinates, produce a
NormalizedReading or fail". Subclasses implement `_fetch()`; the public
`fetch()` converts anything that goes wrong (network, credentials, non-2xx
status, malformed payload) into a SourceFailure so the engine can treat it as
an abstention.

Connectors never share mutable state with each other. Each call opens its own
httpx.AsyncClient; tests inject an httpx.MockTransport through `transport`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from smart_meteo.config import DEFAULT_HTTP_TIMEOUT
from smart_meteo.errors import SourceFailure
from smart_meteo.models import NormalizedReading
from smart_meteo.resilience import as_source_failure

logger = logging.getLogger(__name__)

KMH_PER_MS = 3.6


def kmh_to_ms(value: Any) -> Optional[float]:
    """Convert km/h to m/s, passing None (and junk) through as None."""
    speed = as_float(value)
    return None if speed is None else speed / KMH_PER_MS


def as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None at the first missing step."""
    current = data
    for step in path:
        if isinstance(current, dict):
            current = current.get(step)
        elif isinstance(current, list) and isinstance(step, int):
            current = current[step] if -len(current) <= step < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


class WeatherProvider(ABC):
    """
    Base class for weather provider connectors.

    Attributes:
        source_id: Registry key, also stamped on every reading
        display_name: Human-readable provider name for logs
    """

    source_id: str = ""
    display_name: str = ""

    def __init__(
        self,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    @property
    def log_prefix(self) -> str:
        return f"[{self.__class__.__name__}]"

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport, **kwargs)

    async def fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        """
        Fetch and normalize current conditions for a coordinate.

        Raises:
            SourceFailure: for every kind of upstream problem
        """
        logger.info(f"{self.log_prefix} Fetching ({latitude}, {longitude})...")
        try:
            reading = await self._fetch(latitude, longitude)
        except SourceFailure as e:
            logger.warning(f"{self.log_prefix} {e.error_type}: {e.message}")
            raise
        except Exception as e:
            failure = as_source_failure(self.source_id, e)
            logger.warning(f"{self.log_prefix} {failure.error_type}: {failure.message}")
            raise failure from e

        if reading.is_empty():
            logger.warning(f"{self.log_prefix} Reading has no usable numeric fields")
        else:
            logger.info(f"{self.log_prefix} OK - temp={reading.temperature}, "
                        f"condition={reading.condition_code}")
        return reading

    @abstractmethod
    async def _fetch(self, latitude: float, longitude: float) -> NormalizedReading:
        ...

    def _require(self, value: Optional[str], env_name: str) -> str:
        if not value:
            raise SourceFailure(self.source_id, f"Missing {env_name}", "missing_credentials")
        return value

    def _malformed(self, detail: str) -> SourceFailure:
        return SourceFailure(self.source_id, f"Malformed payload: {detail}", "parse_error")

    async def _get_json(self, client: httpx.AsyncClient, url: str, **kwargs) -> Any:
        """GET a URL and decode JSON, raising on any non-2xx status."""
        logger.debug(f"{self.log_prefix} GET {url}")
        resp = await client.get(url, **kwargs)
        if not resp.is_success:
            logger.warning(f"{self.log_prefix} HTTP {resp.status_code}: {resp.text[:200]}")
            resp.raise_for_status()
        return resp.json()

    def _reading(self, latitude: float, longitude: float, **fields: Any) -> NormalizedReading:
        return NormalizedReading(source=self.source_id, latitude=latitude, longitude=longitude, **fields)
