"""
Configuration for Smart Meteo.

Settings come from the process environment, optionally seeded from a .env file
via python-dotenv. Provider credentials are plain environment variables so the
same names work for every deployment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

DEFAULT_HTTP_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "SmartMeteo/1.0 github.com/smart-meteo/smart-meteo"

# Environment variable per credential slot
CREDENTIAL_ENV_VARS: Dict[str, str] = {
    "tomorrow": "TOMORROW_API_KEY",
    "openweather": "OPENWEATHER_API_KEY",
    "weatherapi": "WEATHERAPI_KEY",
    "accuweather": "ACCUWEATHER_API_KEY",
    "meteomatics_user": "METEOMATICS_USER",
    "meteomatics_password": "METEOMATICS_PASSWORD",
    "worldweather": "WORLDWEATHER_KEY",
    "weatherstack": "WEATHERSTACK_KEY",
    "meteostat": "METEOSTAT_KEY",
}


def _optional_float(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    credentials: Dict[str, Optional[str]] = field(default_factory=dict)
    met_no_user_agent: str = DEFAULT_USER_AGENT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    source_timeout: Optional[float] = None
    active_sources: Optional[List[str]] = None
    archive_path: Optional[Path] = None
    log_level: str = "INFO"

    def credential(self, slot: str) -> Optional[str]:
        return self.credentials.get(slot)


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env: Mapping to read instead of os.environ (tests)
        dotenv: Load .env into os.environ first (ignored when env is given)

    Raises:
        ValueError: a numeric setting is malformed
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    credentials = {slot: (env.get(var) or None) for slot, var in CREDENTIAL_ENV_VARS.items()}

    active_raw = env.get("SMART_METEO_ACTIVE_SOURCES")
    active_sources = None
    if active_raw and active_raw.strip():
        active_sources = [s.strip() for s in active_raw.split(",") if s.strip()]

    archive_raw = env.get("SMART_METEO_ARCHIVE_PATH")

    return Settings(
        credentials=credentials,
        met_no_user_agent=env.get("MET_NO_USER_AGENT") or DEFAULT_USER_AGENT,
        http_timeout=_optional_float(env, "SMART_METEO_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        source_timeout=_optional_float(env, "SMART_METEO_SOURCE_TIMEOUT", None),
        active_sources=active_sources,
        archive_path=Path(archive_raw) if archive_raw else None,
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )
