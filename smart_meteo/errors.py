"""
Error taxonomy for Smart Meteo.

SourceFailure     - one connector abstained (network, credentials, status, payload)
AggregateFailure  - every active source failed in one aggregation cycle
ValidationError   - a registry mutation would break the "one active source" rule
NotFoundError     - a registry lookup named an unknown source id
ConfigurationGap  - an active source id has no connector behind it

Only AggregateFailure ever reaches the caller of aggregate(); SourceFailure and
ConfigurationGap are absorbed into registry telemetry.
"""

from typing import Dict, Optional


class SmartMeteoError(Exception):
    """Base class for every error raised by this package."""


class SourceFailure(SmartMeteoError):
    """A single provider could not produce a reading."""

    def __init__(self, source: str, message: str, error_type: str = "unknown"):
        self.source = source
        self.message = message
        self.error_type = error_type
        super().__init__(f"{source}: {message}")


class ConfigurationGap(SourceFailure):
    """An active source has no connector registered for it."""

    def __init__(self, source: str):
        super().__init__(source, "No connector registered for this source", "configuration")


class AggregateFailure(SmartMeteoError):
    """Raised when zero sources succeeded in an aggregation cycle."""

    def __init__(self, failures: Optional[Dict[str, str]] = None):
        self.failures: Dict[str, str] = dict(failures or {})
        message = "All weather sources failed to return data."
        if self.failures:
            details = "; ".join(f"{k}: {v}" for k, v in self.failures.items())
            message = f"{message} ({details})"
        super().__init__(message)


class RegistryError(SmartMeteoError):
    """Base class for source registry errors."""


class ValidationError(RegistryError):
    """A registry mutation was rejected because it would violate an invariant."""


class NotFoundError(RegistryError, KeyError):
    """The requested source id is not in the registry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


RegistryValidationError = ValidationError
