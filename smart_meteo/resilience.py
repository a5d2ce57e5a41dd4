"""
Resilience Infrastructure for Smart Meteo

Turns whatever a connector call raised into a short, categorized message that
can be stored in registry telemetry.

Policy:
- No automatic retries. A failed source simply abstains for this cycle;
  retrying is the caller's scheduling concern.
- Every exception is categorized (timeout, rate_limit, api_error, parse_error,
  missing_credentials, configuration, unknown) and truncated to 200 chars.
"""

import asyncio
import json
import logging
import time
from enum import Enum
from typing import Tuple

import httpx

from smart_meteo.errors import SourceFailure

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 200


class ErrorType(Enum):
    """Categories of errors for telemetry."""
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    API_ERROR = "api_error"
    PARSE_ERROR = "parse_error"
    MISSING_CREDENTIALS = "missing_credentials"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


def categorize_error(exception: BaseException) -> Tuple[ErrorType, str]:
    """
    Categorize an exception for tracking purposes.

    Returns:
        Tuple of (ErrorType, error_message)
    """
    error_msg = str(exception)[:MAX_MESSAGE_LENGTH]

    if isinstance(exception, SourceFailure):
        try:
            return (ErrorType(exception.error_type), exception.message[:MAX_MESSAGE_LENGTH])
        except ValueError:
            return (ErrorType.UNKNOWN, exception.message[:MAX_MESSAGE_LENGTH])

    if isinstance(exception, (httpx.TimeoutException, asyncio.TimeoutError)):
        return (ErrorType.TIMEOUT, f"Timeout: {error_msg}" if error_msg else "Timeout")

    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        if status == 429:
            return (ErrorType.RATE_LIMIT, "HTTP 429 Too Many Requests")
        if status == 503:
            return (ErrorType.RATE_LIMIT, "HTTP 503 Service Unavailable (quota?)")
        if status in (401, 403):
            return (ErrorType.MISSING_CREDENTIALS, f"HTTP {status}: credentials rejected")
        return (ErrorType.API_ERROR, f"HTTP {status}: {error_msg}")

    if isinstance(exception, httpx.RequestError):
        return (ErrorType.API_ERROR, f"Request error: {error_msg}")

    if isinstance(exception, (json.JSONDecodeError, KeyError, IndexError, ValueError, TypeError)):
        return (ErrorType.PARSE_ERROR, f"Parse error: {error_msg}")

    return (ErrorType.UNKNOWN, error_msg or exception.__class__.__name__)


def as_source_failure(source: str, exception: BaseException) -> SourceFailure:
    """Wrap any exception as a SourceFailure for `source`."""
    if isinstance(exception, SourceFailure):
        return exception
    error_type, message = categorize_error(exception)
    return SourceFailure(source, message, error_type.value)


class Stopwatch:
    """Wall-clock timer for one connector call."""

    def __init__(self):
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> int:
        return int(round((time.perf_counter() - self._start) * 1000))
