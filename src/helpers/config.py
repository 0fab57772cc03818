"""Configuration management and environment variable utilities."""

import math
import os
import re

from urllib.parse import urlsplit

from dotenv import load_dotenv

from src.helpers.constants import (
    BUILDER_API_COMPRESSION_ENV,
    BUILDER_API_DRY_RUN_ENV,
    BUILDER_API_TIMEOUT_ENV,
    BUILDER_API_URL_ENV,
    DEFAULT_BUILDER_API_URL,
    DEFAULT_TIMEOUT,
)
from src.helpers.logging import get_logger


# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "\u00b5s": 1e-6,
    "\u03bcs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")
_DURATION = re.compile(f"(?:{_DURATION_PART.pattern})+")


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set

    Example:
        ```python
        from src.helpers.config import get_required_env

        chain_id = get_required_env("CHAIN_ID")
        ```
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def parse_bool_flag(value: str | None) -> bool | None:
    """Parse a boolean flag the way command line tools usually spell them.

    Args:
        value: Raw flag value

    Returns:
        True or False for recognised spellings, None otherwise

    Example:
        >>> parse_bool_flag("T")
        True
        >>> parse_bool_flag("yes") is None
        True
    """
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


def parse_duration(value: str) -> float | None:
    """Parse a duration into seconds.

    Accepts a bare number of seconds or a Go-style duration such as "1s",
    "250ms" or "1m30s", the format nodes already use for their own timeouts.

    Args:
        value: Raw duration

    Returns:
        Duration in seconds, or None if value is not a duration

    Example:
        >>> parse_duration("1m30s")
        90.0
        >>> parse_duration("2.5")
        2.5
    """
    try:
        seconds = float(value)
    except ValueError:
        sign = -1.0 if value.startswith("-") else 1.0
        body = value[1:] if value[:1] in ("+", "-") else value
        if not body or not _DURATION.fullmatch(body):
            return None
        seconds = sign * sum(
            float(amount) * _DURATION_UNITS[unit]
            for amount, unit in _DURATION_PART.findall(body)
        )

    return seconds if math.isfinite(seconds) else None


def get_builder_api_url(api_url: str | None = None) -> str:
    """Get the builder API base URL from parameter or environment.

    A value without a scheme is assumed to be HTTPS. A value that cannot be
    parsed into a host falls back to the default builder API.

    Args:
        api_url: Optional URL to use directly

    Returns:
        Builder API base URL without a trailing slash

    Example:
        ```python
        from src.helpers.config import get_builder_api_url

        # MEKATEK_BUILDER_API_URL=builder.internal:8080
        get_builder_api_url()  # "https://builder.internal:8080"
        ```
    """
    value = api_url or os.getenv(BUILDER_API_URL_ENV)
    if not value:
        return DEFAULT_BUILDER_API_URL

    if not value.startswith("http"):
        value = f"https://{value}"

    try:
        parts = urlsplit(value)
    except ValueError:
        return DEFAULT_BUILDER_API_URL

    if not parts.netloc:
        return DEFAULT_BUILDER_API_URL

    return value.rstrip("/")


def is_dry_run() -> bool:
    """Whether the embedding node should exercise the builder without using its blocks.

    Returns:
        True only if MEKATEK_BUILDER_API_DRY_RUN holds a true flag value
    """
    return parse_bool_flag(os.getenv(BUILDER_API_DRY_RUN_ENV)) is True


def is_compression_enabled() -> bool:
    """Whether request bodies should be gzip compressed by default.

    Returns:
        True only if MEKATEK_BUILDER_API_COMPRESSION holds a true flag value
    """
    return parse_bool_flag(os.getenv(BUILDER_API_COMPRESSION_ENV)) is True


def get_builder_timeout() -> float:
    """Get the builder API request timeout in seconds.

    Returns:
        Timeout from MEKATEK_BUILDER_API_TIMEOUT, or DEFAULT_TIMEOUT when it
        is unset, not a duration, or not positive
    """
    raw = os.getenv(BUILDER_API_TIMEOUT_ENV)
    if not raw:
        return DEFAULT_TIMEOUT

    timeout = parse_duration(raw)
    if timeout is None or timeout <= 0:
        logger.warning(
            "Ignoring %s=%r, using default of %ss",
            BUILDER_API_TIMEOUT_ENV,
            raw,
            DEFAULT_TIMEOUT,
        )
        return DEFAULT_TIMEOUT

    return timeout


__all__ = [
    "get_builder_api_url",
    "get_builder_timeout",
    "get_optional_env",
    "get_required_env",
    "is_compression_enabled",
    "is_dry_run",
    "parse_bool_flag",
    "parse_duration",
]
