"""Common configuration constants used across the application."""

# Builder API Endpoints
DEFAULT_BUILDER_API_URL = "https://api.mekatek.xyz"
"""Builder API used when no override is configured"""

REGISTER_PATH = "/v0/register"
"""Path shared by the apply and register phases of registration"""

BUILD_PATH = "/v0/build"
"""Path accepting signed build block requests"""

REGISTER_SUCCESS_RESULT = "success"
"""Result value returned by a successful register call"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 1.0
"""Default builder API request timeout in seconds"""

JSON_CONTENT_TYPE = "application/json"
"""Media type of every request and response body"""

GZIP_CONTENT_ENCODING = "gzip"
"""Content-encoding of compressed request bodies"""

# Compression
GZIP_WBITS = 31
"""zlib window bits selecting a gzip container with a 32K window"""

MAX_PENDING_CHUNKS = 16
"""Compressed chunks buffered between the body producer and the sender"""

# Environment Variables
BUILDER_API_URL_ENV = "MEKATEK_BUILDER_API_URL"
BUILDER_API_DRY_RUN_ENV = "MEKATEK_BUILDER_API_DRY_RUN"
BUILDER_API_TIMEOUT_ENV = "MEKATEK_BUILDER_API_TIMEOUT"
BUILDER_API_COMPRESSION_ENV = "MEKATEK_BUILDER_API_COMPRESSION"


__all__ = [
    "BUILDER_API_COMPRESSION_ENV",
    "BUILDER_API_DRY_RUN_ENV",
    "BUILDER_API_TIMEOUT_ENV",
    "BUILDER_API_URL_ENV",
    "BUILD_PATH",
    "DEFAULT_BUILDER_API_URL",
    "DEFAULT_TIMEOUT",
    "GZIP_CONTENT_ENCODING",
    "GZIP_WBITS",
    "JSON_CONTENT_TYPE",
    "MAX_PENDING_CHUNKS",
    "REGISTER_PATH",
    "REGISTER_SUCCESS_RESULT",
]
