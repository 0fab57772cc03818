"""Type aliases for builder API request bodies and headers."""

from typing import Any


# Pydantic's JSON-mode dump of a request model
type JsonObject = dict[str, Any]

type Headers = dict[str, str]

__all__ = ["Headers", "JsonObject"]
