"""JSON over HTTP exchanges with the builder API."""

import json

from typing import TypeVar

import httpx

from pydantic import BaseModel, ValidationError

from src.blockbuilder.errors import EncodingError, TransportError
from src.blockbuilder.models import ErrorResponse
from src.helpers.constants import GZIP_CONTENT_ENCODING, JSON_CONTENT_TYPE
from src.helpers.http import BrokenStreamError, gzip_stream
from src.helpers.http_models import Headers, JsonObject
from src.helpers.logging import get_logger


logger = get_logger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

_json_encoder = json.JSONEncoder(separators=(",", ":"), ensure_ascii=False)


class RequestTransport:
    """POSTs pydantic models as JSON to the builder API and decodes replies."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        *,
        compression: bool = False,
        timeout: float | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            client: HTTP client owned by the caller
            base_url: Builder API URL, e.g. "https://api.mekatek.xyz"
            compression: Whether to gzip request bodies
            timeout: Per-request timeout override; None keeps the client's

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            msg = "Builder API URL cannot be empty"
            raise ValueError(msg)

        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._compression = compression

    @property
    def compression(self) -> bool:
        return self._compression

    @compression.setter
    def compression(self, enabled: bool) -> None:
        self._compression = enabled

    async def send(
        self,
        path: str,
        request: BaseModel,
        response_type: type[ResponseT],
    ) -> ResponseT:
        """POST request to base_url + path and decode a response_type body.

        With compression on, the JSON body is encoded and gzipped by a
        producer task while httpx is already sending it.

        Args:
            path: API path, e.g. "/v0/build"
            request: Request body model
            response_type: Model to decode a 200 response into

        Returns:
            Decoded response model

        Raises:
            EncodingError: If the request could not be serialized
            TransportError: On network failure, non-200 status, or a 200
                response that does not decode into response_type
        """
        # Read once so the header and the body framing agree
        compress = self._compression

        try:
            payload: JsonObject = request.model_dump(mode="json")
        except (ValueError, TypeError) as e:
            raise EncodingError(path, f"marshal request: {e}", e) from e

        headers: Headers = {"content-type": JSON_CONTENT_TYPE}
        if compress:
            headers["content-encoding"] = GZIP_CONTENT_ENCODING
            content = gzip_stream(_json_encoder.iterencode(payload))
        else:
            try:
                content = _json_encoder.encode(payload).encode()
            except (ValueError, TypeError) as e:
                raise EncodingError(path, f"marshal request: {e}", e) from e

        url = f"{self.base_url}{path}"
        logger.debug("POST %s (compressed=%s)", url, compress)

        kwargs = {} if self.timeout is None else {"timeout": self.timeout}
        try:
            response = await self.client.post(
                url, content=content, headers=headers, **kwargs
            )
        except BrokenStreamError as e:
            raise EncodingError(path, f"stream request body: {e}", e) from e
        except httpx.HTTPError as e:
            raise TransportError(path, f"execute request: {e}", e) from e

        if response.status_code != httpx.codes.OK:
            message = _error_message(response)
            logger.warning(
                "POST %s returned %d: %s", url, response.status_code, message
            )
            raise TransportError(path, message, status_code=response.status_code)

        try:
            return response_type.model_validate_json(response.content)
        except ValidationError as e:
            raise TransportError(path, f"unmarshal response: {e}", e) from e


def _error_message(response: httpx.Response) -> str:
    """Prefer the {"error": ...} body, else fall back to the raw text."""
    try:
        return ErrorResponse.model_validate_json(response.content).error
    except ValidationError:
        return response.text.strip()


__all__ = ["RequestTransport"]
