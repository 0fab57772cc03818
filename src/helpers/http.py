"""HTTP client utilities and helpers."""

import asyncio
import gzip
import zlib

from collections.abc import AsyncIterator, Iterable

from typing import Any

import httpx

from src.helpers.constants import (
    DEFAULT_TIMEOUT,
    GZIP_CONTENT_ENCODING,
    GZIP_WBITS,
    MAX_PENDING_CHUNKS,
)


_END_OF_STREAM = object()


class BrokenStreamError(Exception):
    """The producer of a streamed request body failed before finishing it."""


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient.

    Args:
        timeout: Default timeout in seconds (default: DEFAULT_TIMEOUT)
        **kwargs: Additional httpx.AsyncClient kwargs

    Returns:
        Configured AsyncClient instance

    Example:
        ```python
        from src.helpers.http import create_http_client

        async with create_http_client(timeout=2.0) as client:
            builder = Builder(client, api_url, signer, ...)
        ```
    """
    return httpx.AsyncClient(timeout=timeout, **kwargs)


async def gzip_stream(
    chunks: Iterable[str | bytes],
    *,
    max_pending: int = MAX_PENDING_CHUNKS,
) -> AsyncIterator[bytes]:
    """Gzip chunks in a producer task and yield the compressed output.

    The producer runs concurrently with whoever consumes this iterator (usually
    httpx sending a request body), connected by a bounded queue. Chunks are
    pulled lazily, so the uncompressed input is never held in full.

    Args:
        chunks: Text or bytes chunks, e.g. from json.JSONEncoder.iterencode
        max_pending: Compressed chunks buffered before the producer waits

    Yields:
        Gzip-compressed bytes

    Raises:
        BrokenStreamError: If iterating or compressing the input failed; the
            consumer sees a broken body instead of a truncated one

    Example:
        ```python
        encoder = json.JSONEncoder(separators=(",", ":"))
        body = gzip_stream(encoder.iterencode(payload))
        await client.post(url, content=body, headers={"content-encoding": "gzip"})
        ```
    """
    queue: asyncio.Queue[object] = asyncio.Queue(maxsize=max_pending)

    async def produce() -> None:
        compressor = zlib.compressobj(wbits=GZIP_WBITS)
        try:
            for chunk in chunks:
                data = compressor.compress(
                    chunk.encode() if isinstance(chunk, str) else chunk
                )
                if data:
                    # zlib buffers small chunks; only hand over when it emits
                    await queue.put(data)
                    await asyncio.sleep(0)
            await queue.put(compressor.flush())
        except Exception as e:
            await queue.put(e)
            return
        await queue.put(_END_OF_STREAM)

    producer = asyncio.create_task(produce())
    try:
        while True:
            item = await queue.get()
            if item is _END_OF_STREAM:
                return
            if isinstance(item, BaseException):
                msg = f"request body producer failed: {item}"
                raise BrokenStreamError(msg) from item
            yield item  # type: ignore[misc]
    finally:
        producer.cancel()


def decode_request_body(body: bytes, content_encoding: str | None) -> bytes:
    """Undo request body compression on the receiving side.

    Args:
        body: Raw request body
        content_encoding: Value of the content-encoding header, if any

    Returns:
        The decompressed body, or body unchanged if it is not gzip encoded

    Raises:
        ValueError: If the body claims gzip encoding but is not valid gzip
    """
    if not content_encoding or GZIP_CONTENT_ENCODING not in content_encoding:
        return body

    try:
        return gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as e:
        msg = f"gzip reader: {e}"
        raise ValueError(msg) from e


__all__ = [
    "BrokenStreamError",
    "create_http_client",
    "decode_request_body",
    "gzip_stream",
]
