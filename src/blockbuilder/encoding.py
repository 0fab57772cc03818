"""Canonical byte encoding of signable builder API messages.

Every signature exchanged with the builder API is made over the output of
this module, so clients and the service must agree on it bit for bit.
Changing the order or the set of encoded fields breaks verification unless
signer and verifier are updated together.

Layout rules:
    - a fixed ASCII tag unique to the message type comes first, so a
      signature over one message type never verifies as another
    - integers are 8 bytes little-endian
    - strings (UTF-8) and byte strings are an 8 byte length, then raw bytes
    - lists of byte strings are an 8 byte count, then each element as above
"""

import struct

from collections.abc import Sequence

from typing import Self

from src.blockbuilder.errors import EncodingError


BUILD_BLOCK_REQUEST_TAG = b"build-block-request"
REGISTER_CHALLENGE_TAG = b"register-challenge"

_INT64 = struct.Struct("<q")
_UINT64 = struct.Struct("<Q")


class CanonicalEncoder:
    """Append-only writer producing canonical signable bytes.

    Example:
        >>> CanonicalEncoder(b"tag").write_string("ab").to_bytes()
        b'tag\\x02\\x00\\x00\\x00\\x00\\x00\\x00\\x00ab'
    """

    def __init__(self, tag: bytes) -> None:
        if not tag:
            msg = "domain separation tag cannot be empty"
            raise ValueError(msg)
        self._buf = bytearray(tag)

    def write_int64(self, value: int) -> Self:
        """Append a signed 64-bit little-endian integer."""
        self._pack(_INT64, value, "int64")
        return self

    def write_uint64(self, value: int) -> Self:
        """Append an unsigned 64-bit little-endian integer."""
        self._pack(_UINT64, value, "uint64")
        return self

    def write_bytes(self, value: bytes) -> Self:
        """Append a length-prefixed byte string."""
        self.write_uint64(len(value))
        self._buf += value
        return self

    def write_string(self, value: str) -> Self:
        """Append a length-prefixed UTF-8 string, as given."""
        return self.write_bytes(value.encode())

    def write_bytes_list(self, values: Sequence[bytes]) -> Self:
        """Append an element count followed by each length-prefixed element."""
        self.write_uint64(len(values))
        for value in values:
            self.write_bytes(value)
        return self

    def to_bytes(self) -> bytes:
        return bytes(self._buf)

    def _pack(self, fmt: struct.Struct, value: int, kind: str) -> None:
        # bool is an int subclass, but never a valid numeric field
        if isinstance(value, bool) or not isinstance(value, int):
            msg = f"expected {kind}, got {type(value).__name__}"
            raise EncodingError("canonical-encoding", msg)
        try:
            self._buf += fmt.pack(value)
        except struct.error as e:
            msg = f"{value} out of range for {kind}"
            raise EncodingError("canonical-encoding", msg, e) from e


def build_block_request_sign_bytes(
    chain_id: str,
    height: int,
    validator_address: str,
    max_bytes: int,
    max_gas: int,
    txs: Sequence[bytes],
) -> bytes:
    """Canonical bytes of a build block request, excluding its signature.

    Args:
        chain_id: Chain the block is built for
        height: Block height
        validator_address: On-chain address of the proposer
        max_bytes: Block size limit
        max_gas: Block gas limit
        txs: Ordered candidate transactions

    Returns:
        Bytes to be signed by the proposer and verified by the builder API

    Raises:
        EncodingError: If a numeric field does not fit in 64 bits
    """
    return (
        CanonicalEncoder(BUILD_BLOCK_REQUEST_TAG)
        .write_string(chain_id)
        .write_int64(height)
        .write_string(validator_address)
        .write_int64(max_bytes)
        .write_int64(max_gas)
        .write_bytes_list(txs)
        .to_bytes()
    )


def register_challenge_sign_bytes(challenge: bytes) -> bytes:
    """Canonical bytes of a registration challenge issued by the builder API."""
    return CanonicalEncoder(REGISTER_CHALLENGE_TAG).write_bytes(challenge).to_bytes()


__all__ = [
    "BUILD_BLOCK_REQUEST_TAG",
    "REGISTER_CHALLENGE_TAG",
    "CanonicalEncoder",
    "build_block_request_sign_bytes",
    "register_challenge_sign_bytes",
]
