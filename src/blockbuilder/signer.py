"""Signing capability consumed by the builder client.

The embedding validator owns its key and supplies a Signer; the client only
decides which canonical bytes get signed. LocalKeySigner covers the common
case of an ed25519 key held in process.
"""

import hashlib

from collections.abc import Awaitable
from typing import Protocol, Self, runtime_checkable

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from src.blockbuilder.models import BuildBlockRequest, RegisterChallenge


@runtime_checkable
class Signer(Protocol):
    """One signing operation per signable message type.

    Implementations set the message's signature field from its sign_bytes().
    They may be synchronous or return an awaitable, e.g. for a remote signer.
    """

    def sign_build_block_request(
        self, request: BuildBlockRequest
    ) -> None | Awaitable[None]: ...

    def sign_register_challenge(
        self, challenge: RegisterChallenge
    ) -> None | Awaitable[None]: ...


class LocalKeySigner:
    """ed25519 signer over an in-process key."""

    def __init__(self, signing_key: SigningKey) -> None:
        self._signing_key = signing_key

    @classmethod
    def generate(cls) -> Self:
        """Create a signer with a fresh random key."""
        return cls(SigningKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> Self:
        """Create a signer from a 32 byte ed25519 seed.

        Raises:
            ValueError: If the seed is not 32 bytes
        """
        if len(seed) != 32:
            msg = "ed25519 seed must be 32 bytes"
            raise ValueError(msg)
        return cls(SigningKey(seed))

    @property
    def public_key(self) -> bytes:
        return bytes(self._signing_key.verify_key)

    @property
    def address(self) -> str:
        """Uppercase hex of the first 20 bytes of sha256(public key)."""
        return hashlib.sha256(self.public_key).digest()[:20].hex().upper()

    def sign(self, message: bytes) -> bytes:
        return self._signing_key.sign(message).signature

    def sign_build_block_request(self, request: BuildBlockRequest) -> None:
        request.signature = self.sign(request.sign_bytes())

    def sign_register_challenge(self, challenge: RegisterChallenge) -> None:
        challenge.signature = self.sign(challenge.sign_bytes())


def verify_signature(public_key: bytes, message: bytes, signature: bytes) -> bool:
    """Check an ed25519 signature, as the builder API does on receipt.

    Args:
        public_key: Raw 32 byte ed25519 public key
        message: Canonical bytes that were signed
        signature: Raw 64 byte signature

    Returns:
        True if the signature is valid for message under public_key
    """
    try:
        VerifyKey(public_key).verify(message, signature)
    except (BadSignatureError, ValueError, TypeError):
        return False
    return True


__all__ = ["LocalKeySigner", "Signer", "verify_signature"]
