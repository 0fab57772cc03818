"""Pydantic models for builder API requests and responses."""

import base64
import binascii

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer

from src.blockbuilder.encoding import (
    build_block_request_sign_bytes,
    register_challenge_sign_bytes,
)


def _decode_base64(value: Any) -> Any:
    """Accept raw bytes, base64 text from JSON, or null for empty."""
    if value is None:
        return b""
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            msg = f"invalid base64: {e}"
            raise ValueError(msg) from e
    return value


def _encode_base64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


# Byte strings travel as standard padded base64 in JSON bodies
Base64Bytes = Annotated[
    bytes,
    BeforeValidator(_decode_base64),
    PlainSerializer(_encode_base64, return_type=str, when_used="json"),
]


def _none_as_empty_list(value: Any) -> Any:
    return [] if value is None else value


Base64BytesList = Annotated[list[Base64Bytes], BeforeValidator(_none_as_empty_list)]


class BuildBlockRequest(BaseModel):
    """Request from a proposing validator to the build endpoint.

    The signature is set by the signer over sign_bytes(), which covers every
    other field.
    """

    chain_id: str = Field(..., description="Chain the block is built for")
    height: int = Field(..., description="Height of the block to build")
    validator_address: str = Field(..., description="On-chain proposer address")
    max_bytes: int = Field(..., description="Block size limit in bytes")
    max_gas: int = Field(..., description="Block gas limit")
    txs: Base64BytesList = Field(
        default_factory=list, description="Ordered candidate transactions"
    )
    signature: Base64Bytes = Field(default=b"", description="Proposer signature")

    def sign_bytes(self) -> bytes:
        """Canonical bytes covered by the signature."""
        return build_block_request_sign_bytes(
            self.chain_id,
            self.height,
            self.validator_address,
            self.max_bytes,
            self.max_gas,
            self.txs,
        )


class BuildBlockResponse(BaseModel):
    """Transactions selected by the builder API, in block order."""

    txs: Base64BytesList = Field(default_factory=list)
    validator_payment: str | None = Field(
        default=None, description="Payment promised to the validator"
    )


class RegisterChallenge(BaseModel):
    """Challenge the validator signs to prove it holds its key."""

    challenge: Base64Bytes
    challenge_id: str = ""
    signature: Base64Bytes = b""

    def sign_bytes(self) -> bytes:
        return register_challenge_sign_bytes(self.challenge)


class ApplyRequest(BaseModel):
    chain_id: str
    validator_address: str
    payment_address: str


class ApplyResponse(BaseModel):
    challenge_id: str
    challenge: Base64Bytes


class RegisterRequest(BaseModel):
    challenge_id: str
    signature: Base64Bytes


class RegisterResponse(BaseModel):
    result: str


class RegistrationRequest(BaseModel):
    """Either registration body, as received on the shared register path."""

    chain_id: str = ""
    validator_address: str = ""
    payment_address: str = ""
    challenge_id: str = ""
    signature: Base64Bytes = b""

    @property
    def is_apply(self) -> bool:
        return not self.challenge_id


class ErrorResponse(BaseModel):
    """Best-effort error body of a non-200 response."""

    error: str


__all__ = [
    "ApplyRequest",
    "ApplyResponse",
    "Base64Bytes",
    "BuildBlockRequest",
    "BuildBlockResponse",
    "ErrorResponse",
    "RegisterChallenge",
    "RegisterRequest",
    "RegisterResponse",
    "RegistrationRequest",
]
