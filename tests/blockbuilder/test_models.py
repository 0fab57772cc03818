"""Tests for builder API request and response models."""

import json

import pytest

from pydantic import ValidationError

from src.blockbuilder.encoding import (
    build_block_request_sign_bytes,
    register_challenge_sign_bytes,
)
from src.blockbuilder.models import (
    ApplyResponse,
    BuildBlockRequest,
    BuildBlockResponse,
    ErrorResponse,
    RegisterChallenge,
    RegistrationRequest,
)


def make_request(**overrides: object) -> BuildBlockRequest:
    fields: dict[str, object] = {
        "chain_id": "chain-1",
        "height": 10,
        "validator_address": "ADDR1",
        "max_bytes": 100_000,
        "max_gas": 100_000,
        "txs": [b"tx1", b"tx2"],
    }
    fields.update(overrides)
    return BuildBlockRequest(**fields)  # type: ignore[arg-type]


class TestBuildBlockRequest:
    """Tests for BuildBlockRequest."""

    def test_json_uses_base64_for_bytes(self) -> None:
        """Test txs and signature are base64 on the wire."""
        request = make_request(signature=b"\x01\x02")
        body = json.loads(request.model_dump_json())

        assert body == {
            "chain_id": "chain-1",
            "height": 10,
            "validator_address": "ADDR1",
            "max_bytes": 100_000,
            "max_gas": 100_000,
            "txs": ["dHgx", "dHgy"],
            "signature": "AQI=",
        }

    def test_decodes_base64_from_json(self) -> None:
        """Test a wire body decodes back to raw bytes in order."""
        request = BuildBlockRequest.model_validate_json(
            '{"chain_id":"c","height":1,"validator_address":"a","max_bytes":2,'
            '"max_gas":3,"txs":["dHgx","dHgy"],"signature":"AQI="}'
        )

        assert request.txs == [b"tx1", b"tx2"]
        assert request.signature == b"\x01\x02"

    def test_null_fields_decode_empty(self) -> None:
        """Test null txs and signature decode as empty values."""
        request = BuildBlockRequest.model_validate_json(
            '{"chain_id":"c","height":1,"validator_address":"a","max_bytes":2,'
            '"max_gas":3,"txs":null,"signature":null}'
        )

        assert request.txs == []
        assert request.signature == b""

    def test_invalid_base64_rejected(self) -> None:
        """Test malformed base64 fails validation."""
        with pytest.raises(ValidationError, match="invalid base64"):
            BuildBlockRequest.model_validate_json(
                '{"chain_id":"c","height":1,"validator_address":"a",'
                '"max_bytes":2,"max_gas":3,"txs":["***"]}'
            )

    def test_sign_bytes_match_encoder(self) -> None:
        """Test sign_bytes delegates to the canonical encoder."""
        request = make_request()
        assert request.sign_bytes() == build_block_request_sign_bytes(
            "chain-1", 10, "ADDR1", 100_000, 100_000, [b"tx1", b"tx2"]
        )

    def test_sign_bytes_exclude_signature(self) -> None:
        """Test the signature is never part of its own input."""
        assert make_request(signature=b"a").sign_bytes() == make_request(
            signature=b"b"
        ).sign_bytes()


class TestBuildBlockResponse:
    """Tests for BuildBlockResponse."""

    def test_preserves_tx_order(self) -> None:
        """Test the server's tx order is kept."""
        response = BuildBlockResponse.model_validate_json(
            '{"txs":["dHgy","dHgx"],"validator_payment":"2 chain-1 coins"}'
        )

        assert response.txs == [b"tx2", b"tx1"]
        assert response.validator_payment == "2 chain-1 coins"

    def test_payment_optional(self) -> None:
        """Test validator_payment may be omitted."""
        response = BuildBlockResponse.model_validate_json('{"txs":[]}')
        assert response.validator_payment is None


class TestRegistrationModels:
    """Tests for registration models."""

    def test_challenge_sign_bytes(self) -> None:
        """Test RegisterChallenge signs only the challenge bytes."""
        challenge = RegisterChallenge(challenge=b"0123456789", challenge_id="id")
        assert challenge.sign_bytes() == register_challenge_sign_bytes(b"0123456789")

    def test_apply_response_decodes_challenge(self) -> None:
        """Test the challenge arrives base64 encoded."""
        response = ApplyResponse.model_validate_json(
            '{"challenge_id":"abc","challenge":"MDEyMzQ1Njc4OQ=="}'
        )
        assert response.challenge == b"0123456789"

    def test_registration_request_apply(self) -> None:
        """Test a body without a challenge id is an apply."""
        request = RegistrationRequest.model_validate_json(
            '{"chain_id":"c","validator_address":"a","payment_address":"p"}'
        )
        assert request.is_apply

    def test_registration_request_register(self) -> None:
        """Test a body with a challenge id is a register."""
        request = RegistrationRequest.model_validate_json(
            '{"challenge_id":"abc","signature":"AQI="}'
        )
        assert not request.is_apply
        assert request.signature == b"\x01\x02"

    def test_error_response(self) -> None:
        """Test the error body model."""
        assert ErrorResponse.model_validate_json('{"error":"boom"}').error == "boom"
