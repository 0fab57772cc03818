"""Pytest configuration and shared fixtures for builder API tests."""

import asyncio
import secrets

from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio

from pydantic import ValidationError

from src.blockbuilder.client import Builder
from src.blockbuilder.encoding import register_challenge_sign_bytes
from src.blockbuilder.models import (
    ApplyResponse,
    BuildBlockRequest,
    BuildBlockResponse,
    RegistrationRequest,
)
from src.blockbuilder.signer import LocalKeySigner, verify_signature
from src.helpers.constants import BUILD_PATH, REGISTER_PATH
from src.helpers.http import decode_request_body


API_URL = "https://builder.test"
CHAIN_ID = "chain-1"
PAYMENT_ADDRESS = "pay1validator"


def make_id(chain_id: str, address: str) -> str:
    return f"{chain_id}:{address}"


class MockBuilderAPI:
    """In-process builder API served through httpx.MockTransport.

    Issues single-use 10 byte challenges, verifies ed25519 signatures over
    the canonical bytes, and echoes build requests back as responses.
    """

    def __init__(self) -> None:
        self.public_keys: dict[str, bytes] = {}
        self.challenges: dict[str, tuple[bytes, RegistrationRequest]] = {}
        self.validators: dict[str, RegistrationRequest] = {}
        self.issued_challenge_ids: list[str] = []
        self.build_requests: list[BuildBlockRequest] = []
        self.requests: list[httpx.Request] = []
        self.apply_count = 0
        self.register_count = 0
        self.register_result = "success"
        self.latency = 0.0
        self.apply_gate: asyncio.Event | None = None
        self.in_flight_builds = 0
        self.max_in_flight_builds = 0

    def add_public_key(self, chain_id: str, address: str, public_key: bytes) -> None:
        self.public_keys[make_id(chain_id, address)] = public_key

    def is_registered(self, chain_id: str, address: str) -> bool:
        return make_id(chain_id, address) in self.validators

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        try:
            body = decode_request_body(
                request.content, request.headers.get("content-encoding")
            )
        except ValueError as e:
            return httpx.Response(400, json={"error": str(e)})

        try:
            if request.url.path == REGISTER_PATH:
                return await self._register(RegistrationRequest.model_validate_json(body))
            if request.url.path == BUILD_PATH:
                return await self._build(BuildBlockRequest.model_validate_json(body))
        except ValidationError as e:
            return httpx.Response(400, json={"error": f"decode request: {e}"})

        return httpx.Response(404, text=f"unknown mock API route {request.url.path}\n")

    async def _register(self, req: RegistrationRequest) -> httpx.Response:
        if req.is_apply:
            self.apply_count += 1
            if self.apply_gate is not None:
                await self.apply_gate.wait()
            await asyncio.sleep(self.latency)

            challenge_id = secrets.token_hex(16)
            challenge = secrets.token_bytes(10)
            self.challenges[challenge_id] = (challenge, req)
            self.issued_challenge_ids.append(challenge_id)
            response = ApplyResponse(challenge_id=challenge_id, challenge=challenge)
            return httpx.Response(200, json=response.model_dump(mode="json"))

        self.register_count += 1
        entry = self.challenges.pop(req.challenge_id, None)
        if entry is None:
            return httpx.Response(400, text="no such challenge ID\n")

        challenge, applicant = entry
        validator_id = make_id(applicant.chain_id, applicant.validator_address)
        public_key = self.public_keys.get(validator_id)
        if public_key is None:
            return httpx.Response(400, text=f'no public key for "{validator_id}"\n')

        message = register_challenge_sign_bytes(challenge)
        if not verify_signature(public_key, message, req.signature):
            return httpx.Response(400, text="bad signature\n")

        self.validators[validator_id] = applicant
        return httpx.Response(200, json={"result": self.register_result})

    async def _build(self, req: BuildBlockRequest) -> httpx.Response:
        validator_id = make_id(req.chain_id, req.validator_address)
        if validator_id not in self.validators:
            return httpx.Response(400, text=f"unknown validator {validator_id}\n")

        public_key = self.public_keys[validator_id]
        if not verify_signature(public_key, req.sign_bytes(), req.signature):
            return httpx.Response(400, text="bad signature\n")

        self.in_flight_builds += 1
        self.max_in_flight_builds = max(
            self.max_in_flight_builds, self.in_flight_builds
        )
        try:
            await asyncio.sleep(self.latency)
        finally:
            self.in_flight_builds -= 1

        self.build_requests.append(req)
        response = BuildBlockResponse(
            txs=req.txs,
            validator_payment=f"{len(req.txs)} {req.chain_id} coins",
        )
        return httpx.Response(200, json=response.model_dump(mode="json"))


@pytest.fixture
def mock_api() -> MockBuilderAPI:
    """Fresh builder API double per test."""
    return MockBuilderAPI()


@pytest.fixture
def validator_key() -> LocalKeySigner:
    return LocalKeySigner.generate()


@pytest_asyncio.fixture
async def http_client(
    mock_api: MockBuilderAPI,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """AsyncClient routed to the mock builder API."""
    transport = httpx.MockTransport(mock_api.handle)
    async with httpx.AsyncClient(transport=transport) as client:
        yield client


@pytest.fixture
def make_builder(
    http_client: httpx.AsyncClient,
    mock_api: MockBuilderAPI,
    validator_key: LocalKeySigner,
) -> Callable[..., Builder]:
    """Factory for builders whose validator key is known to the mock API.

    Args passed through override the defaults; known_key=False leaves the
    validator's public key unknown to the API.
    """

    def factory(
        *,
        signer: object | None = None,
        validator_address: str | None = None,
        compression: bool = False,
        known_key: bool = True,
    ) -> Builder:
        address = validator_address or validator_key.address
        if known_key:
            mock_api.add_public_key(CHAIN_ID, address, validator_key.public_key)
        return Builder(
            http_client,
            API_URL,
            signer or validator_key,  # type: ignore[arg-type]
            CHAIN_ID,
            address,
            PAYMENT_ADDRESS,
            compression=compression,
        )

    return factory
