"""One-time challenge/response registration with the builder API."""

import asyncio
import inspect

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from src.blockbuilder.errors import (
    BuilderError,
    EncodingError,
    ProtocolError,
    RegistrationError,
    SigningError,
)
from src.blockbuilder.models import (
    ApplyRequest,
    ApplyResponse,
    RegisterChallenge,
    RegisterRequest,
    RegisterResponse,
)
from src.blockbuilder.signer import Signer
from src.blockbuilder.transport import RequestTransport
from src.helpers.constants import REGISTER_PATH, REGISTER_SUCCESS_RESULT
from src.helpers.logging import get_logger


logger = get_logger(__name__)


class RegistrationState(Enum):
    UNREGISTERED = "unregistered"
    APPLYING = "applying"
    CHALLENGED = "challenged"
    REGISTERING = "registering"
    REGISTERED = "registered"


async def call_signer(
    sign: Callable[[Any], None | Awaitable[None]], message: Any, phase: str
) -> None:
    """Run a signer method, awaiting it if needed, and map failures.

    Args:
        sign: Bound signer method, sync or async
        message: Model whose signature field the signer sets
        phase: Phase name reported on failure

    Raises:
        SigningError: If the signer raised or left the signature empty
        EncodingError: If the message has no canonical encoding
    """
    try:
        result = sign(message)
        if inspect.isawaitable(result):
            await result
    except EncodingError:
        raise
    except Exception as e:
        raise SigningError(phase, f"signer failed: {e}", e) from e

    if not message.signature:
        raise SigningError(phase, "signer produced no signature")


class RegistrationGate:
    """Runs apply -> sign -> register once per instance, safe for many tasks.

    Only the handshake is serialized. Once registered, callers return without
    touching the lock, so later build requests never wait on each other.
    A failed or cancelled attempt leaves the gate unregistered; the next call
    starts over with a fresh challenge.
    """

    def __init__(
        self,
        transport: RequestTransport,
        signer: Signer,
        chain_id: str,
        validator_address: str,
        payment_address: str,
    ) -> None:
        self.transport = transport
        self.signer = signer
        self.chain_id = chain_id
        self.validator_address = validator_address
        self.payment_address = payment_address
        self._state = RegistrationState.UNREGISTERED
        self._lock = asyncio.Lock()

    @property
    def state(self) -> RegistrationState:
        return self._state

    @property
    def registered(self) -> bool:
        return self._state is RegistrationState.REGISTERED

    async def ensure_registered(self) -> None:
        """Register with the builder API unless this gate already has.

        Raises:
            RegistrationError: If any phase of the handshake failed
            asyncio.CancelledError: If the caller cancelled mid-handshake
        """
        if self.registered:
            return

        async with self._lock:
            # Another task may have finished while we waited
            if self.registered:
                return

            try:
                await self._handshake()
            except BaseException:
                self._state = RegistrationState.UNREGISTERED
                raise

    async def _handshake(self) -> None:
        self._transition(RegistrationState.APPLYING)
        try:
            applied = await self.transport.send(
                REGISTER_PATH,
                ApplyRequest(
                    chain_id=self.chain_id,
                    validator_address=self.validator_address,
                    payment_address=self.payment_address,
                ),
                ApplyResponse,
            )
        except BuilderError as e:
            raise RegistrationError("apply", f"registration application: {e}", e) from e

        self._transition(RegistrationState.CHALLENGED)
        challenge = RegisterChallenge(
            challenge=applied.challenge, challenge_id=applied.challenge_id
        )
        try:
            await call_signer(
                self.signer.sign_register_challenge, challenge, "register-challenge"
            )
        except (SigningError, EncodingError) as e:
            raise RegistrationError("sign", f"sign register challenge: {e}", e) from e

        self._transition(RegistrationState.REGISTERING)
        try:
            registered = await self.transport.send(
                REGISTER_PATH,
                RegisterRequest(
                    challenge_id=challenge.challenge_id,
                    signature=challenge.signature,
                ),
                RegisterResponse,
            )
            if registered.result != REGISTER_SUCCESS_RESULT:
                msg = f"unexpected register result {registered.result!r}"
                raise ProtocolError("register", msg)
        except BuilderError as e:
            raise RegistrationError("register", f"registration response: {e}", e) from e

        self._transition(RegistrationState.REGISTERED)
        logger.info(
            "Registered validator %s on %s with builder API",
            self.validator_address,
            self.chain_id,
        )

    def _transition(self, state: RegistrationState) -> None:
        logger.debug("Registration %s -> %s", self._state.value, state.value)
        self._state = state


__all__ = ["RegistrationGate", "RegistrationState", "call_signer"]
