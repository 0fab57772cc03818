"""Builder API client used by a proposing validator."""

from typing import Self

import httpx

from src.blockbuilder.models import BuildBlockRequest, BuildBlockResponse
from src.blockbuilder.registration import RegistrationGate, call_signer
from src.blockbuilder.signer import Signer
from src.blockbuilder.transport import RequestTransport
from src.helpers.config import (
    get_builder_api_url,
    get_builder_timeout,
    is_compression_enabled,
)
from src.helpers.constants import BUILD_PATH
from src.helpers.logging import get_logger


logger = get_logger(__name__)


class Builder:
    """Delegates block construction to the builder API.

    Intended to live for the lifetime of a validator node and be shared by
    every task that proposes blocks. The validator is registered lazily on
    the first build, or eagerly through register().
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str,
        signer: Signer,
        chain_id: str,
        validator_address: str,
        payment_address: str,
        *,
        compression: bool = False,
        timeout: float | None = None,
    ) -> None:
        """Initialize a builder that has not yet registered.

        Args:
            client: HTTP client used for every builder API call
            api_url: Builder API base URL
            signer: Signs build requests and registration challenges with
                the validator's key
            chain_id: Chain the validator proposes on
            validator_address: Validator address as represented on chain,
                normally uppercase hex
            payment_address: Address the builder API pays the validator at
            compression: Whether to gzip request bodies
            timeout: Per-request timeout override

        Raises:
            ValueError: If api_url is empty
        """
        self.signer = signer
        self.chain_id = chain_id
        self.validator_address = validator_address
        self.payment_address = payment_address
        self.transport = RequestTransport(
            client, api_url, compression=compression, timeout=timeout
        )
        self.gate = RegistrationGate(
            self.transport, signer, chain_id, validator_address, payment_address
        )

    @classmethod
    def from_env(
        cls,
        client: httpx.AsyncClient,
        signer: Signer,
        chain_id: str,
        validator_address: str,
        payment_address: str,
    ) -> Self:
        """Create a builder configured from MEKATEK_BUILDER_API_* variables.

        Example:
            ```python
            async with create_http_client() as client:
                builder = Builder.from_env(
                    client, signer, "chain-1", signer.address, "pay1..."
                )
                response = await builder.build_block(request)
            ```
        """
        return cls(
            client,
            get_builder_api_url(),
            signer,
            chain_id,
            validator_address,
            payment_address,
            compression=is_compression_enabled(),
            timeout=get_builder_timeout(),
        )

    @property
    def registered(self) -> bool:
        return self.gate.registered

    @property
    def compression(self) -> bool:
        return self.transport.compression

    @compression.setter
    def compression(self, enabled: bool) -> None:
        self.transport.compression = enabled

    async def register(self) -> None:
        """Register the validator with the builder API, once.

        Raises:
            RegistrationError: If the handshake failed; safe to retry
        """
        await self.gate.ensure_registered()

    async def build_block(self, request: BuildBlockRequest) -> BuildBlockResponse:
        """Sign request and submit it to the build endpoint.

        Sets request.signature as a side effect, and registers first if this
        builder has not yet done so.

        Args:
            request: Unsigned build request

        Returns:
            Transactions chosen by the builder API, in block order

        Raises:
            RegistrationError: If registration failed; nothing was signed or sent
            SigningError: If the signer failed
            EncodingError: If the request could not be encoded
            TransportError: If the build call failed
        """
        await self.register()

        await call_signer(
            self.signer.sign_build_block_request, request, "build-block-request"
        )

        response = await self.transport.send(BUILD_PATH, request, BuildBlockResponse)
        logger.debug(
            "Built block at height %d with %d txs", request.height, len(response.txs)
        )
        return response


__all__ = ["Builder"]
