"""Exceptions raised by the builder API client."""


class BuilderError(Exception):
    """Base error carrying the failing phase and the underlying cause."""

    def __init__(
        self, phase: str, message: str, cause: BaseException | None = None
    ) -> None:
        self.phase = phase
        self.message = message
        self.cause = cause
        super().__init__(f"{phase}: {message}")


class EncodingError(BuilderError):
    """A request could not be serialized or canonically encoded."""


class SigningError(BuilderError):
    """The signer failed or produced no signature."""


class TransportError(BuilderError):
    """Network failure, non-200 response, or undecodable response body."""

    def __init__(
        self,
        phase: str,
        message: str,
        cause: BaseException | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        if status_code is not None:
            message = f"response code {status_code} ({message})"
        super().__init__(phase, message, cause)


class ProtocolError(BuilderError):
    """The builder API answered with a value the protocol does not allow."""


class RegistrationError(BuilderError):
    """A phase of the registration handshake failed."""


__all__ = [
    "BuilderError",
    "EncodingError",
    "ProtocolError",
    "RegistrationError",
    "SigningError",
    "TransportError",
]
