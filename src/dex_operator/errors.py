"""Error taxonomy shared by providers, the assembler and self renewal."""

from __future__ import annotations


class DexOperatorError(RuntimeError):
    """Base error type for dex operator failures."""


class InvalidConfigError(DexOperatorError):
    """Raised when input configuration is unusable and must be fixed first."""


class NotFoundError(DexOperatorError):
    """Raised when an expected remote object does not exist."""


class RequestFailedError(DexOperatorError):
    """Raised when a call to an identity provider fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise the error with the optional HTTP status of the response."""
        super().__init__(message)
        self.status_code = status_code


class MissingCallbackURIError(DexOperatorError):
    """Raised when a remote app lacks a callback URI or permissions we need."""


class RenewalError(DexOperatorError):
    """Raised when the operator's own credentials cannot be renewed."""


__all__ = [
    "DexOperatorError",
    "InvalidConfigError",
    "MissingCallbackURIError",
    "NotFoundError",
    "RenewalError",
    "RequestFailedError",
]
