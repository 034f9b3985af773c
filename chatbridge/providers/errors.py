# one error family for everything a provider can fail with,
# so the api layer can tell caller mistakes (InvalidInput) from provider faults

from typing import Optional


class ProviderError(Exception):
    """Base for all provider failures. Carries which provider and operation failed."""

    def __init__(self, message: str, *, provider: Optional[str] = None, operation: Optional[str] = None) -> None:
        self.provider = provider
        self.operation = operation
        prefix = " ".join(p for p in (provider, operation) if p)
        super().__init__(f"{prefix}: {message}" if prefix else message)


class ConfigurationError(ProviderError):
    pass


class InvalidInput(ProviderError):
    pass


class TransportError(ProviderError):
    pass


class UpstreamError(ProviderError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        error_type: Optional[str] = None,
        provider: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.error_type = error_type
        super().__init__(message, provider=provider, operation=operation)


class ProtocolError(ProviderError):
    pass


class CallbackAbort:
    """
    Value a stream callback returns to stop the stream early.
    Not an error: completion_stream hands it back to the caller as its result.
    """

    def __init__(self, reason: str = "") -> None:
        self.reason = reason

    def __repr__(self) -> str:
        return f"CallbackAbort({self.reason!r})"
