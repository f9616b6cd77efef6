"""Exception types raised while routing and executing provider actions.

- GatewayError: base class, carries ``error_type`` and the HTTP ``status_code``
- UnknownProvider / UnknownAction / InvalidPayload: caller errors (400)
- CredentialsMissing: provider configuration absent (500)
- TransportFailure: provider answered non-2xx or the request itself failed (500)
- UnexpectedFailure: anything else raised inside a handler (500)

Handlers raise these; ``ActionRouter.dispatch`` turns every one of them into a
failed ``ActionResult`` so nothing propagates past the router.
"""

from __future__ import annotations

from collections.abc import Iterable

__all__ = [
    "CredentialsMissing",
    "GatewayError",
    "InvalidPayload",
    "TransportFailure",
    "UnexpectedFailure",
    "UnknownAction",
    "UnknownProvider",
]


class GatewayError(Exception):
    """Base exception for gateway failures."""

    error_type = "gateway_error"
    status_code = 500


class UnknownProvider(GatewayError):
    error_type = "unknown_provider"
    status_code = 400

    def __init__(self, provider: object) -> None:
        self.provider = provider
        super().__init__(f"Unknown provider: {provider}")


class UnknownAction(GatewayError):
    error_type = "unknown_action"
    status_code = 400

    def __init__(self, provider: str, action: object) -> None:
        self.provider = provider
        self.action = action
        super().__init__(f"Unknown action for {provider}: {action}")


class InvalidPayload(GatewayError):
    """Raised when required payload fields are absent or malformed."""

    error_type = "invalid_payload"
    status_code = 400

    def __init__(self, missing: Iterable[str] = (), message: str | None = None) -> None:
        self.missing = list(missing)
        if message is None:
            message = f"Missing required fields: {', '.join(self.missing)}"
        super().__init__(message)


class CredentialsMissing(GatewayError):
    """Raised before any network call when a provider is not configured.

    The message always mentions "credentials"; capability probing relies on it.
    """

    error_type = "credentials_missing"
    status_code = 500

    def __init__(self, provider_label: str) -> None:
        super().__init__(f"{provider_label} credentials not configured")


class TransportFailure(GatewayError):
    """Raised when a provider request fails.

    Attributes:
        provider_status: HTTP status the provider answered with, or None when
            no response was received (connection error, timeout).
    """

    error_type = "transport_failure"
    status_code = 500

    def __init__(self, message: str, provider_status: int | None = None) -> None:
        self.provider_status = provider_status
        super().__init__(message)


class UnexpectedFailure(GatewayError):
    error_type = "unexpected_failure"
    status_code = 500

    def __init__(self, exc: BaseException) -> None:
        self.original = exc
        super().__init__(str(exc) or type(exc).__name__)
