"""Provider handler base class — the contract for every external integration."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from switchboard.gateway.errors import CredentialsMissing, TransportFailure, UnknownAction
from switchboard.gateway.models import ActionSpec, Provider

logger = structlog.get_logger()


class ProviderHandler(ABC):
    """Base class for all provider handlers.

    A handler owns:
    1. A closed action table (``action_table``) mapping action names to the
       coroutine implementing them and the payload fields they require
    2. All provider-specific request shaping
    3. The outbound HTTP call(s), through ``_request`` which maps transport
       errors and non-2xx responses to ``TransportFailure``

    Handlers raise ``GatewayError`` subclasses; the router converts them.
    """

    #: Action used when an inbound request omits ``action``.
    default_action: str | None = None

    def __init__(
        self,
        *,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_s = timeout_s
        self.transport = transport
        self._actions: dict[str, ActionSpec] | None = None

    @property
    @abstractmethod
    def provider(self) -> Provider:
        """Provider this handler serves."""
        ...

    @property
    @abstractmethod
    def label(self) -> str:
        """Human-readable provider name used in error messages."""
        ...

    @property
    @abstractmethod
    def configured(self) -> bool:
        """Whether every credential the provider needs is present."""
        ...

    @abstractmethod
    def action_table(self) -> list[ActionSpec]:
        """Return the actions this provider supports."""
        ...

    @property
    def actions(self) -> dict[str, ActionSpec]:
        if self._actions is None:
            self._actions = {spec.name: spec for spec in self.action_table()}
        return self._actions

    def resolve(self, action: str | None) -> ActionSpec:
        """Look up an action, falling back to the provider default."""
        name = action or self.default_action
        spec = self.actions.get(name) if name else None
        if spec is None:
            raise UnknownAction(self.provider.value, action)
        return spec

    def require_credentials(self) -> None:
        if not self.configured:
            raise CredentialsMissing(self.label)

    def _client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_s),
            transport=self.transport,
            **kwargs,
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        error_prefix: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request; raise ``TransportFailure`` on any failure."""
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "providers.request.error",
                provider=self.provider.value,
                method=method,
                error=str(exc),
            )
            raise TransportFailure(f"{error_prefix}: {type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            detail = error_detail(response)
            logger.warning(
                "providers.request.failed",
                provider=self.provider.value,
                method=method,
                status_code=response.status_code,
                body=response.text[:300],
            )
            raise TransportFailure(
                f"{error_prefix}: {response.status_code} {detail}".rstrip(),
                provider_status=response.status_code,
            )
        return response

    async def _request_json(self, method: str, url: str, *, error_prefix: str, **kwargs: Any) -> Any:
        response = await self._request(method, url, error_prefix=error_prefix, **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise TransportFailure(
                f"{error_prefix}: invalid JSON response",
                provider_status=response.status_code,
            ) from exc

    def __repr__(self) -> str:
        return f"<ProviderHandler: {self.provider.value}>"


def error_detail(response: httpx.Response) -> str:
    """Best-effort human message from a provider error body."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("message", "error_description", "detail", "error"):
            value = body.get(key)
            if isinstance(value, dict):
                value = value.get("message")
            if isinstance(value, str) and value.strip():
                return value.strip()

    text = response.text.strip()
    if text:
        return text[:300]
    return response.reason_phrase or ""


def nested(payload: dict[str, Any], field: str) -> dict[str, Any]:
    """Return a nested object field, defaulting to an empty dict."""
    value = payload.get(field)
    return value if isinstance(value, dict) else {}
