"""Action routing — provider/action validation and handler dispatch."""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from switchboard.gateway.errors import (
    GatewayError,
    InvalidPayload,
    UnexpectedFailure,
    UnknownProvider,
)
from switchboard.gateway.models import ActionRequest, ActionResult, ActionSpec, Provider

if TYPE_CHECKING:
    from switchboard.providers.base import ProviderHandler

logger = structlog.get_logger()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_fields(agent_id: str | None, spec: ActionSpec, payload: dict[str, Any]) -> list[str]:
    missing = ["agentId"] if _is_blank(agent_id) else []
    missing.extend(name for name in spec.required if _is_blank(payload.get(name)))
    return missing


class ActionRouter:
    """Routes validated action requests to provider handlers.

    ``dispatch`` never raises: every failure, whether a caller error caught
    during validation or an exception out of a handler, comes back as a failed
    ``ActionResult``.
    """

    def __init__(self, handlers: Iterable[ProviderHandler]) -> None:
        self.handlers: dict[Provider, ProviderHandler] = {}
        for handler in handlers:
            self.handlers[handler.provider] = handler

    def handler_for(self, provider: str) -> ProviderHandler:
        try:
            key = Provider(provider)
        except ValueError:
            raise UnknownProvider(provider) from None
        handler = self.handlers.get(key)
        if handler is None:
            raise UnknownProvider(provider)
        return handler

    def describe(self) -> list[dict[str, Any]]:
        """Providers with their action tables, for discovery endpoints."""
        return [
            {
                "provider": provider.value,
                "configured": handler.configured,
                "default_action": handler.default_action,
                "actions": [
                    {"name": spec.name, "required": list(spec.required)}
                    for spec in handler.actions.values()
                ],
            }
            for provider, handler in self.handlers.items()
        ]

    async def dispatch(self, request: ActionRequest) -> ActionResult:
        """Validate, invoke the handler, and wrap the outcome in an envelope."""
        payload = request.payload or {}
        with structlog.contextvars.bound_contextvars(
            agent_id=request.agent_id,
            provider=request.provider,
        ):
            try:
                handler = self.handler_for(request.provider)
                spec = handler.resolve(request.action)
                missing = missing_fields(request.agent_id, spec, payload)
                if missing:
                    raise InvalidPayload(missing)
            except GatewayError as exc:
                logger.warning(
                    "gateway.dispatch.rejected",
                    action=request.action,
                    error_type=exc.error_type,
                    error=str(exc),
                )
                return ActionResult.failed(exc)

            with structlog.contextvars.bound_contextvars(action=spec.name):
                return await self._invoke(spec, request.agent_id, payload)

    async def _invoke(self, spec: ActionSpec, agent_id: str, payload: dict[str, Any]) -> ActionResult:
        start = time.monotonic()
        logger.info("gateway.dispatch.start")
        try:
            data = await spec.run(agent_id, dict(payload))
        except GatewayError as exc:
            log = logger.warning if exc.status_code < 500 else logger.error
            log(
                "gateway.dispatch.failed",
                error_type=exc.error_type,
                error=str(exc),
                provider_status=getattr(exc, "provider_status", None),
            )
            return ActionResult.failed(exc)
        except Exception as exc:
            logger.exception("gateway.dispatch.unexpected", error=str(exc))
            return ActionResult.failed(UnexpectedFailure(exc))

        logger.info(
            "gateway.dispatch.succeeded",
            duration=f"{time.monotonic() - start:.2f}s",
        )
        return ActionResult.ok(data)
