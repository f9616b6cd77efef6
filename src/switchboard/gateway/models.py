"""Gateway request, result and capability models."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from switchboard.gateway.errors import GatewayError

CONFIG_CHECK_AGENT_ID = "config-check"


class Provider(StrEnum):
    """Every external capability the gateway can route to."""

    CLASSROOM = "classroom"
    VOICE_CALL = "voice-call"
    EMAIL = "email"
    WEB_RESEARCH = "web-research"
    CHAT = "chat"
    DOCUMENTS = "documents"
    TASK_BOARD = "task-board"


class ProbeOutcome(StrEnum):
    FULFILLED = "fulfilled"
    REJECTED = "rejected"
    DEGRADED = "degraded"


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


def correlation_id(kind: str) -> str:
    """Locally generated id for results the provider does not identify."""
    return f"{kind}_{int(time.time() * 1000)}"


ActionCallable = Callable[[str, dict[str, Any]], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class ActionSpec:
    """One entry of a provider's action table."""

    name: str
    run: ActionCallable
    required: tuple[str, ...] = ()


@dataclass
class ActionRequest:
    """Normalized action invocation accepted by the router."""

    provider: str
    action: str | None
    agent_id: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionResult:
    """Uniform envelope returned for every dispatch."""

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    timestamp: str = field(default_factory=utc_timestamp)
    error_type: str | None = None
    provider_status: int | None = None
    status_code: int = 200

    @classmethod
    def ok(cls, data: dict[str, Any]) -> ActionResult:
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, exc: GatewayError) -> ActionResult:
        return cls(
            success=False,
            error=str(exc),
            error_type=exc.error_type,
            provider_status=getattr(exc, "provider_status", None),
            status_code=exc.status_code,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire envelope: success, data or error, timestamp."""
        envelope: dict[str, Any] = {"success": self.success}
        if self.success:
            envelope["data"] = self.data
        else:
            envelope["error"] = self.error
        envelope["timestamp"] = self.timestamp
        return envelope


@dataclass
class CapabilitySnapshot:
    """Availability of every known provider at the time of a probing round."""

    available: dict[Provider, bool]
    checked_at: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "providers": {provider.value: ok for provider, ok in self.available.items()},
            "checked_at": self.checked_at,
        }
