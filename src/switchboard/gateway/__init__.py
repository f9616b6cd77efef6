"""Integration gateway: action routing and capability probing."""

from switchboard.gateway.errors import (
    CredentialsMissing,
    GatewayError,
    InvalidPayload,
    TransportFailure,
    UnexpectedFailure,
    UnknownAction,
    UnknownProvider,
)
from switchboard.gateway.models import (
    ActionRequest,
    ActionResult,
    ActionSpec,
    CapabilitySnapshot,
    ProbeOutcome,
    Provider,
)
from switchboard.gateway.prober import CapabilityCache, CapabilityProber, ProbeSpec, default_probes
from switchboard.gateway.router import ActionRouter

__all__ = [
    "ActionRequest",
    "ActionResult",
    "ActionRouter",
    "ActionSpec",
    "CapabilityCache",
    "CapabilityProber",
    "CapabilitySnapshot",
    "CredentialsMissing",
    "GatewayError",
    "InvalidPayload",
    "ProbeOutcome",
    "ProbeSpec",
    "Provider",
    "TransportFailure",
    "UnexpectedFailure",
    "UnknownAction",
    "UnknownProvider",
    "default_probes",
]
