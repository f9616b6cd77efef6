"""Capability probing — which providers are usable right now.

Every provider is probed through the action router with a benign request
issued as the ``config-check`` agent. Probes run concurrently and settle
independently; the snapshot is only built once all of them have finished.

Two mapping policies turn a probe outcome into an availability flag:

- ``strict``: the probe is expected to succeed when the provider is
  configured, so only a clean success counts.
- ``placeholder``: the probe targets a dummy recipient and is expected to be
  refused by the provider. Any domain error other than a credentials error
  proves the credentials work. This relies on the wording of the error
  message and breaks if a provider words a credential error differently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog

from switchboard.config import ProbeConfig
from switchboard.gateway.errors import (
    TransportFailure,
    UnexpectedFailure,
    UnknownAction,
    UnknownProvider,
)
from switchboard.gateway.models import (
    CONFIG_CHECK_AGENT_ID,
    ActionRequest,
    ActionResult,
    CapabilitySnapshot,
    ProbeOutcome,
    Provider,
)
from switchboard.gateway.router import ActionRouter

logger = structlog.get_logger()

ProbePolicy = Literal["strict", "placeholder"]

_REJECTED_ERROR_TYPES = {UnknownProvider.error_type, UnknownAction.error_type, UnexpectedFailure.error_type}


@dataclass(frozen=True)
class ProbeSpec:
    provider: Provider
    action: str
    payload: dict[str, Any] = field(default_factory=dict)
    policy: ProbePolicy = "strict"


def default_probes(config: ProbeConfig | None = None) -> list[ProbeSpec]:
    """One minimal, benign probe per known provider."""
    config = config or ProbeConfig()
    return [
        ProbeSpec(Provider.CLASSROOM, "getCourses"),
        ProbeSpec(
            Provider.VOICE_CALL,
            "sendSms",
            {"phoneNumber": config.phone_number, "message": "test"},
            policy="placeholder",
        ),
        ProbeSpec(
            Provider.EMAIL,
            "sendEmail",
            {"recipient": config.email, "subject": "test", "body": "test"},
            policy="placeholder",
        ),
        ProbeSpec(Provider.WEB_RESEARCH, "research", {"query": "test", "purpose": "configuration check"}),
        ProbeSpec(Provider.CHAT, "chat", {"message": "test"}),
        ProbeSpec(
            Provider.DOCUMENTS,
            "processDocument",
            {"documentId": CONFIG_CHECK_AGENT_ID},
            policy="placeholder",
        ),
        ProbeSpec(Provider.TASK_BOARD, "getBoards"),
    ]


def classify(result: ActionResult) -> ProbeOutcome:
    """Map a probe result onto fulfilled / rejected / degraded."""
    if result.success:
        return ProbeOutcome.FULFILLED
    if result.error_type in _REJECTED_ERROR_TYPES:
        return ProbeOutcome.REJECTED
    if result.error_type == TransportFailure.error_type and result.provider_status is None:
        # No response at all: network failure or timeout.
        return ProbeOutcome.REJECTED
    return ProbeOutcome.DEGRADED


def is_available(policy: ProbePolicy, outcome: ProbeOutcome, error: str | None = None) -> bool:
    if outcome is ProbeOutcome.FULFILLED:
        return True
    if policy == "placeholder" and outcome is ProbeOutcome.DEGRADED:
        return "credentials" not in (error or "").lower()
    return False


class CapabilityProber:
    """Runs one probing round across every provider."""

    def __init__(
        self,
        router: ActionRouter,
        probes: Sequence[ProbeSpec] | None = None,
        *,
        timeout_s: float | None = None,
    ) -> None:
        self.router = router
        self.probes = list(probes) if probes is not None else default_probes()
        self.timeout_s = timeout_s

    async def probe_all(self) -> CapabilitySnapshot:
        settled = await asyncio.gather(
            *(self._probe(spec) for spec in self.probes),
            return_exceptions=True,
        )

        available: dict[Provider, bool] = {}
        for spec, outcome in zip(self.probes, settled):
            available[spec.provider] = self._evaluate(spec, outcome)

        snapshot = CapabilitySnapshot({provider: available.get(provider, False) for provider in Provider})
        logger.info(
            "capabilities.probe.round_completed",
            available=[p.value for p, ok in snapshot.available.items() if ok],
        )
        return snapshot

    async def _probe(self, spec: ProbeSpec) -> ActionResult:
        request = ActionRequest(
            provider=spec.provider.value,
            action=spec.action,
            agent_id=CONFIG_CHECK_AGENT_ID,
            payload=dict(spec.payload),
        )
        if self.timeout_s is None:
            return await self.router.dispatch(request)
        return await asyncio.wait_for(self.router.dispatch(request), self.timeout_s)

    def _evaluate(self, spec: ProbeSpec, outcome: ActionResult | BaseException) -> bool:
        if isinstance(outcome, BaseException):
            logger.warning(
                "capabilities.probe.failed",
                provider=spec.provider.value,
                error=str(outcome) or type(outcome).__name__,
            )
            return False

        probe_outcome = classify(outcome)
        ok = is_available(spec.policy, probe_outcome, outcome.error)
        logger.info(
            "capabilities.probe.completed",
            provider=spec.provider.value,
            outcome=probe_outcome.value,
            available=ok,
            error=outcome.error,
        )
        return ok


class CapabilityCache:
    """Owns the capability snapshot: computed once, dropped only on demand.

    Concurrent ``get()`` calls share one probing round. ``invalidate()`` bumps
    a generation counter, so a round that started earlier never stores its
    result and the next ``get()`` probes again.
    """

    def __init__(self, prober: CapabilityProber) -> None:
        self.prober = prober
        self._snapshot: CapabilitySnapshot | None = None
        self._round: asyncio.Task[CapabilitySnapshot] | None = None
        self._generation = 0

    async def get(self) -> CapabilitySnapshot:
        """Cached snapshot, probing every provider if there is none."""
        if self._snapshot is not None:
            return self._snapshot
        if self._round is None:
            self._round = asyncio.create_task(self._run_round(self._generation))
        return await asyncio.shield(self._round)

    async def _run_round(self, generation: int) -> CapabilitySnapshot:
        try:
            snapshot = await self.prober.probe_all()
        finally:
            if generation == self._generation:
                self._round = None
        if generation == self._generation:
            self._snapshot = snapshot
        else:
            logger.info("capabilities.cache.round_discarded", generation=generation)
        return snapshot

    def peek(self) -> CapabilitySnapshot | None:
        return self._snapshot

    def invalidate(self) -> None:
        self._generation += 1
        self._snapshot = None
        self._round = None
        logger.info("capabilities.cache.invalidated", generation=self._generation)

    async def refresh(self) -> CapabilitySnapshot:
        self.invalidate()
        return await self.get()
