from __future__ import annotations

import asyncio

import httpx
import pytest

from switchboard.config import TwilioConfig
from switchboard.gateway import (
    ActionResult,
    ActionRouter,
    CapabilityCache,
    CapabilityProber,
    CredentialsMissing,
    ProbeOutcome,
    ProbeSpec,
    Provider,
    TransportFailure,
    default_probes,
)
from switchboard.gateway.models import ActionSpec
from switchboard.gateway.prober import classify, is_available
from switchboard.providers import VoiceCallHandler
from switchboard.providers.base import ProviderHandler

PROBE_ACTIONS = {spec.provider: spec.action for spec in default_probes()}


class FakeHandler(ProviderHandler):
    """Answers its provider's probe action with a canned outcome."""

    provider = Provider.CHAT
    label = "Fake"

    def __init__(self, provider: Provider, outcome: BaseException | None = None, delay: float = 0.0) -> None:
        super().__init__()
        self.provider = provider
        self.outcome = outcome
        self.delay = delay
        self.calls = 0

    @property
    def configured(self) -> bool:
        return True

    def action_table(self) -> list[ActionSpec]:
        return [ActionSpec(PROBE_ACTIONS[self.provider], self.run)]

    async def run(self, agent_id, payload):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.outcome is not None:
            raise self.outcome
        return {"agentId": agent_id}


def _handlers(**outcomes: BaseException) -> dict[Provider, FakeHandler]:
    return {
        provider: FakeHandler(provider, outcomes.get(provider.name.lower()))
        for provider in Provider
    }


def _prober(handlers: dict[Provider, FakeHandler], **kwargs) -> CapabilityProber:
    return CapabilityProber(ActionRouter(handlers.values()), **kwargs)


@pytest.mark.asyncio
async def test_every_provider_gets_an_entry() -> None:
    chat = FakeHandler(Provider.CHAT)
    prober = CapabilityProber(ActionRouter([chat]))

    snapshot = await prober.probe_all()

    assert set(snapshot.available) == set(Provider)
    assert snapshot.available[Provider.CHAT] is True
    assert not any(ok for provider, ok in snapshot.available.items() if provider is not Provider.CHAT)


@pytest.mark.asyncio
async def test_failing_probe_does_not_affect_the_others() -> None:
    handlers = _handlers(classroom=RuntimeError("socket closed"))

    snapshot = await _prober(handlers).probe_all()

    assert snapshot.available[Provider.CLASSROOM] is False
    assert all(ok for provider, ok in snapshot.available.items() if provider is not Provider.CLASSROOM)


@pytest.mark.asyncio
async def test_probes_are_sent_as_config_check_agent() -> None:
    seen: list[str] = []

    class Recording(FakeHandler):
        async def run(self, agent_id, payload):
            seen.append(agent_id)
            return {}

    await CapabilityProber(ActionRouter([Recording(Provider.EMAIL)])).probe_all()

    assert seen == ["config-check"]


@pytest.mark.asyncio
async def test_placeholder_probe_counts_domain_rejection_as_available() -> None:
    handlers = _handlers(
        voice_call=TransportFailure("Twilio API error: 400 Invalid phone number", provider_status=400),
        email=CredentialsMissing("Resend API"),
    )

    snapshot = await _prober(handlers).probe_all()

    assert snapshot.available[Provider.VOICE_CALL] is True
    assert snapshot.available[Provider.EMAIL] is False


@pytest.mark.asyncio
async def test_strict_probe_requires_success() -> None:
    handlers = _handlers(classroom=TransportFailure("Failed to get courses: 403 Forbidden", provider_status=403))

    snapshot = await _prober(handlers).probe_all()

    assert snapshot.available[Provider.CLASSROOM] is False


@pytest.mark.asyncio
async def test_placeholder_probe_without_response_is_unavailable() -> None:
    handlers = _handlers(email=TransportFailure("Resend API error: ConnectError: refused"))

    snapshot = await _prober(handlers).probe_all()

    assert snapshot.available[Provider.EMAIL] is False


@pytest.mark.asyncio
async def test_probe_timeout_marks_provider_unavailable() -> None:
    handlers = _handlers()
    handlers[Provider.TASK_BOARD].delay = 5.0

    snapshot = await _prober(handlers, timeout_s=0.05).probe_all()

    assert snapshot.available[Provider.TASK_BOARD] is False
    assert snapshot.available[Provider.CHAT] is True


def test_classify_and_availability_policies() -> None:
    rejected_by_provider = ActionResult(
        success=False,
        error="Invalid phone number",
        error_type="transport_failure",
        provider_status=400,
    )
    no_credentials = ActionResult(success=False, error="Twilio credentials missing", error_type="gateway_error")
    unreachable = ActionResult(success=False, error="timed out", error_type="transport_failure")

    assert classify(ActionResult.ok({})) is ProbeOutcome.FULFILLED
    assert classify(rejected_by_provider) is ProbeOutcome.DEGRADED
    assert classify(unreachable) is ProbeOutcome.REJECTED

    assert is_available("placeholder", ProbeOutcome.DEGRADED, "Invalid phone number") is True
    assert is_available("placeholder", ProbeOutcome.DEGRADED, "Twilio credentials missing") is False
    assert is_available("placeholder", ProbeOutcome.DEGRADED, "Twilio CREDENTIALS missing") is False
    assert is_available("placeholder", ProbeOutcome.REJECTED, "timed out") is False
    assert is_available("strict", ProbeOutcome.DEGRADED, "Invalid phone number") is False
    assert is_available("strict", ProbeOutcome.FULFILLED) is True


@pytest.mark.asyncio
async def test_real_twilio_rejection_of_placeholder_number() -> None:
    calls: list[httpx.Request] = []

    def twilio(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"code": 21211, "message": "Invalid phone number"})

    handler = VoiceCallHandler(
        TwilioConfig(account_sid="AC123", auth_token="secret", from_number="+15550001111"),
        transport=httpx.MockTransport(twilio),
    )
    probes = [spec for spec in default_probes() if spec.provider is Provider.VOICE_CALL]

    snapshot = await CapabilityProber(ActionRouter([handler]), probes).probe_all()

    assert snapshot.available[Provider.VOICE_CALL] is True
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_unconfigured_twilio_is_unavailable_without_a_request() -> None:
    calls: list[httpx.Request] = []

    def twilio(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={"sid": "SM1"})

    handler = VoiceCallHandler(
        TwilioConfig(account_sid="", auth_token="", from_number=""),
        transport=httpx.MockTransport(twilio),
    )

    snapshot = await CapabilityProber(ActionRouter([handler]), default_probes()).probe_all()

    assert snapshot.available[Provider.VOICE_CALL] is False
    assert calls == []


def test_default_probes_cover_every_provider() -> None:
    probes = default_probes()

    assert {spec.provider for spec in probes} == set(Provider)
    policies = {spec.provider: spec.policy for spec in probes}
    assert policies[Provider.VOICE_CALL] == "placeholder"
    assert policies[Provider.EMAIL] == "placeholder"
    assert policies[Provider.CHAT] == "strict"
    sms = next(spec for spec in probes if spec.provider is Provider.VOICE_CALL)
    assert sms.payload["phoneNumber"] == "+1234567890"


@pytest.mark.asyncio
async def test_cache_probes_once_until_invalidated() -> None:
    handlers = _handlers()
    cache = CapabilityCache(_prober(handlers))

    assert cache.peek() is None
    first = await cache.get()
    second = await cache.get()

    assert first is second
    assert cache.peek() is first
    assert all(handler.calls == 1 for handler in handlers.values())

    cache.invalidate()
    assert cache.peek() is None
    await cache.get()

    assert all(handler.calls == 2 for handler in handlers.values())


@pytest.mark.asyncio
async def test_refresh_reprobes_each_provider_exactly_once() -> None:
    handlers = _handlers()
    cache = CapabilityCache(_prober(handlers))
    await cache.get()

    snapshot = await cache.refresh()

    assert snapshot.to_dict()["providers"]["voice-call"] is True
    assert all(handler.calls == 2 for handler in handlers.values())


@pytest.mark.asyncio
async def test_invalidate_during_a_round_forces_a_new_round() -> None:
    handlers = _handlers()
    for handler in handlers.values():
        handler.delay = 0.05
    cache = CapabilityCache(_prober(handlers))

    pending = asyncio.create_task(cache.get())
    await asyncio.sleep(0.01)
    cache.invalidate()
    await pending

    assert cache.peek() is None
    await cache.get()

    assert all(handler.calls == 2 for handler in handlers.values())


@pytest.mark.asyncio
async def test_concurrent_first_gets_share_one_round() -> None:
    handlers = _handlers()
    for handler in handlers.values():
        handler.delay = 0.02
    cache = CapabilityCache(_prober(handlers))

    first, second, third = await asyncio.gather(cache.get(), cache.get(), cache.get())

    assert first is second is third
    assert cache.peek() is first
    assert all(handler.calls == 1 for handler in handlers.values())
