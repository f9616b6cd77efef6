from __future__ import annotations

from datetime import UTC, datetime
from urllib.parse import parse_qs

import httpx
import pytest

from switchboard.config import GoogleClassroomConfig, TwilioConfig
from switchboard.gateway import ActionRequest, ActionRouter
from switchboard.gateway.models import ActionSpec, Provider
from switchboard.providers import ClassroomHandler, VoiceCallHandler
from switchboard.providers.base import ProviderHandler


def _transport(calls: list[httpx.Request], status: int = 200, body: dict | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, json=body if body is not None else {})

    return httpx.MockTransport(handler)


def _twilio(configured: bool = True) -> TwilioConfig:
    if configured:
        return TwilioConfig(account_sid="AC123", auth_token="secret-token", from_number="+15550001111")
    return TwilioConfig(account_sid="", auth_token="", from_number="")


def _classroom(configured: bool = True) -> GoogleClassroomConfig:
    if configured:
        return GoogleClassroomConfig(api_key="key", access_token="ya29.token")
    return GoogleClassroomConfig(api_key="", access_token="")


class ExplodingHandler(ProviderHandler):
    provider = Provider.CHAT
    label = "Exploding"
    default_action = "chat"

    @property
    def configured(self) -> bool:
        return True

    def action_table(self) -> list[ActionSpec]:
        return [ActionSpec("chat", self.explode, ("message",))]

    async def explode(self, agent_id, payload):
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_unknown_provider_is_rejected() -> None:
    router = ActionRouter([ClassroomHandler(_classroom())])

    result = await router.dispatch(ActionRequest("fax", "send", "strategy", {}))

    assert result.success is False
    assert result.error == "Unknown provider: fax"
    assert result.status_code == 400
    assert set(result.to_dict()) == {"success", "error", "timestamp"}


@pytest.mark.asyncio
async def test_unknown_action_never_reaches_the_provider() -> None:
    calls: list[httpx.Request] = []
    router = ActionRouter([ClassroomHandler(_classroom(), transport=_transport(calls))])

    result = await router.dispatch(ActionRequest("classroom", "bogus", "strategy", {}))

    assert result.success is False
    assert result.error == "Unknown action for classroom: bogus"
    assert calls == []


@pytest.mark.asyncio
async def test_classroom_requires_an_explicit_action() -> None:
    router = ActionRouter([ClassroomHandler(_classroom())])

    result = await router.dispatch(ActionRequest("classroom", None, "strategy", {}))

    assert result.success is False
    assert result.error_type == "unknown_action"


@pytest.mark.asyncio
async def test_missing_fields_are_listed_in_order() -> None:
    calls: list[httpx.Request] = []
    router = ActionRouter([VoiceCallHandler(_twilio(), transport=_transport(calls))])

    result = await router.dispatch(
        ActionRequest("voice-call", "makeCall", "operations", {"phoneNumber": "+15551234567", "purpose": "  "})
    )

    assert result.error == "Missing required fields: purpose, message"
    assert result.status_code == 400
    assert calls == []


@pytest.mark.asyncio
async def test_missing_agent_id_is_reported() -> None:
    router = ActionRouter([VoiceCallHandler(_twilio())])

    result = await router.dispatch(
        ActionRequest("voice-call", "sendSms", "", {"phoneNumber": "+15551234567", "message": "hi"})
    )

    assert result.error == "Missing required fields: agentId"


@pytest.mark.asyncio
async def test_default_action_places_a_call() -> None:
    calls: list[httpx.Request] = []
    transport = _transport(calls, status=201, body={"sid": "CA42", "status": "queued"})
    router = ActionRouter([VoiceCallHandler(_twilio(), transport=transport)])

    before = datetime.now(UTC)
    result = await router.dispatch(
        ActionRequest(
            "voice-call",
            None,
            "operations",
            {"phoneNumber": "+15551234567", "purpose": "follow-up", "message": "The report is ready."},
        )
    )
    after = datetime.now(UTC)

    assert result.success is True
    assert before <= datetime.fromisoformat(result.timestamp) <= after
    assert result.data["callSid"] == "CA42"
    assert result.data["voice"] == "alice"
    assert result.data["callId"].startswith("call_")
    assert len(calls) == 1
    assert calls[0].url.path == "/2010-04-01/Accounts/AC123/Calls.json"
    form = parse_qs(calls[0].content.decode())
    assert form["To"] == ["+15551234567"]
    assert "follow-up" in form["Twiml"][0]


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_any_request() -> None:
    calls: list[httpx.Request] = []
    router = ActionRouter([ClassroomHandler(_classroom(configured=False), transport=_transport(calls))])

    result = await router.dispatch(ActionRequest("classroom", "getCourses", "strategy", {}))

    assert result.error == "Google API credentials not configured"
    assert result.status_code == 500
    assert calls == []


@pytest.mark.asyncio
async def test_provider_error_keeps_status_and_message() -> None:
    calls: list[httpx.Request] = []
    transport = _transport(calls, status=400, body={"code": 21211, "message": "Invalid phone number"})
    router = ActionRouter([VoiceCallHandler(_twilio(), transport=transport)])

    result = await router.dispatch(
        ActionRequest("voice-call", "sendSms", "operations", {"phoneNumber": "123", "message": "hi"})
    )

    assert result.success is False
    assert result.error == "Twilio API error: 400 Invalid phone number"
    assert result.error_type == "transport_failure"
    assert result.provider_status == 400


@pytest.mark.asyncio
async def test_network_error_has_no_provider_status() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    router = ActionRouter([ClassroomHandler(_classroom(), transport=httpx.MockTransport(refuse))])

    result = await router.dispatch(ActionRequest("classroom", "getCourses", "strategy", {}))

    assert result.error_type == "transport_failure"
    assert result.provider_status is None
    assert "ConnectError" in result.error


@pytest.mark.asyncio
async def test_handler_exception_becomes_failed_envelope() -> None:
    router = ActionRouter([ExplodingHandler()])

    result = await router.dispatch(ActionRequest("chat", "chat", "strategy", {"message": "hi"}))

    assert result.success is False
    assert result.error == "boom"
    assert result.error_type == "unexpected_failure"
    assert result.status_code == 500


@pytest.mark.asyncio
async def test_timestamp_is_current_utc_iso8601() -> None:
    router = ActionRouter([ClassroomHandler(_classroom())])

    before = datetime.now(UTC)
    result = await router.dispatch(ActionRequest("fax", None, "strategy", {}))
    after = datetime.now(UTC)

    assert before <= datetime.fromisoformat(result.timestamp) <= after


def test_describe_lists_actions_with_required_fields() -> None:
    router = ActionRouter([VoiceCallHandler(_twilio(configured=False))])

    [entry] = router.describe()

    assert entry["provider"] == "voice-call"
    assert entry["configured"] is False
    assert entry["default_action"] == "makeCall"
    assert {"name": "sendSms", "required": ["phoneNumber", "message"]} in entry["actions"]
