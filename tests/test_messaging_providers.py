from __future__ import annotations

import json
from urllib.parse import parse_qs

import httpx
import pytest

from switchboard.config import ResendConfig, TwilioConfig
from switchboard.gateway import ActionRequest, ActionRouter
from switchboard.providers import EmailHandler, VoiceCallHandler
from switchboard.providers.email import agent_department, agent_display_name, render_branded_html
from switchboard.providers.voice import build_call_script, normalize_phone_number


def _capture(calls: list[httpx.Request], body: dict, status: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


def test_call_script_escapes_agent_text() -> None:
    script = build_call_script("finance", "invoice <overdue>", "Pay & relax", "alice")

    assert script.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert '<Say voice="alice">' in script
    assert "Agent finance is calling regarding: invoice &lt;overdue&gt;." in script
    assert "Pay &amp; relax" in script
    assert '<Pause length="2"/>' in script


def test_phone_numbers_are_normalized_to_e164() -> None:
    assert normalize_phone_number("(555) 123-4567") == "+15551234567"
    assert normalize_phone_number("1-555-123-4567") == "+15551234567"
    assert normalize_phone_number("+1 234 567 890") == "+1234567890"


@pytest.mark.asyncio
async def test_sms_is_form_encoded_with_basic_auth() -> None:
    calls: list[httpx.Request] = []
    handler = VoiceCallHandler(
        TwilioConfig(account_sid="AC123", auth_token="secret", from_number="+15550001111"),
        transport=_capture(calls, {"sid": "SM9", "status": "queued"}, status=201),
    )

    result = await ActionRouter([handler]).dispatch(
        ActionRequest("voice-call", "sendSms", "customer", {"phoneNumber": "555 123 4567", "message": "Hi!"})
    )

    assert result.success is True
    assert result.data["messageSid"] == "SM9"
    assert result.data["phoneNumber"] == "+15551234567"
    assert result.data["smsId"].startswith("sms_")
    request = calls[0]
    assert request.url.path.endswith("/Accounts/AC123/Messages.json")
    assert request.headers["Authorization"].startswith("Basic ")
    assert parse_qs(request.content.decode()) == {
        "From": ["+15550001111"],
        "To": ["+15551234567"],
        "Body": ["Hi!"],
    }


def test_agent_directory_falls_back_to_raw_id() -> None:
    assert agent_display_name("finance") == "Felix Finance"
    assert agent_department("finance") == "Finance & Accounting"
    assert agent_display_name("night-shift") == "night-shift"
    assert agent_department("night-shift") == "AI Operations"


def test_branded_html_escapes_body_and_shows_priority() -> None:
    html = render_branded_html("legal", "Terms <draft> attached", {"priority": "high"})

    assert "Lex Legal" in html
    assert "Terms &lt;draft&gt; attached" in html
    assert "Priority: HIGH" in html
    assert "Priority:" not in render_branded_html("legal", "Plain", {})


@pytest.mark.asyncio
async def test_email_subject_is_prefixed_with_agent_name() -> None:
    calls: list[httpx.Request] = []
    handler = EmailHandler(ResendConfig(api_key="re_key"), transport=_capture(calls, {"id": "re_123"}))

    result = await ActionRouter([handler]).dispatch(
        ActionRequest(
            "email",
            None,
            "finance",
            {"recipient": "cfo@example.com", "subject": "Q3 report", "body": "Numbers inside."},
        )
    )

    sent = json.loads(calls[0].content)
    assert sent["subject"] == "[Felix Finance] Q3 report"
    assert sent["to"] == ["cfo@example.com"]
    assert sent["text"] == "Numbers inside."
    assert "Finance &amp; Accounting" in sent["html"]
    assert calls[0].headers["Authorization"] == "Bearer re_key"
    assert result.data["messageId"] == "re_123"
    assert result.data["metadata"] == {"department": "Finance & Accounting", "emailType": "professional"}


@pytest.mark.asyncio
async def test_email_keeps_caller_html_and_metadata() -> None:
    calls: list[httpx.Request] = []
    handler = EmailHandler(ResendConfig(api_key="re_key"), transport=_capture(calls, {}))

    result = await ActionRouter([handler]).dispatch(
        ActionRequest(
            "email",
            "sendEmail",
            "hr",
            {
                "recipient": "team@example.com",
                "subject": "Offsite",
                "body": "See you there",
                "html": "<p>See you there</p>",
                "metadata": {"campaign": "offsite"},
            },
        )
    )

    assert json.loads(calls[0].content)["html"] == "<p>See you there</p>"
    assert result.data["messageId"].startswith("email_")
    assert result.data["metadata"]["campaign"] == "offsite"
    assert result.data["metadata"]["department"] == "Human Resources"


@pytest.mark.asyncio
async def test_email_without_api_key_is_not_sent() -> None:
    calls: list[httpx.Request] = []
    handler = EmailHandler(ResendConfig(api_key=""), transport=_capture(calls, {}))

    result = await ActionRouter([handler]).dispatch(
        ActionRequest("email", None, "hr", {"recipient": "a@example.com", "subject": "s", "body": "b"})
    )

    assert result.error == "Resend API credentials not configured"
    assert calls == []
