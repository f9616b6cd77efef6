"""Twilio voice call and SMS provider."""

from __future__ import annotations

import re
from typing import Any
from xml.sax.saxutils import escape, quoteattr

import structlog

from switchboard.config import TwilioConfig
from switchboard.gateway.models import ActionSpec, Provider, correlation_id
from switchboard.providers.base import ProviderHandler

logger = structlog.get_logger()

_NON_DIGITS = re.compile(r"\D")


def build_call_script(agent_id: str, purpose: str, message: str, voice: str) -> str:
    """TwiML spoken by the outbound call."""
    say_voice = quoteattr(voice)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<Response>\n"
        f"  <Say voice={say_voice}>\n"
        "    Hello, this is an automated call from your AI Agent Team.\n"
        f"    Agent {escape(agent_id)} is calling regarding: {escape(purpose)}.\n"
        f"    {escape(message)}\n"
        "    If you need to respond, please call back or send a message through your dashboard.\n"
        "    Thank you for your time.\n"
        "  </Say>\n"
        '  <Pause length="2"/>\n'
        f"  <Say voice={say_voice}>Goodbye.</Say>\n"
        "</Response>"
    )


def normalize_phone_number(phone_number: str) -> str:
    """E.164 form, assuming a US number when no country code is given."""
    digits = _NON_DIGITS.sub("", phone_number)
    return f"+{digits}" if digits.startswith("1") else f"+1{digits}"


class VoiceCallHandler(ProviderHandler):
    provider = Provider.VOICE_CALL
    label = "Twilio"
    default_action = "makeCall"

    def __init__(self, config: TwilioConfig, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.account_sid and self.config.auth_token and self.config.from_number)

    def action_table(self) -> list[ActionSpec]:
        return [
            ActionSpec("makeCall", self.make_call, ("phoneNumber", "purpose", "message")),
            ActionSpec("sendSms", self.send_sms, ("phoneNumber", "message")),
        ]

    def _account_url(self, resource: str) -> str:
        return f"{self.config.base_url}/Accounts/{self.config.account_sid}/{resource}.json"

    async def make_call(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        phone_number = str(payload["phoneNumber"])
        purpose = str(payload["purpose"])
        message = str(payload["message"])
        voice = payload.get("voice") or self.config.default_voice

        logger.info("providers.voice.call.start", phone_number=phone_number, purpose=purpose)
        call = await self._request_json(
            "POST",
            self._account_url("Calls"),
            error_prefix="Twilio API error",
            auth=(self.config.account_sid, self.config.auth_token),
            data={
                "From": self.config.from_number,
                "To": phone_number,
                "Twiml": build_call_script(agent_id, purpose, message, voice),
            },
        )
        logger.info("providers.voice.call.placed", call_sid=call.get("sid"))

        return {
            "agentId": agent_id,
            "phoneNumber": phone_number,
            "purpose": purpose,
            "message": message,
            "voice": voice,
            "callSid": call.get("sid"),
            "status": call.get("status"),
            "duration": call.get("duration"),
            "callId": correlation_id("call"),
        }

    async def send_sms(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        phone_number = normalize_phone_number(str(payload["phoneNumber"]))
        message = str(payload["message"])

        sms = await self._request_json(
            "POST",
            self._account_url("Messages"),
            error_prefix="Twilio API error",
            auth=(self.config.account_sid, self.config.auth_token),
            data={
                "From": self.config.from_number,
                "To": phone_number,
                "Body": message,
            },
        )
        logger.info("providers.voice.sms.sent", message_sid=sms.get("sid"), status=sms.get("status"))

        return {
            "agentId": agent_id,
            "phoneNumber": phone_number,
            "message": message,
            "messageSid": sms.get("sid"),
            "status": sms.get("status"),
            "smsId": correlation_id("sms"),
        }
