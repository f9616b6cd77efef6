"""Resend email provider."""

from __future__ import annotations

from html import escape
from typing import Any

import structlog

from switchboard.config import ResendConfig
from switchboard.gateway.models import ActionSpec, Provider, correlation_id
from switchboard.providers.base import ProviderHandler

logger = structlog.get_logger()

AGENT_DISPLAY_NAMES = {
    "executive-eva": "Executive Eva",
    "strategy": "Alex Strategy",
    "marketing": "Maya Creative",
    "finance": "Felix Finance",
    "operations": "Oliver Operations",
    "customer": "Clara Customer",
    "hr": "Harper HR",
    "legal": "Lex Legal",
    "cto": "Code Commander",
    "data": "Dr. Data",
    "intelligence": "Intel Investigator",
    "communications": "Comm Chief",
    "documents": "Doc Master",
}

AGENT_DEPARTMENTS = {
    "executive-eva": "Executive Office",
    "strategy": "Strategic Planning",
    "marketing": "Marketing & Communications",
    "finance": "Finance & Accounting",
    "operations": "Operations",
    "customer": "Customer Success",
    "hr": "Human Resources",
    "legal": "Legal Affairs",
    "cto": "Technology",
    "data": "Data Analytics",
    "intelligence": "Business Intelligence",
    "communications": "Communications",
    "documents": "Document Management",
}

_URGENT_PRIORITIES = {"high", "critical"}


def agent_display_name(agent_id: str) -> str:
    return AGENT_DISPLAY_NAMES.get(agent_id, agent_id)


def agent_department(agent_id: str) -> str:
    return AGENT_DEPARTMENTS.get(agent_id, "AI Operations")


def _priority_banner(priority: str) -> str:
    if priority in _URGENT_PRIORITIES:
        background, border, color = "#fee2e2", "#fca5a5", "#dc2626"
    else:
        background, border, color = "#eff6ff", "#93c5fd", "#1d4ed8"
    return (
        f'<div style="margin: 20px 0; padding: 12px 16px; background: {background}; '
        f'border-radius: 6px; border: 1px solid {border};">'
        f'<p style="margin: 0; font-size: 14px; color: {color}; font-weight: 500;">'
        f"Priority: {escape(priority.upper())}</p></div>"
    )


def render_branded_html(agent_id: str, body: str, metadata: dict[str, Any] | None = None) -> str:
    """Default HTML body wrapping the plain-text message in the agent letterhead."""
    agent_name = escape(agent_display_name(agent_id))
    department = escape(agent_department(agent_id))
    priority = str((metadata or {}).get("priority") or "")
    banner = _priority_banner(priority) if priority else ""

    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Message from {agent_name}</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f8f9fa;">
  <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff;">
    <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 30px 40px; text-align: center;">
      <h1 style="margin: 0; color: #ffffff; font-size: 24px; font-weight: 600;">{agent_name}</h1>
      <p style="margin: 8px 0 0 0; color: #e2e8f0; font-size: 14px;">{department} &bull; AI Agent Team</p>
    </div>
    <div style="padding: 40px; line-height: 1.6;">
      <div style="background: #f8fafc; border-left: 4px solid #667eea; padding: 20px; margin: 20px 0; border-radius: 0 8px 8px 0;">
        <p style="margin: 0; color: #374151; white-space: pre-wrap; font-size: 16px;">{escape(body)}</p>
      </div>
      {banner}
    </div>
    <div style="background-color: #f8fafc; padding: 30px 40px; border-top: 1px solid #e5e7eb; text-align: center;">
      <p style="margin: 0 0 20px 0; color: #6b7280; font-size: 14px;">
        This message was sent by <strong>{agent_name}</strong>, an AI Agent operating within your business ecosystem.
      </p>
      <p style="margin: 0; color: #9ca3af; font-size: 12px;">AI Agent Team &bull; Autonomous Business Operations</p>
    </div>
  </div>
</body>
</html>
"""


class EmailHandler(ProviderHandler):
    provider = Provider.EMAIL
    label = "Resend API"
    default_action = "sendEmail"

    def __init__(self, config: ResendConfig, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    def action_table(self) -> list[ActionSpec]:
        return [ActionSpec("sendEmail", self.send_email, ("recipient", "subject", "body"))]

    async def send_email(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        recipient = str(payload["recipient"])
        subject = str(payload["subject"])
        body = str(payload["body"])
        metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else {}
        agent_name = agent_display_name(agent_id)

        logger.info("providers.email.send", recipient=recipient, subject=subject)
        sent = await self._request_json(
            "POST",
            f"{self.config.base_url}/emails",
            error_prefix="Resend API error",
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            json={
                "from": self.config.from_address,
                "to": [recipient],
                "subject": f"[{agent_name}] {subject}",
                "text": body,
                "html": payload.get("html") or render_branded_html(agent_id, body, metadata),
            },
        )

        return {
            "agentId": agent_id,
            "agentName": agent_name,
            "recipient": recipient,
            "subject": subject,
            "messageId": sent.get("id") or correlation_id("email"),
            "metadata": {
                **metadata,
                "department": agent_department(agent_id),
                "emailType": "professional",
            },
        }
