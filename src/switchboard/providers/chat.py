"""Agent chat provider — persona-aware completions through the LLM gateway."""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog

from switchboard.gateway.errors import TransportFailure
from switchboard.gateway.models import ActionSpec, Provider, correlation_id
from switchboard.llm.gateway import LLMGateway
from switchboard.providers.base import ProviderHandler, nested

logger = structlog.get_logger()

DEFAULT_PERSONALITY: dict[str, Any] = {
    "name": "Agent",
    "role": "AI Business Agent",
    "systemPrompt": "You are a helpful AI business agent.",
    "personality": "Professional and helpful",
    "communicationStyle": "Clear and concise",
    "emotionalIntelligence": "High",
    "expertise": [],
}

RESPONSE_GUIDELINES = """RESPONSE GUIDELINES:
1. Always respond in character with your unique personality and expertise
2. Keep responses professional but personable, matching your communication style
3. Provide actionable insights based on your expertise areas
4. Be concise but comprehensive (aim for 2-4 sentences unless more detail is needed)
5. Show your emotional intelligence level in understanding the context
6. Reference your specific capabilities when relevant
7. Maintain consistency with your role as an elite business AI agent

Remember: You are an advanced AI agent with real intelligence, not a simple chatbot. \
Think strategically and provide value-driven responses."""

_CONTEXT_LABELS = (
    ("taskType", "Task Type"),
    ("recipientAgent", "Communicating with"),
    ("messageType", "Message Type"),
)


def build_system_prompt(
    personality: dict[str, Any],
    context: dict[str, Any],
    today: date | None = None,
) -> str:
    persona = {**DEFAULT_PERSONALITY, **{k: v for k, v in personality.items() if v}}
    expertise = persona["expertise"]
    if isinstance(expertise, (list, tuple)):
        expertise = ", ".join(str(item) for item in expertise)

    lines = [
        str(persona["systemPrompt"]),
        "",
        "PERSONALITY PROFILE:",
        f"- Name: {persona['name']}",
        f"- Role: {persona['role']}",
        f"- Personality: {persona['personality']}",
        f"- Communication Style: {persona['communicationStyle']}",
        f"- Emotional Intelligence: {persona['emotionalIntelligence']}",
        f"- Expertise: {expertise}",
        "",
        "CURRENT CONTEXT:",
        f"- Date: {(today or date.today()).isoformat()}",
        "- Agent Type: Elite AI Business Agent",
        "- Operating Mode: Intelligent Autonomous Assistant",
    ]
    for key, label in _CONTEXT_LABELS:
        if context.get(key):
            lines.append(f"- {label}: {context[key]}")

    return "\n".join(lines) + "\n\n" + RESPONSE_GUIDELINES


def recent_history(history: Any, turns: int) -> list[dict[str, str]]:
    """Last ``turns`` messages, with every non-assistant role sent as user."""
    if not isinstance(history, list) or turns <= 0:
        return []
    messages = []
    for item in history[-turns:]:
        if not isinstance(item, dict):
            continue
        role = "assistant" if item.get("role") == "assistant" else "user"
        messages.append({"role": role, "content": str(item.get("content") or "")})
    return messages


class ChatHandler(ProviderHandler):
    provider = Provider.CHAT
    label = "LLM API"
    default_action = "chat"

    def __init__(self, llm: LLMGateway, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.llm = llm

    @property
    def configured(self) -> bool:
        return self.llm.configured

    def action_table(self) -> list[ActionSpec]:
        return [ActionSpec("chat", self.chat, ("message",))]

    async def chat(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()

        message = str(payload["message"])
        personality = nested(payload, "personality")
        messages = [
            {"role": "system", "content": build_system_prompt(personality, nested(payload, "context"))},
            *recent_history(payload.get("conversationHistory"), self.llm.config.history_turns),
            {"role": "user", "content": message},
        ]

        try:
            response = await self.llm.completion(messages)
        except Exception as exc:
            status = getattr(exc, "status_code", None)
            if isinstance(status, int):
                raise TransportFailure(f"LLM provider error: {status} {exc}", provider_status=status) from exc
            raise

        content = response.choices[0].message.content or ""
        logger.info(
            "providers.chat.completed",
            persona=personality.get("name") or DEFAULT_PERSONALITY["name"],
            preview=message[:100],
        )

        usage = None
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return {
            "agentId": agent_id,
            "response": content,
            "model": getattr(response, "model", None) or self.llm.config.model,
            "usage": usage,
            "chatId": getattr(response, "id", None) or correlation_id("chat"),
        }
