"""Perplexity web research provider."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlsplit

import structlog

from switchboard.config import PerplexityConfig
from switchboard.gateway.errors import InvalidPayload
from switchboard.gateway.models import ActionSpec, Provider, correlation_id
from switchboard.providers.base import ProviderHandler

logger = structlog.get_logger()

SEARCH_MODELS = {
    "general": "llama-3.1-sonar-large-128k-online",
    "news": "llama-3.1-sonar-large-128k-online",
    "academic": "llama-3.1-sonar-huge-128k-online",
    "financial": "llama-3.1-sonar-large-128k-online",
}

MIN_INSIGHT_LENGTH = 20
MAX_INSIGHTS = 5
MAX_SOURCES = 10

_URL_PATTERN = re.compile(r"https?://[^\s)]+")


def extract_insights(content: str) -> list[str]:
    """First few substantial lines of the research text, in order."""
    lines = (line.strip() for line in content.split("\n"))
    return [line for line in lines if len(line) > MIN_INSIGHT_LENGTH][:MAX_INSIGHTS]


def extract_sources(content: str) -> list[str]:
    """Unique hostnames of every URL cited in the text."""
    sources: list[str] = []
    for url in _URL_PATTERN.findall(content):
        try:
            host = urlsplit(url).hostname or url
        except ValueError:
            host = url
        if host not in sources:
            sources.append(host)
    return sources[:MAX_SOURCES]


class WebResearchHandler(ProviderHandler):
    provider = Provider.WEB_RESEARCH
    label = "Perplexity API"
    default_action = "research"

    def __init__(self, config: PerplexityConfig, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config = config

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    def action_table(self) -> list[ActionSpec]:
        return [ActionSpec("research", self.research, ("query",))]

    async def research(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        search_type = payload.get("searchType") or "general"
        model = SEARCH_MODELS.get(search_type) if isinstance(search_type, str) else None
        if model is None:
            raise InvalidPayload(
                message=f"Unsupported searchType: {search_type}. Expected one of {', '.join(SEARCH_MODELS)}"
            )
        self.require_credentials()

        query = str(payload["query"])
        purpose = str(payload.get("purpose") or "general research")
        logger.info("providers.research.start", query=query, search_type=search_type)

        result = await self._request_json(
            "POST",
            f"{self.config.base_url}/chat/completions",
            error_prefix="Perplexity API error",
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            json={
                "model": model,
                "messages": [
                    {
                        "role": "system",
                        "content": (
                            f"You are an AI research assistant for Agent {agent_id}. "
                            "Provide comprehensive, accurate, and actionable information. "
                            "Focus on recent data and credible sources. Format your response "
                            "clearly with key insights, data points, and source citations."
                        ),
                    },
                    {
                        "role": "user",
                        "content": (
                            f"Research query: {query}\nPurpose: {purpose}\n\n"
                            "Please provide detailed research findings with sources."
                        ),
                    },
                ],
                "temperature": 0.2,
                "top_p": 0.9,
                "max_tokens": 2000,
                "return_images": False,
                "return_related_questions": True,
                "search_recency_filter": "month",
                "frequency_penalty": 1,
                "presence_penalty": 0,
            },
        )

        choices = result.get("choices") or [{}]
        content = ((choices[0] or {}).get("message") or {}).get("content") or ""
        insights = extract_insights(content)
        sources = extract_sources(content)
        logger.info("providers.research.completed", insights=len(insights), sources=len(sources))

        return {
            "agentId": agent_id,
            "query": query,
            "purpose": purpose,
            "searchType": search_type,
            "model": model,
            "content": content,
            "insights": insights,
            "relatedQuestions": result.get("related_questions") or [],
            "sources": sources,
            "searchId": result.get("id") or correlation_id("research"),
        }
