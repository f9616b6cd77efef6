"""Provider handlers registered with the action router."""

from __future__ import annotations

import httpx

from switchboard.config import SwitchboardConfig
from switchboard.llm.gateway import LLMGateway
from switchboard.providers.base import ProviderHandler
from switchboard.providers.chat import ChatHandler
from switchboard.providers.classroom import ClassroomHandler
from switchboard.providers.documents import DocumentAnalysisHandler, DocumentStore, RestDocumentStore
from switchboard.providers.email import EmailHandler
from switchboard.providers.research import WebResearchHandler
from switchboard.providers.task_board import TaskBoardHandler
from switchboard.providers.voice import VoiceCallHandler

__all__ = [
    "ChatHandler",
    "ClassroomHandler",
    "DocumentAnalysisHandler",
    "EmailHandler",
    "ProviderHandler",
    "TaskBoardHandler",
    "VoiceCallHandler",
    "WebResearchHandler",
    "build_handlers",
]


def build_handlers(
    config: SwitchboardConfig,
    *,
    llm: LLMGateway | None = None,
    store: DocumentStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ProviderHandler]:
    """Instantiate one handler per provider from configuration."""
    http = {"timeout_s": config.http_timeout_s, "transport": transport}
    providers = config.providers
    return [
        ClassroomHandler(providers.classroom, **http),
        VoiceCallHandler(providers.twilio, **http),
        EmailHandler(providers.resend, **http),
        WebResearchHandler(providers.perplexity, **http),
        ChatHandler(llm or LLMGateway(config.llm), **http),
        DocumentAnalysisHandler(store or RestDocumentStore(providers.documents, **http), **http),
        TaskBoardHandler(providers.trello, **http),
    ]
