"""Document analysis provider backed by a blob + metadata store."""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog

from switchboard.config import DocumentStoreConfig
from switchboard.gateway.errors import TransportFailure
from switchboard.gateway.models import ActionSpec, Provider, correlation_id
from switchboard.providers.base import ProviderHandler, error_detail

logger = structlog.get_logger()


class DocumentStore(Protocol):
    """Metadata table + blob bucket holding uploaded agent documents."""

    @property
    def configured(self) -> bool: ...

    async def get(self, document_id: str) -> dict[str, Any]: ...

    async def download(self, path: str) -> bytes: ...

    async def update(self, document_id: str, fields: dict[str, Any]) -> dict[str, Any]: ...


class RestDocumentStore:
    """Supabase-style store: PostgREST table plus a storage bucket."""

    def __init__(
        self,
        config: DocumentStoreConfig,
        *,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.timeout_s = timeout_s
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.config.url and self.config.service_role_key)

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.config.service_role_key,
            "Authorization": f"Bearer {self.config.service_role_key}",
        }

    def _record_url(self) -> str:
        return f"{self.config.url.rstrip('/')}/rest/v1/{self.config.table}"

    async def _send(self, method: str, url: str, error_prefix: str, **kwargs: Any) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_s),
                transport=self.transport,
            ) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportFailure(f"{error_prefix}: {type(exc).__name__}: {exc}") from exc
        if response.status_code >= 400:
            raise TransportFailure(
                f"{error_prefix}: {response.status_code} {error_detail(response)}".rstrip(),
                provider_status=response.status_code,
            )
        return response

    async def get(self, document_id: str) -> dict[str, Any]:
        response = await self._send(
            "GET",
            self._record_url(),
            "Failed to fetch document",
            params={"id": f"eq.{document_id}", "select": "*"},
            headers={"Accept": "application/vnd.pgrst.object+json"},
        )
        return response.json()

    async def download(self, path: str) -> bytes:
        url = f"{self.config.url.rstrip('/')}/storage/v1/object/{self.config.bucket}/{path.lstrip('/')}"
        response = await self._send("GET", url, "Failed to download file")
        return response.content

    async def update(self, document_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        response = await self._send(
            "PATCH",
            self._record_url(),
            "Failed to update document",
            params={"id": f"eq.{document_id}"},
            json=fields,
            headers={
                "Accept": "application/vnd.pgrst.object+json",
                "Prefer": "return=representation",
            },
        )
        return response.json()


def _kilobytes(size: Any) -> int:
    try:
        return int(float(size) / 1024 + 0.5)
    except (TypeError, ValueError):
        return 0


def summarize_document(record: dict[str, Any], text: str | None = None) -> str:
    """Short analysis keyed by the MIME-type class of the document."""
    mime_type = str(record.get("mime_type") or "")
    filename = record.get("original_filename") or record.get("file_path") or "document"

    if mime_type == "text/plain":
        content = text or ""
        return f"Document contains {len(content.split())} words and {len(content)} characters."
    if mime_type.startswith("image/"):
        return (
            f"Image analysis: {filename} ({mime_type}) "
            f"with size {_kilobytes(record.get('file_size'))} KB"
        )
    if mime_type == "application/pdf" or "word" in mime_type:
        return (
            f"Document analysis: {filename} ({mime_type}) "
            f"with size {_kilobytes(record.get('file_size'))} KB"
        )
    return f"Basic analysis for {filename} ({mime_type or 'unknown type'})"


class DocumentAnalysisHandler(ProviderHandler):
    provider = Provider.DOCUMENTS
    label = "Document store"
    default_action = "processDocument"

    def __init__(self, store: DocumentStore, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.store = store

    @property
    def configured(self) -> bool:
        return self.store.configured

    def action_table(self) -> list[ActionSpec]:
        return [ActionSpec("processDocument", self.process_document, ("documentId",))]

    async def process_document(self, agent_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.require_credentials()
        document_id = str(payload["documentId"])

        record = await self.store.get(document_id)
        text = None
        if record.get("mime_type") == "text/plain":
            blob = await self.store.download(str(record.get("file_path") or ""))
            text = blob.decode("utf-8", errors="replace")

        summary = summarize_document(record, text)
        updated = await self.store.update(
            document_id,
            {"processed": True, "analysis_summary": summary},
        )
        logger.info("providers.documents.processed", document_id=document_id, mime_type=record.get("mime_type"))

        return {
            "agentId": agent_id,
            "documentId": document_id,
            "summary": summary,
            "document": updated,
            "analysisId": correlation_id("document"),
        }
