"""Action dispatch endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from switchboard.gateway import ActionRequest, ActionResult

router = APIRouter()


class ActionBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: str
    action: str | None = None
    agent_id: str = Field(default="", alias="agentId")
    payload: dict[str, Any] = Field(default_factory=dict)


def _envelope(result: ActionResult) -> JSONResponse:
    return JSONResponse(result.to_dict(), status_code=result.status_code)


@router.post("/v1/actions")
async def dispatch_action(request: Request, body: ActionBody) -> JSONResponse:
    """Dispatch ``{provider, action, agentId, payload}`` through the router."""
    result = await request.app.state.action_router.dispatch(
        ActionRequest(
            provider=body.provider,
            action=body.action,
            agent_id=body.agent_id,
            payload=body.payload,
        )
    )
    return _envelope(result)


@router.post("/v1/providers/{provider}")
async def invoke_provider(
    provider: str,
    request: Request,
    body: dict[str, Any] = Body(default_factory=dict),
) -> JSONResponse:
    """Flat request shape: ``{agentId, action?, ...provider fields}``."""
    fields = dict(body)
    agent_id = fields.pop("agentId", None)
    action = fields.pop("action", None)
    result = await request.app.state.action_router.dispatch(
        ActionRequest(
            provider=provider,
            action=str(action) if action else None,
            agent_id=str(agent_id) if agent_id is not None else "",
            payload=fields,
        )
    )
    return _envelope(result)


@router.get("/v1/providers")
async def list_providers(request: Request) -> list[dict[str, Any]]:
    """Known providers with their actions and required payload fields."""
    return request.app.state.action_router.describe()
