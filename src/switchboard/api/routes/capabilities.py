"""Provider capability endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/v1/capabilities")
async def get_capabilities(request: Request) -> dict:
    """Cached availability per provider, probing on first use."""
    snapshot = await request.app.state.capabilities.get()
    return snapshot.to_dict()


@router.post("/v1/capabilities/refresh")
async def refresh_capabilities(request: Request) -> dict:
    snapshot = await request.app.state.capabilities.refresh()
    return snapshot.to_dict()


@router.delete("/v1/capabilities")
async def invalidate_capabilities(request: Request) -> dict:
    request.app.state.capabilities.invalidate()
    return {"status": "invalidated"}
