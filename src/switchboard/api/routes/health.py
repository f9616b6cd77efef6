"""Health check endpoint."""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from switchboard import __version__

router = APIRouter()

_start_time = time.time()


@router.get("/health")
async def health(request: Request) -> dict:
    """Health check — returns status, uptime, LLM usage and last capability snapshot."""
    llm = request.app.state.llm
    snapshot = request.app.state.capabilities.peek()

    return {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(time.time() - _start_time, 1),
        "model": llm.config.model,
        "llm_stats": llm.stats,
        "providers": [entry["provider"] for entry in request.app.state.action_router.describe()],
        "capabilities": snapshot.to_dict() if snapshot else None,
    }
