"""Switchboard — FastAPI application entrypoint."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from switchboard import __version__
from switchboard.config import SwitchboardConfig, get_config
from switchboard.gateway import ActionRouter, CapabilityCache, CapabilityProber, default_probes
from switchboard.gateway.models import utc_timestamp
from switchboard.llm.gateway import LLMGateway
from switchboard.logging import setup_logging
from switchboard.providers import ProviderHandler, build_handlers

logger = structlog.get_logger()

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def create_app(
    config: SwitchboardConfig | None = None,
    *,
    handlers: Sequence[ProviderHandler] | None = None,
    llm: LLMGateway | None = None,
) -> FastAPI:
    """Create the FastAPI application."""
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application startup/shutdown lifecycle."""
        setup_logging(level=config.log_level, fmt=config.log_format)
        logger.info("switchboard.starting", version=__version__, model=config.llm.model)

        gateway = llm or LLMGateway(config.llm)
        action_router = ActionRouter(handlers if handlers is not None else build_handlers(config, llm=gateway))
        prober = CapabilityProber(
            action_router,
            default_probes(config.probe),
            timeout_s=config.probe.timeout_s,
        )

        # Capabilities are probed lazily on first request
        app.state.config = config
        app.state.llm = gateway
        app.state.action_router = action_router
        app.state.capabilities = CapabilityCache(prober)

        logger.info(
            "switchboard.ready",
            providers=[p.value for p in action_router.handlers],
            configured=[p.value for p, h in action_router.handlers.items() if h.configured],
        )

        yield

        logger.info("switchboard.stopped")

    app = FastAPI(
        title="Switchboard — Integration Gateway",
        version=__version__,
        description="Routes agent actions to external providers and reports which ones are usable.",
        lifespan=lifespan,
    )

    # Pre-flight requests are answered by the middleware for every route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in exc.errors()]
        return JSONResponse(
            {
                "success": False,
                "error": f"Invalid request body: {', '.join(f for f in fields if f) or 'malformed JSON'}",
                "timestamp": utc_timestamp(),
            },
            status_code=400,
        )

    from switchboard.api.routes.actions import router as actions_router
    from switchboard.api.routes.capabilities import router as capabilities_router
    from switchboard.api.routes.health import router as health_router

    app.include_router(health_router, tags=["health"])
    app.include_router(actions_router, tags=["actions"])
    app.include_router(capabilities_router, tags=["capabilities"])

    return app


app = create_app()


def main() -> None:
    """Run the server directly."""
    config = get_config()
    setup_logging(level=config.log_level, fmt=config.log_format)
    uvicorn.run(
        "switchboard.main:app",
        host=config.host,
        port=config.port,
        log_level="warning",
    )


if __name__ == "__main__":
    main()
