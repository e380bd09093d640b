"""
Topicless Hub API Server

Modular FastAPI application with separation of concerns.
Routes, repositories, and tally maintenance are organized into focused modules.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import config, get_logger
from database.hub import Hub
from exceptions import HubError
from server.metrics import metrics
from server.middleware.logging import log_requests
from server.middleware.metrics import metrics_middleware
from server.middleware.request_id import RequestIDMiddleware
from server.routes import account, admin, auth, blog, ideas, live, monitoring, polls, questions, wyr
from userland.auth import init_jwt

logger = get_logger(__name__)


def _init_auth() -> None:
    """Initialize JWT signing from configuration"""
    jwt_secret = config.get_jwt_secret()
    if not jwt_secret:
        logger.warning("WARNING: HUB_JWT_SECRET not set. Auth features will not work.")
        logger.warning("Generate with: python3 -c 'import secrets; print(secrets.token_urlsafe(32))'")
        return
    init_jwt(jwt_secret)
    logger.info("JWT authentication initialized")


def create_app(hub: Optional[Hub] = None) -> FastAPI:
    """Build the API app

    Args:
        hub: Pre-built hub (tests pass a memory-backed one). When omitted the
            configured store is opened at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open and close the document store"""
        owns_hub = hub is None
        app.state.hub = hub if hub is not None else await Hub.create()
        logger.info("hub ready", backend=app.state.hub.store.backend)

        yield

        if not owns_hub:
            return
        try:
            await app.state.hub.close()
        except HubError as e:
            # Don't crash on shutdown - log and continue
            logger.error("error closing hub", error=str(e), exc_info=True)

    app = FastAPI(title="topicless hub API", description="Community engagement hub", lifespan=lifespan)

    # Available before startup too (TestClient without a context manager)
    if hub is not None:
        app.state.hub = hub

    @app.exception_handler(HubError)
    async def hub_error_handler(request: Request, exc: HubError):
        """Render every hub error as {"success": false, "error", "type"}"""
        if exc.status_code >= 500:
            metrics.record_error("api", exc)
            logger.error(
                "request failed",
                path=request.url.path,
                error=str(exc),
                error_type=type(exc).__name__,
                retryable=exc.is_retryable,
            )
        else:
            logger.info(
                "request rejected",
                path=request.url.path,
                error=exc.message,
                error_type=type(exc).__name__,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message, "type": type(exc).__name__},
        )

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    # Request ID middleware (must be early in stack for tracing)
    app.add_middleware(RequestIDMiddleware)

    # Register middleware (execution order: metrics -> logging)
    # FastAPI middleware stack: last registered runs first, so register in reverse order
    @app.middleware("http")
    async def log_requests_middleware(request, call_next):
        return await log_requests(request, call_next)

    @app.middleware("http")
    async def metrics_middleware_wrapper(request, call_next):
        return await metrics_middleware(request, call_next)

    # Mount routers
    app.include_router(monitoring.router)  # Root, health and Prometheus endpoints
    app.include_router(auth.router)        # Accounts and sessions
    app.include_router(questions.router)   # Question Storm
    app.include_router(polls.router)       # Poll War
    app.include_router(ideas.router)       # Daily Idea Drop
    app.include_router(wyr.router)         # Would You Rather
    app.include_router(admin.router)       # Admin posts and subscriber count
    app.include_router(blog.router)        # Public blog
    app.include_router(account.router)     # User's own content
    app.include_router(live.router)        # Server-sent event streams

    return app


_init_auth()

app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.getLogger().addHandler(logging.FileHandler(config.LOG_PATH, mode="a"))

    if not config.ADMIN_EMAILS:
        logger.warning("WARNING: No admin emails configured. Admin endpoints will not work.")
        logger.warning("Set HUB_ADMIN_EMAILS to grant the admin role at registration.")

    logger.info("Starting topicless hub API server...")
    logger.info("configuration", config_summary=config.summary())

    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        access_log=False,  # Disable default uvicorn logs (we have custom middleware logging)
    )
