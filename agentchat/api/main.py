"""FastAPI application for the agentchat API.

Provides the main application instance with routers, middleware,
and exception handlers configured.
"""

import logging
import os
import sys
import time as _time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logging.getLogger("agentchat").setLevel(logging.INFO)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agentchat import __version__
from agentchat.api.middleware.auth import maybe_require_api_key, validate_api_key_strength
from agentchat.api.routes import bots, contacts, conversations
from agentchat.cli.config import get_config
from agentchat.errors import DomainError, error_payload
from agentchat.services.chatbotkit_store import ChatBotKitStore

logger = logging.getLogger(__name__)

_startup_time: float = 0.0


def _parse_allowed_origins() -> list[str]:
    """Parse comma-separated CORS allowlist from ALLOWED_ORIGINS env var."""
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan: build the store client on startup, close it on shutdown."""
    global _startup_time

    _startup_time = _time.time()
    validate_api_key_strength()

    config = get_config()
    if not config.chatbotkit.api_secret:
        logger.warning(
            "CHATBOTKIT_API_SECRET is not set; store calls will be rejected. "
            "Set it in the environment or chatbotkit.api_secret in the config file."
        )
    if config.chatbotkit.bot_ids:
        logger.info("Bot allow-list active: %d bots", len(config.chatbotkit.bot_ids))

    # Tests may install their own store before startup.
    owns_store = getattr(app.state, "store", None) is None
    if owns_store:
        app.state.store = ChatBotKitStore(
            api_secret=config.chatbotkit.api_secret,
            base_url=config.chatbotkit.base_url,
            timeout=config.chatbotkit.timeout_seconds,
        )

    yield

    await conversations.shutdown_turn_runtime()
    if owns_store:
        await app.state.store.aclose()
        app.state.store = None


app = FastAPI(
    title="agentchat API",
    description="Chat with hosted AI agents; conversations persist in the remote store",
    version=__version__,
    lifespan=lifespan,
)

# Optional API auth for /api/* when AGENTCHAT_API_KEY is configured.
app.middleware("http")(maybe_require_api_key)

allowed_origins = _parse_allowed_origins()
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render domain errors as {error_code, message, remediation}.

    Args:
        request: The incoming request.
        exc: The domain exception.

    Returns:
        JSONResponse with the exception's HTTP status.
    """
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


app.include_router(contacts.router, prefix="/api/v1")
app.include_router(bots.router, prefix="/api/v1")
app.include_router(conversations.router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Liveness probe with version and uptime."""
    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    return {
        "status": "healthy",
        "version": __version__,
        "uptime_seconds": uptime,
    }


@app.get("/readyz")
def readiness_check():
    """Readiness probe: the store credential must be configured."""
    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    config = get_config()
    checks: dict[str, dict[str, Any]] = {}

    if not config.chatbotkit.api_secret:
        checks["chatbotkit_api_secret"] = {"status": "error", "message": "CHATBOTKIT_API_SECRET missing"}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "uptime_seconds": uptime, "checks": checks},
        )
    checks["chatbotkit_api_secret"] = {"status": "ok"}
    checks["bot_allow_list"] = {
        "status": "configured" if config.chatbotkit.bot_ids else "all_bots",
    }
    return {"status": "ready", "uptime_seconds": uptime, "checks": checks}


@app.get("/api")
def api_root() -> dict:
    """API root with links to docs."""
    return {
        "name": "agentchat API",
        "version": __version__,
        "docs": "/docs",
        "redoc": "/redoc",
    }
