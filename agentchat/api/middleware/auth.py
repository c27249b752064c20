"""Optional shared-secret guard for the /api surface.

The API key authenticates the calling front end, not the person. The
person is identified by the auth proxy headers (see agentchat.api.identity).
When no key is configured the guard is disabled.
"""

from __future__ import annotations

import hmac
import logging
import os
import threading
import time

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from agentchat.cli.config import get_config

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"

_PUBLIC_PATH_PREFIXES = (
    "/health",
    "/readyz",
    "/docs",
    "/redoc",
    "/openapi.json",
)

_AUTH_FAIL_MAX = 10
_AUTH_FAIL_WINDOW_SECONDS = 300
_auth_failures: dict[str, list[float]] = {}
_auth_lock = threading.Lock()

_MIN_API_KEY_LENGTH = 32


def _trust_proxy() -> bool:
    return os.environ.get("AGENTCHAT_TRUST_PROXY", "").strip().lower() in ("1", "true")


def _get_client_ip(request: Request) -> str:
    """Extract the client IP, honouring X-Forwarded-For only behind a trusted proxy."""
    if _trust_proxy():
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _is_rate_limited(client_ip: str) -> bool:
    """Return True once client_ip has too many recent auth failures."""
    with _auth_lock:
        now = time.monotonic()
        timestamps = [
            t for t in _auth_failures.get(client_ip, []) if now - t < _AUTH_FAIL_WINDOW_SECONDS
        ]
        _auth_failures[client_ip] = timestamps
        return len(timestamps) >= _AUTH_FAIL_MAX


def _record_auth_failure(client_ip: str) -> None:
    with _auth_lock:
        _auth_failures.setdefault(client_ip, []).append(time.monotonic())


def reset_rate_limiter() -> None:
    """Reset the rate limiter state. Used by tests."""
    with _auth_lock:
        _auth_failures.clear()


def get_expected_api_key() -> str:
    """Return the configured API key; empty string means the guard is off.

    AGENTCHAT_API_KEY takes precedence over auth.api_key in the config file.
    """
    return (os.environ.get("AGENTCHAT_API_KEY") or get_config().auth.api_key or "").strip()


def validate_api_key_strength() -> None:
    """Fail startup when a configured API key is too short.

    Raises:
        ValueError: If a key is set but shorter than 32 characters.
    """
    key = get_expected_api_key()
    if key and len(key) < _MIN_API_KEY_LENGTH:
        raise ValueError(
            f"AGENTCHAT_API_KEY is too short ({len(key)} chars). "
            f"Minimum length is {_MIN_API_KEY_LENGTH} characters."
        )


def should_authenticate(path: str) -> bool:
    """Return True when this path is protected by the API key."""
    if path.startswith(_PUBLIC_PATH_PREFIXES):
        return False
    return path.startswith("/api/")


async def maybe_require_api_key(request: Request, call_next) -> Response:
    """Middleware entrypoint: check X-API-Key with per-IP failure limiting."""
    if request.method.upper() == "OPTIONS":
        return await call_next(request)

    expected_key = get_expected_api_key()
    if not expected_key or not should_authenticate(request.url.path):
        return await call_next(request)

    client_ip = _get_client_ip(request)
    if _is_rate_limited(client_ip):
        logger.warning("Auth rate limit exceeded for IP %s", client_ip)
        return JSONResponse(
            status_code=429,
            content={"detail": "Too many authentication failures. Try again later."},
        )

    provided_key = request.headers.get(API_KEY_HEADER, "")
    if not provided_key or not hmac.compare_digest(provided_key, expected_key):
        _record_auth_failure(client_ip)
        return JSONResponse(
            status_code=401,
            content={"detail": "Invalid or missing API key"},
        )
    return await call_next(request)
