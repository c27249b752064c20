"""HTTP client implementation of AgentChatClient.

Thin wrapper around httpx that talks to the agentchat API. The CLI stands
in for the auth proxy: it sends the configured user in the identity
headers. Error responses raise AgentChatClientError, never typer.Exit, so
the client is reusable outside the CLI.
"""

import json
import logging
import os
from collections.abc import AsyncIterator

import httpx

from agentchat.cli.protocol import (
    AgentChatClientError,
    BotSummary,
    ConversationSummary,
    HealthStatus,
    Message,
    TurnEvent,
)

logger = logging.getLogger(__name__)


class HttpClient:
    """AgentChatClient implementation that talks to the API over HTTP."""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        email: str = "",
        name: str = "",
        email_header: str = "X-Forwarded-Email",
        name_header: str = "X-Forwarded-User",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize with API base URL and the user to act as.

        Args:
            base_url: The API's HTTP base URL.
            email: User email sent in the identity header.
            name: User display name sent in the name header.
            email_header: Identity header carrying the email.
            name_header: Identity header carrying the display name.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self._base_url = base_url
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._headers: dict[str, str] = {}
        if email:
            self._headers[email_header] = email
        if name:
            self._headers[name_header] = name
        api_key = os.environ.get("AGENTCHAT_API_KEY", "").strip()
        if api_key:
            self._headers["X-API-Key"] = api_key

    async def __aenter__(self) -> "HttpClient":
        """Open httpx async client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=30.0,
            headers=self._headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close httpx async client."""
        if self._client:
            await self._client.aclose()

    def _raise_for_status(self, resp: httpx.Response) -> None:
        """Raise AgentChatClientError on non-2xx responses."""
        if resp.status_code < 400:
            return
        error_code = None
        try:
            body = resp.json()
            error_code = body.get("error_code")
            detail = body.get("message") or body.get("detail") or resp.text
        except ValueError:
            detail = resp.text
        raise AgentChatClientError(
            message=str(detail),
            status_code=resp.status_code,
            error_code=error_code,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise AgentChatClientError(f"Cannot reach {self._base_url}: {e}") from e
        self._raise_for_status(resp)
        return resp

    async def ensure_contact(self) -> str:
        """Resolve the contact via POST /api/v1/contacts/ensure."""
        resp = await self._request("POST", "/api/v1/contacts/ensure")
        return resp.json()["contact_id"]

    async def list_bots(self) -> list[BotSummary]:
        resp = await self._request("GET", "/api/v1/bots")
        return [BotSummary.from_api(b) for b in resp.json().get("bots", [])]

    async def list_conversations(self, contact_id: str) -> list[ConversationSummary]:
        resp = await self._request("GET", f"/api/v1/contacts/{contact_id}/conversations")
        return [ConversationSummary.from_api(c) for c in resp.json().get("conversations", [])]

    async def get_messages(self, conversation_id: str) -> list[Message]:
        resp = await self._request("GET", f"/api/v1/conversations/{conversation_id}/messages")
        return [Message.from_api(m) for m in resp.json().get("messages", [])]

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/api/v1/conversations/{conversation_id}")

    async def complete_turn(
        self,
        messages: list[Message],
        bot_id: str | None,
        contact_id: str | None,
        conversation_id: str | None,
    ) -> AsyncIterator[TurnEvent]:
        """Run a turn via POST /api/v1/conversations/complete and stream SSE.

        Yields:
            TurnEvent objects until (and including) 'done'. Keep-alive
            pings are skipped.
        """
        body = {
            "bot_id": bot_id,
            "contact_id": contact_id,
            "conversation_id": conversation_id,
            "messages": [m.wire() for m in messages],
        }
        try:
            async with self._client.stream(
                "POST",
                "/api/v1/conversations/complete",
                json=body,
                timeout=None,
            ) as stream_resp:
                if stream_resp.status_code >= 400:
                    await stream_resp.aread()
                    self._raise_for_status(stream_resp)
                async for line in stream_resp.aiter_lines():
                    line = line.strip()
                    if not line.startswith("data:"):
                        continue
                    try:
                        envelope = json.loads(line[5:].strip())
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed SSE line: %s", line)
                        continue
                    event_type = envelope.get("event", "unknown")
                    if event_type == "ping":
                        continue
                    yield TurnEvent(event_type=event_type, data=envelope.get("data") or {})
                    if event_type == "done":
                        return
        except httpx.RequestError as e:
            raise AgentChatClientError(f"Stream interrupted: {e}") from e

    async def health(self) -> HealthStatus:
        """Check health via GET /health."""
        resp = await self._request("GET", "/health")
        data = resp.json()
        return HealthStatus(
            status=data.get("status", "unknown"),
            version=data.get("version", "unknown"),
            uptime_seconds=data.get("uptime_seconds", 0),
        )
