"""ChatBotKit binding of the conversation store.

Implements ConversationStore over the ChatBotKit REST API v1 using httpx.
Authentication is a bearer API secret. Completions are requested with a
JSON-lines stream and parsed into CompletionEvent objects.

API Reference: https://chatbotkit.com/docs/api/v1/spec
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from agentchat.errors import NotFoundError, RemoteStoreError
from agentchat.services.conversation_store import ConversationStore
from agentchat.services.store_models import (
    BotRecord,
    ChatMessage,
    CompletionEvent,
    CompletionRequest,
    ConversationRecord,
)
from agentchat.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)


class ChatBotKitStore(ConversationStore):
    """ConversationStore implementation for the ChatBotKit platform.

    Example usage:
        store = ChatBotKitStore(api_secret="sk-...")
        contact_id = await store.ensure_contact(fp, "jane@example.com", "Jane")
        conversation_id = await store.create_conversation(contact_id)
        await store.aclose()
    """

    def __init__(
        self,
        api_secret: str,
        base_url: str = "https://api.chatbotkit.com/v1",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the binding.

        Args:
            api_secret: ChatBotKit API secret.
            base_url: API root, without trailing slash.
            timeout: Per-request timeout in seconds. Exceeding it fails the
                call with a RemoteStoreError; nothing is retried.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_secret}"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Contacts and bots
    # ------------------------------------------------------------------

    async def ensure_contact(self, fingerprint: str, email: str, name: str) -> str:
        data = await self._request(
            "contact.ensure",
            "POST",
            "/contact/ensure",
            json={"fingerprint": fingerprint, "email": email, "name": name},
        )
        return data["id"]

    async def list_bots(self) -> list[BotRecord]:
        data = await self._request("bot.list", "GET", "/bot/list")
        return [BotRecord(**_pick(item, "id", "name", "description")) for item in data.get("items", [])]

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def create_conversation(self, contact_id: str, bot_id: str | None = None) -> str:
        body: dict[str, Any] = {"contactId": contact_id}
        if bot_id:
            body["botId"] = bot_id
        data = await self._request("conversation.create", "POST", "/conversation/create", json=body)
        return data["id"]

    async def update_conversation(self, conversation_id: str, name: str, description: str) -> None:
        await self._request(
            "conversation.update",
            "POST",
            f"/conversation/{conversation_id}/update",
            json={"name": name, "description": description},
            not_found=("Conversation", conversation_id),
        )

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request(
            "conversation.delete",
            "POST",
            f"/conversation/{conversation_id}/delete",
            json={},
            not_found=("Conversation", conversation_id),
        )

    async def list_contact_conversations(
        self, contact_id: str, order: str = "desc", take: int = 50
    ) -> list[ConversationRecord]:
        data = await self._request(
            "contact.conversation.list",
            "GET",
            f"/contact/{contact_id}/conversation/list",
            params={"order": order, "take": take},
            not_found=("Contact", contact_id),
        )
        return [
            ConversationRecord(
                id=item["id"],
                name=item.get("name"),
                description=item.get("description"),
                created_at=item.get("createdAt"),
            )
            for item in data.get("items", [])
        ]

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def list_messages(self, conversation_id: str) -> list[ChatMessage]:
        data = await self._request(
            "conversation.message.list",
            "GET",
            f"/conversation/{conversation_id}/message/list",
            not_found=("Conversation", conversation_id),
        )
        return [
            ChatMessage(
                id=item.get("id"),
                type=item.get("type", ""),
                text=item.get("text") or "",
                created_at=item.get("createdAt"),
            )
            for item in data.get("items", [])
        ]

    async def create_message(self, conversation_id: str, type: str, text: str) -> str:
        data = await self._request(
            "conversation.message.create",
            "POST",
            f"/conversation/{conversation_id}/message/create",
            json={"type": type, "text": text},
            not_found=("Conversation", conversation_id),
        )
        return data["id"]

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete_stream(self, request: CompletionRequest) -> AsyncIterator[CompletionEvent]:
        """Stream a stateless completion as JSON-lines events.

        Args:
            request: Full message history plus bot or inline persona.

        Yields:
            CompletionEvent per non-empty line of the response body.

        Raises:
            RemoteStoreError: On transport failure, timeout, non-2xx reply
                or an unparseable line.
        """
        operation = "conversation.complete"
        body = _completion_body(request)
        try:
            async with self._client.stream(
                "POST",
                "/conversation/complete",
                json=body,
                headers={"Accept": "application/jsonl"},
            ) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise _status_error(operation, response)
                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        payload = json.loads(line)
                    except json.JSONDecodeError as e:
                        raise RemoteStoreError(operation, f"Malformed stream line: {e}") from e
                    yield CompletionEvent(
                        type=str(payload.get("type", "")),
                        data=payload.get("data") or {},
                    )
        except httpx.TimeoutException as e:
            raise RemoteStoreError(operation, "Request timed out", timed_out=True) from e
        except httpx.RequestError as e:
            raise RemoteStoreError(operation, f"Request failed: {sanitize_error_message(str(e))}") from e

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        not_found: tuple[str, str] | None = None,
    ) -> Any:
        """Make an authenticated request to the ChatBotKit API.

        Args:
            operation: Store operation name used in errors and logs.
            method: HTTP method.
            path: Path relative to the API root.
            params: Query parameters.
            json: JSON body data.
            not_found: (resource_type, identifier) reported when the API
                answers 404.

        Returns:
            Parsed JSON response (empty dict for empty bodies).

        Raises:
            NotFoundError: If the API answers 404 and not_found is given.
            RemoteStoreError: On any other failure.
        """
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise RemoteStoreError(operation, "Request timed out", timed_out=True) from e
        except httpx.RequestError as e:
            raise RemoteStoreError(operation, f"Request failed: {sanitize_error_message(str(e))}") from e

        if response.status_code == 404 and not_found is not None:
            raise NotFoundError(not_found[0], not_found[1], operation=operation)
        if response.status_code >= 400:
            raise _status_error(operation, response)

        logger.debug("ChatBotKit %s -> %d", operation, response.status_code)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(operation, "Response was not valid JSON", response.status_code) from e


def _pick(item: dict[str, Any], *keys: str) -> dict[str, Any]:
    return {key: item.get(key) for key in keys}


def _completion_body(request: CompletionRequest) -> dict[str, Any]:
    """Build the camelCase request body for /conversation/complete."""
    body: dict[str, Any] = {"messages": [m.wire() for m in request.messages]}
    if request.bot_id:
        body["botId"] = request.bot_id
    else:
        body["backstory"] = request.backstory or ""
        body["model"] = request.model
    if request.contact_id:
        body["contactId"] = request.contact_id
    if request.functions:
        body["functions"] = [f.model_dump() for f in request.functions]
    return body


def _status_error(operation: str, response: httpx.Response) -> RemoteStoreError:
    """Translate a non-2xx response into a RemoteStoreError."""
    try:
        payload = response.json()
        detail = payload.get("message") or payload.get("code") or response.text
    except ValueError:
        detail = response.text
    message = sanitize_error_message(str(detail) or response.reason_phrase) or ""
    logger.warning("ChatBotKit %s failed with %d: %s", operation, response.status_code, message)
    return RemoteStoreError(operation, message, http_status=response.status_code)
