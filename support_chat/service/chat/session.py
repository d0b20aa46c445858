import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from fastapi import WebSocket
from pydantic import BaseModel, TypeAdapter, ValidationError

from support_chat.model.chat.events import error_event, parse_event
from support_chat.service.chat.errors import ChatError
from support_chat.service.chat.hub import ChatHub
from support_chat.service.chat.registry import LiveConnection, Role

logger = logging.getLogger(__name__)

INVALID_REQUEST = "Invalid request"
RATE_LIMITED = "Rate limit exceeded. Please wait before sending more messages."

FAILURE_MESSAGES = {
    "get_conversations": "Failed to load conversations",
    "get_history": "Failed to load chat history",
    "chat_message": "Failed to send message",
    "mark_read": "Failed to mark message as read",
    "get_unread_count": "Failed to get unread count",
    "set_priority": "Failed to update priority",
    "filter_conversations": "Failed to filter conversations",
    "search_conversations": "Failed to search conversations",
}

EventHandler = Callable[[Any], Awaitable[None]]


class SessionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


def as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def as_list(result) -> list:
    if result is None:
        return []
    if isinstance(result, list):
        return result
    if isinstance(result, tuple):
        return list(result)
    return [result]


class ChatSession:
    """Per-socket state machine shared by the customer and admin sides.

    Frames are handled one at a time in arrival order. Every failure inside
    a handler becomes an ``error`` event for this socket only; the socket
    itself stays open.
    """

    role: Role
    adapter: TypeAdapter

    def __init__(self, connection: LiveConnection, hub: ChatHub):
        self.connection = connection
        self.hub = hub
        self.state = SessionState.CONNECTING

    @property
    def identity(self) -> str:
        return self.connection.identity

    async def store_call(self, fn, *args, **kwargs):
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def reply(self, payload: dict[str, Any]) -> bool:
        return await self.connection.send(payload)

    async def open(self) -> None:
        self.hub.registry.register(self.connection)
        self.state = SessionState.OPEN
        await self.on_open()

    async def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self.hub.registry.unregister(self.connection)
        await self.on_close()

    async def on_open(self) -> None:
        pass

    async def on_close(self) -> None:
        pass

    def _get_event_handler(self, event: BaseModel) -> Optional[EventHandler]:
        raise NotImplementedError

    async def handle(self, raw: str) -> None:
        try:
            event = parse_event(self.adapter, raw)
        except ValidationError:
            logger.warning("malformed %s frame from %s", self.role.value, self.identity)
            await self.reply(error_event(INVALID_REQUEST))
            return
        if event is None:
            return

        handler = self._get_event_handler(event)
        if handler is None:
            return
        try:
            await handler(event)
        except ChatError as exc:
            await self.reply(error_event(str(exc)))
        except Exception:
            logger.exception("failed %s on %s socket identity=%s", event.type, self.role.value, self.identity)
            await self.reply(error_event(FAILURE_MESSAGES.get(event.type, INVALID_REQUEST)))

    async def run(self, websocket: WebSocket) -> None:
        await self.open()
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None and message.get("bytes") is not None:
                    raw = message["bytes"].decode("utf-8", errors="replace")
                if raw is not None:
                    await self.handle(raw)
        finally:
            await self.close()
