import logging
from typing import Optional

from pydantic import BaseModel

from support_chat.model.chat.events import (
    CustomerChatMessageEvent,
    GetHistoryEvent,
    GetUnreadCountEvent,
    MarkReadEvent,
    chat_history_event,
    chat_message_event,
    customer_event_adapter,
    message_read_event,
    presence_event,
    unread_count_event,
)
from support_chat.service.chat.errors import ChatError, ChatValidationError, RateLimitExceeded
from support_chat.service.chat.registry import Role
from support_chat.service.chat.session import RATE_LIMITED, ChatSession, EventHandler, as_int, as_list

logger = logging.getLogger(__name__)


class CustomerSession(ChatSession):
    """One customer's chat channel.

    The identity from the socket path owns every message sent here; sender
    and customer fields in the envelope are not trusted.
    """

    role = Role.CUSTOMER
    adapter = customer_event_adapter

    @property
    def customer_id(self) -> Optional[int]:
        return as_int(self.identity)

    async def on_open(self) -> None:
        await self.hub.router.to_admins(presence_event(self.identity, online=True))

    async def on_close(self) -> None:
        await self.hub.router.to_admins(presence_event(self.identity, online=False))

    def _get_event_handler(self, event: BaseModel) -> Optional[EventHandler]:
        if isinstance(event, GetHistoryEvent):
            return self.get_history
        if isinstance(event, CustomerChatMessageEvent):
            return self.chat_message
        if isinstance(event, MarkReadEvent):
            return self.mark_read
        if isinstance(event, GetUnreadCountEvent):
            return self.get_unread_count
        return None

    async def get_history(self, event: GetHistoryEvent) -> None:
        messages = []
        if self.customer_id is not None:
            messages = await self.store_call(self.hub.store.list_customer_messages, self.customer_id)
        await self.reply(chat_history_event(as_list(messages)))

    async def chat_message(self, event: CustomerChatMessageEvent) -> None:
        if not self.hub.limiter.admit(self.identity):
            logger.warning("rate limit exceeded for customer %s", self.identity)
            raise RateLimitExceeded(RATE_LIMITED)

        customer_id = self.customer_id
        if customer_id is None:
            raise ChatValidationError("Invalid customer ID")
        if not event.content and not event.media_url:
            raise ChatValidationError("Message content is required")

        store = self.hub.store
        conversation_id = await self.store_call(store.resolve_conversation, customer_id, event.conversation_id)
        message = await self.store_call(
            store.insert_message,
            conversation_id,
            customer_id,
            "user",
            event.content,
            event.media_url,
            event.media_type,
        )

        payload = chat_message_event(message)
        await self.hub.router.to_admins(payload)
        await self.reply(payload)

    async def mark_read(self, event: MarkReadEvent) -> None:
        if not event.message_id:
            raise ChatValidationError("Message ID is required")
        if not await self.store_call(self.hub.store.mark_read, event.message_id):
            raise ChatError("Failed to mark message as read")
        await self.hub.router.to_admins(message_read_event(event.message_id))

    async def get_unread_count(self, event: GetUnreadCountEvent) -> None:
        count = 0
        if self.customer_id is not None:
            count = await self.store_call(self.hub.store.count_unread, self.customer_id)
        await self.reply(unread_count_event(count))
