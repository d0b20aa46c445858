import logging
from typing import Optional

from pydantic import BaseModel

import support_chat.config.config as configs
from support_chat.model.chat.events import (
    ChatMessageEvent,
    FilterConversationsEvent,
    GetConversationsEvent,
    GetHistoryEvent,
    GetUnreadCountEvent,
    MarkReadEvent,
    SearchConversationsEvent,
    SetPriorityEvent,
    admin_event_adapter,
    chat_history_event,
    chat_message_event,
    conversations_event,
    message_read_event,
    priority_updated_event,
    unread_count_event,
)
from support_chat.service.chat.errors import ChatError, ChatValidationError
from support_chat.service.chat.registry import Role
from support_chat.service.chat.session import ChatSession, EventHandler, as_int, as_list

logger = logging.getLogger(__name__)


class AdminSession(ChatSession):
    """An operator console watching every customer conversation.

    ``chat_message`` and ``mark_read`` skip the sending admin identity when
    notifying other admins; ``set_priority`` notifies all admins, sender
    included.
    """

    role = Role.ADMIN
    adapter = admin_event_adapter

    def _get_event_handler(self, event: BaseModel) -> Optional[EventHandler]:
        if isinstance(event, GetConversationsEvent):
            return self.get_conversations
        if isinstance(event, GetHistoryEvent):
            return self.get_history
        if isinstance(event, ChatMessageEvent):
            return self.chat_message
        if isinstance(event, MarkReadEvent):
            return self.mark_read
        if isinstance(event, GetUnreadCountEvent):
            return self.get_unread_count
        if isinstance(event, SetPriorityEvent):
            return self.set_priority
        if isinstance(event, FilterConversationsEvent):
            return self.filter_conversations
        if isinstance(event, SearchConversationsEvent):
            return self.search_conversations
        return None

    async def _all_conversations(self) -> list:
        return as_list(await self.store_call(self.hub.store.list_conversations))

    async def get_conversations(self, event: GetConversationsEvent) -> None:
        await self.reply(conversations_event(await self._all_conversations()))

    async def get_history(self, event: GetHistoryEvent) -> None:
        if not event.conversation_id:
            raise ChatValidationError("Conversation ID is required")
        messages = await self.store_call(self.hub.store.list_messages, event.conversation_id)
        await self.reply(chat_history_event(as_list(messages)))

    async def chat_message(self, event: ChatMessageEvent) -> None:
        if not event.conversation_id:
            raise ChatValidationError("Conversation ID is required")
        if not event.content and not event.media_url:
            raise ChatValidationError("Message content is required")
        sender_id = event.sender_id if event.sender_id is not None else as_int(self.identity)
        if sender_id is None:
            raise ChatValidationError("Sender ID is required")

        store = self.hub.store
        message = await self.store_call(
            store.insert_message,
            event.conversation_id,
            sender_id,
            "admin",
            event.content,
            event.media_url,
            event.media_type,
        )

        payload = chat_message_event(message)
        customer_id = event.customer_id
        if customer_id is None:
            customer_id = await self.store_call(store.get_conversation_customer, event.conversation_id)
        if customer_id is not None:
            await self.hub.router.to_customer(customer_id, payload)

        conversations = await self._all_conversations()
        await self.hub.router.to_admins(conversations_event(conversations), exclude_admin_id=self.identity)
        await self.reply(payload)

    async def mark_read(self, event: MarkReadEvent) -> None:
        if not event.message_id:
            raise ChatValidationError("Message ID is required")
        if not await self.store_call(self.hub.store.mark_read, event.message_id):
            raise ChatError("Failed to mark message as read")
        await self.hub.router.to_admins(message_read_event(event.message_id), exclude_admin_id=self.identity)

    async def get_unread_count(self, event: GetUnreadCountEvent) -> None:
        count = await self.store_call(self.hub.store.count_unread)
        await self.reply(unread_count_event(count))

    async def set_priority(self, event: SetPriorityEvent) -> None:
        if not event.conversation_id or event.priority not in configs.PRIORITIES:
            raise ChatValidationError("Invalid priority update request")
        if not await self.store_call(self.hub.store.set_priority, event.conversation_id, event.priority):
            raise ChatError("Conversation not found")
        await self.hub.router.to_admins(priority_updated_event(event.conversation_id, event.priority))

    async def filter_conversations(self, event: FilterConversationsEvent) -> None:
        conversations = await self.store_call(self.hub.store.list_conversations, event.filter)
        await self.reply(conversations_event(as_list(conversations)))

    async def search_conversations(self, event: SearchConversationsEvent) -> None:
        conversations = await self.store_call(self.hub.store.search_conversations, event.query)
        await self.reply(conversations_event(as_list(conversations)))
