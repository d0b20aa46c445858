"""Socket envelopes.

Inbound frames are JSON objects discriminated by ``type``; each side of the
chat accepts its own union of event models. Outbound frames are plain dicts
built by the helpers at the bottom of this module.
"""

import json
from typing import Annotated, Any, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from support_chat.model.chat.conversation import ConversationOut
from support_chat.model.chat.message import MessageOut


class GetConversationsEvent(BaseModel):
    type: Literal["get_conversations"]


class GetHistoryEvent(BaseModel):
    type: Literal["get_history"]
    conversation_id: Optional[int] = None


class CustomerChatMessageEvent(BaseModel):
    # Sender fields are taken from the socket path; envelope copies are dropped unvalidated
    type: Literal["chat_message"]
    content: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    conversation_id: Optional[int] = None


class ChatMessageEvent(CustomerChatMessageEvent):
    sender_id: Optional[int] = None
    sender_type: Optional[str] = None
    customer_id: Optional[int] = None


class MarkReadEvent(BaseModel):
    type: Literal["mark_read"]
    message_id: Optional[int] = None


class GetUnreadCountEvent(BaseModel):
    type: Literal["get_unread_count"]


class SetPriorityEvent(BaseModel):
    type: Literal["set_priority"]
    conversation_id: Optional[int] = None
    # Checked against the priority enum by the handler
    priority: Optional[str] = None


class FilterConversationsEvent(BaseModel):
    type: Literal["filter_conversations"]
    filter: Optional[str] = None


class SearchConversationsEvent(BaseModel):
    type: Literal["search_conversations"]
    query: Optional[str] = None


CustomerEvent = Annotated[
    Union[GetHistoryEvent, CustomerChatMessageEvent, MarkReadEvent, GetUnreadCountEvent],
    Field(discriminator="type"),
]

AdminEvent = Annotated[
    Union[
        GetConversationsEvent,
        GetHistoryEvent,
        ChatMessageEvent,
        MarkReadEvent,
        GetUnreadCountEvent,
        SetPriorityEvent,
        FilterConversationsEvent,
        SearchConversationsEvent,
    ],
    Field(discriminator="type"),
]

customer_event_adapter: TypeAdapter = TypeAdapter(CustomerEvent)
admin_event_adapter: TypeAdapter = TypeAdapter(AdminEvent)

_UNKNOWN_TAG_ERRORS = {"union_tag_invalid", "union_tag_not_found"}


def parse_event(adapter: TypeAdapter, raw: str) -> Optional[BaseModel]:
    """Decode one inbound frame.

    Returns None for frames that are not JSON objects or carry an unknown
    ``type``; those are ignored by the session handlers. A known ``type``
    with malformed fields raises ``ValidationError``.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    try:
        return adapter.validate_python(data)
    except ValidationError as exc:
        if any(err["type"] in _UNKNOWN_TAG_ERRORS for err in exc.errors()):
            return None
        raise


def conversations_event(conversations: Iterable[ConversationOut]) -> dict[str, Any]:
    return {
        "type": "conversations",
        "conversations": [c.model_dump(mode="json") for c in conversations],
    }


def chat_history_event(messages: Iterable[MessageOut]) -> dict[str, Any]:
    return {
        "type": "chat_history",
        "messages": [m.model_dump(mode="json") for m in messages],
    }


def chat_message_event(message: MessageOut) -> dict[str, Any]:
    return {"type": "chat_message", "message": message.model_dump(mode="json")}


def message_read_event(message_id: int) -> dict[str, Any]:
    return {"type": "message_read", "message_id": message_id}


def unread_count_event(count: int) -> dict[str, Any]:
    return {"type": "unread_count", "count": count}


def priority_updated_event(conversation_id: int, priority: str) -> dict[str, Any]:
    return {"type": "priority_updated", "conversation_id": conversation_id, "priority": priority}


def presence_event(customer_id: str, online: bool) -> dict[str, Any]:
    return {"type": "customer_online" if online else "customer_offline", "customer_id": customer_id}


def error_event(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}
