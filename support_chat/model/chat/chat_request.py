from typing import Optional

from pydantic import BaseModel, Field


class MessageCreateRequest(BaseModel):
    content: Optional[str] = Field(default=None, description="Message text, empty for media-only messages")
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    sender_id: Optional[int] = None
    sender_type: Optional[str] = None
    conversation_id: Optional[int] = None
    customer_id: Optional[int] = None


class PriorityUpdateRequest(BaseModel):
    priority: Optional[str] = None
