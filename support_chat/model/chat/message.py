from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, field_validator, model_validator

import support_chat.config.config as configs


class MessageOut(BaseModel):
    """Canonical message shape sent over both the socket and HTTP surfaces.

    Every read path builds messages through this model, so missing columns
    always default the same way: empty content, unread, and a sender name
    derived from the sender role.
    """

    id: int
    conversation_id: int
    sender_id: Optional[Union[int, str]] = None
    sender_type: str
    content: str = ""
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    timestamp: Optional[datetime] = None
    is_read: int = 0
    sender_name: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def _default_content(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_read", mode="before")
    @classmethod
    def _coerce_read_flag(cls, value: Any) -> int:
        return 1 if value else 0

    @model_validator(mode="after")
    def _default_sender_name(self) -> "MessageOut":
        if self.sender_type == "admin":
            self.sender_name = self.sender_name or configs.ADMIN_DISPLAY_NAME
        elif not self.sender_name:
            self.sender_name = configs.USER_DISPLAY_NAME
        return self
