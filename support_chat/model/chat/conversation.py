from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ConversationOut(BaseModel):
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    priority: str = "medium"
    created_at: Optional[datetime] = None
    last_message: Optional[str] = None
    last_message_time: Optional[datetime] = None
    unread_count: int = 0
    # Derived from live sockets, never stored
    is_online: bool = False
