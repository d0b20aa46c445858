from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from support_chat.db.session import Base


class Conversation(Base):
    __tablename__ = "chat_conversations"

    id = Column(Integer, primary_key=True, index=True)
    # Owning customer (users.id)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # high | medium | low
    priority = Column(String(16), default="medium", server_default="medium", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
