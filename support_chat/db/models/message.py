from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from support_chat.db.session import Base


class Message(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    # Parent conversation row; never reassigned after insert
    conversation_id = Column(Integer, ForeignKey("chat_conversations.id"), nullable=False, index=True)
    sender_id = Column(Integer, nullable=False, index=True)
    # user | admin
    sender_type = Column(String(16), nullable=False)
    # Empty string for media-only messages
    content = Column(Text, default="", nullable=False)
    media_url = Column(String(512), nullable=True)
    # image | video
    media_type = Column(String(16), nullable=True)
    # Local server time so today/yesterday filters follow the server calendar
    timestamp = Column(DateTime, default=datetime.now, nullable=False, index=True)
    is_read = Column(Boolean, default=False, nullable=False)
