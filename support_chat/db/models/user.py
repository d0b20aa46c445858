from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from support_chat.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    # Display name used in chat listings and search
    username = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
