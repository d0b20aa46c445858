"""Durable conversation and message state shared by both chat directions.

All methods are synchronous and open their own session; async callers run
them through ``asyncio.to_thread``.
"""

from __future__ import annotations

import logging
import mimetypes
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional, Set

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

import support_chat.config.config as configs
from support_chat.client.db.psql import session_scope
from support_chat.db.models import Conversation, Message, User
from support_chat.db.session import SessionLocal
from support_chat.model.chat.conversation import ConversationOut
from support_chat.model.chat.message import MessageOut
from support_chat.service.chat.errors import ChatValidationError

logger = logging.getLogger(__name__)


def infer_media_type(media_url: Optional[str]) -> Optional[str]:
    if not media_url:
        return None
    guessed, _ = mimetypes.guess_type(media_url)
    if guessed is None:
        return None
    major = guessed.split("/", 1)[0]
    return major if major in ("image", "video") else None


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class ConversationStore:
    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        presence: Optional[Callable[[], Set[str]]] = None,
        history_limit: int = configs.HISTORY_LIMIT,
        admin_display_name: str = configs.ADMIN_DISPLAY_NAME,
    ):
        self.session_factory = session_factory
        self.presence = presence
        self.history_limit = history_limit
        self.admin_display_name = admin_display_name

    def _scope(self):
        return session_scope(self.session_factory)

    # -- messages ---------------------------------------------------------

    def _sender_name(self, sender_type: str, username: Optional[str]) -> str:
        if sender_type == "admin":
            return self.admin_display_name
        return username or configs.USER_DISPLAY_NAME

    def _to_message(self, row: Message, username: Optional[str]) -> MessageOut:
        return MessageOut(
            id=row.id,
            conversation_id=row.conversation_id,
            sender_id=row.sender_id,
            sender_type=row.sender_type,
            content=row.content,
            media_url=row.media_url,
            media_type=row.media_type,
            timestamp=row.timestamp,
            is_read=row.is_read,
            sender_name=self._sender_name(row.sender_type, username),
        )

    def _with_sender(self):
        return select(Message, User.username).outerjoin(User, User.id == Message.sender_id)

    def _recent_ascending(self, db: Session, stmt, limit: Optional[int]) -> list[MessageOut]:
        stmt = stmt.order_by(Message.timestamp.desc(), Message.id.desc()).limit(limit or self.history_limit)
        rows = db.execute(stmt).all()
        return [self._to_message(message, username) for message, username in reversed(rows)]

    def resolve_conversation(self, customer_id: int, conversation_id: Optional[int] = None) -> int:
        """Return the conversation a customer message belongs to.

        An explicit id is trusted as-is. Otherwise the conversation of the
        customer's latest message wins, then the first conversation the
        customer owns, and only then a new row is created.
        """
        if conversation_id:
            return conversation_id
        with self._scope() as db:
            found = db.execute(
                select(Message.conversation_id)
                .where(Message.sender_id == customer_id, Message.sender_type == "user")
                .order_by(Message.id.desc())
                .limit(1)
            ).scalar_one_or_none()
            if found:
                return found

            owned = db.execute(
                select(Conversation.id)
                .where(Conversation.customer_id == customer_id)
                .order_by(Conversation.id.asc())
                .limit(1)
            ).scalar_one_or_none()
            if owned:
                return owned

            conversation = Conversation(customer_id=customer_id, priority=configs.DEFAULT_PRIORITY)
            db.add(conversation)
            db.flush()
            logger.info("created conversation id=%s customer=%s", conversation.id, customer_id)
            return conversation.id

    def insert_message(
        self,
        conversation_id: int,
        sender_id: int,
        sender_type: str,
        content: Optional[str] = "",
        media_url: Optional[str] = None,
        media_type: Optional[str] = None,
    ) -> MessageOut:
        if sender_type not in configs.SENDER_TYPES:
            raise ChatValidationError(f"Invalid sender type: {sender_type}")
        with self._scope() as db:
            message = Message(
                conversation_id=conversation_id,
                sender_id=sender_id,
                sender_type=sender_type,
                content=content or "",
                media_url=media_url or None,
                media_type=media_type or infer_media_type(media_url),
                is_read=False,
            )
            db.add(message)
            db.flush()
            db.refresh(message)
            username = db.execute(select(User.username).where(User.id == sender_id)).scalar_one_or_none()
            return self._to_message(message, username)

    def list_messages(self, conversation_id: int, limit: Optional[int] = None) -> list[MessageOut]:
        with self._scope() as db:
            stmt = self._with_sender().where(Message.conversation_id == conversation_id)
            return self._recent_ascending(db, stmt, limit)

    def list_customer_messages(self, customer_id: int, limit: Optional[int] = None) -> list[MessageOut]:
        owned = select(Conversation.id).where(Conversation.customer_id == customer_id)
        with self._scope() as db:
            stmt = self._with_sender().where(
                or_(
                    Message.conversation_id.in_(owned),
                    and_(Message.sender_id == customer_id, Message.sender_type == "user"),
                )
            )
            return self._recent_ascending(db, stmt, limit)

    def mark_read(self, message_id: int) -> bool:
        with self._scope() as db:
            message = db.get(Message, message_id)
            if message is None:
                return False
            if not message.is_read:
                message.is_read = True
            return True

    def count_unread(self, customer_id: Optional[int] = None) -> int:
        """Unread badge count.

        Without a customer: every unread customer-sent message (admin badge).
        With a customer: unread admin replies in that customer's conversations.
        """
        stmt = select(func.count(Message.id)).where(Message.is_read.is_(False))
        if customer_id is None:
            stmt = stmt.where(Message.sender_type == "user")
        else:
            owned = select(Conversation.id).where(Conversation.customer_id == customer_id)
            stmt = stmt.where(Message.sender_type == "admin", Message.conversation_id.in_(owned))
        with self._scope() as db:
            return db.execute(stmt).scalar_one() or 0

    # -- conversations ----------------------------------------------------

    def get_conversation_customer(self, conversation_id: int) -> Optional[int]:
        with self._scope() as db:
            return db.execute(
                select(Conversation.customer_id).where(Conversation.id == conversation_id)
            ).scalar_one_or_none()

    def set_priority(self, conversation_id: int, priority: str) -> bool:
        if priority not in configs.PRIORITIES:
            raise ChatValidationError(f"Invalid priority level: {priority}")
        with self._scope() as db:
            conversation = db.get(Conversation, conversation_id)
            if conversation is None:
                return False
            conversation.priority = priority
            return True

    def _listing(self):
        def latest(column):
            return (
                select(column)
                .where(Message.conversation_id == Conversation.id)
                .order_by(Message.timestamp.desc(), Message.id.desc())
                .limit(1)
                .correlate(Conversation)
                .scalar_subquery()
            )

        last_message = latest(Message.content)
        last_message_time = latest(Message.timestamp)
        unread_count = (
            select(func.count(Message.id))
            .where(
                Message.conversation_id == Conversation.id,
                Message.sender_type == "user",
                Message.is_read.is_(False),
            )
            .correlate(Conversation)
            .scalar_subquery()
        )
        stmt = (
            select(
                Conversation.id,
                Conversation.customer_id,
                User.username.label("customer_name"),
                Conversation.priority,
                Conversation.created_at,
                last_message.label("last_message"),
                last_message_time.label("last_message_time"),
                unread_count.label("unread_count"),
            )
            .select_from(Conversation)
            .outerjoin(User, User.id == Conversation.customer_id)
        )
        return stmt, last_message_time, unread_count

    def _run_listing(self, stmt, last_message_time) -> list[ConversationOut]:
        stmt = stmt.order_by(last_message_time.desc().nulls_last(), Conversation.id.desc())
        with self._scope() as db:
            rows = db.execute(stmt).mappings().all()
        online = self.presence() if self.presence is not None else set()
        conversations = []
        for row in rows:
            conversation = ConversationOut(**row)
            conversation.unread_count = conversation.unread_count or 0
            conversation.is_online = str(conversation.customer_id) in online
            conversations.append(conversation)
        return conversations

    def list_conversations(self, filter: Optional[str] = None, today: Optional[date] = None) -> list[ConversationOut]:
        stmt, last_message_time, unread_count = self._listing()
        today = today or date.today()
        if filter == "unread":
            stmt = stmt.where(unread_count > 0)
        elif filter in ("today", "yesterday"):
            day = today if filter == "today" else today - timedelta(days=1)
            start, end = _day_bounds(day)
            stmt = stmt.where(last_message_time >= start, last_message_time < end)
        elif filter in configs.PRIORITIES:
            stmt = stmt.where(Conversation.priority == filter)
        return self._run_listing(stmt, last_message_time)

    def search_conversations(self, term: Optional[str]) -> list[ConversationOut]:
        term = (term or "").strip()
        if not term:
            return self.list_conversations()
        stmt, last_message_time, _ = self._listing()
        matching = select(Message.conversation_id).where(Message.content.icontains(term, autoescape=True))
        stmt = stmt.where(
            or_(
                User.username.icontains(term, autoescape=True),
                Conversation.id.in_(matching),
            )
        )
        return self._run_listing(stmt, last_message_time)
