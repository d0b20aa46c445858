import os

for _name in ("DB_HOST", "DB_USER", "DB_PWD", "DB_NAME"):
    os.environ.pop(_name, None)
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_RATE_LIMIT_ENABLED"] = "0"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from support_chat.db.models import Conversation, Message, User
from support_chat.db.session import Base, SessionLocal, engine
from support_chat.main import app
from support_chat.service.chat.hub import build_hub
from support_chat.service.chat.registry import LiveConnection, Role
from support_chat.service.chat.store import ConversationStore


class FakeWebSocket:
    def __init__(self, fail_send: bool = False):
        self.sent: list[dict] = []
        self.closed_code = None
        self.fail_send = fail_send
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def send_json(self, payload):
        if self.fail_send:
            raise RuntimeError("socket gone")
        self.sent.append(payload)

    async def close(self, code: int = 1000, reason=None):
        self.closed_code = code
        self.application_state = WebSocketState.DISCONNECTED

    def types(self) -> list[str]:
        return [payload["type"] for payload in self.sent]

    def of_type(self, event_type: str) -> list[dict]:
        return [payload for payload in self.sent if payload["type"] == event_type]


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def store():
    return ConversationStore(SessionLocal)


@pytest.fixture
def hub(store):
    return build_hub(store)


#scope : function < class < module < package < session
@pytest.fixture(scope="function")
def client():
    return TestClient(app)


@pytest.fixture
def make_connection():
    def _make(role: Role, identity: str, fail_send: bool = False) -> LiveConnection:
        return LiveConnection(FakeWebSocket(fail_send=fail_send), role, identity)

    return _make


@pytest.fixture
def add_user():
    def _add(user_id: int, username: str | None) -> int:
        with SessionLocal() as db:
            db.add(User(id=user_id, username=username))
            db.commit()
        return user_id

    return _add


@pytest.fixture
def add_conversation():
    def _add(customer_id: int, priority: str = "medium") -> int:
        with SessionLocal() as db:
            conversation = Conversation(customer_id=customer_id, priority=priority)
            db.add(conversation)
            db.commit()
            return conversation.id

    return _add


@pytest.fixture
def add_message():
    def _add(
        conversation_id: int,
        sender_id: int,
        sender_type: str = "user",
        content: str = "hi",
        timestamp: datetime | None = None,
        is_read: bool = False,
    ) -> int:
        with SessionLocal() as db:
            message = Message(
                conversation_id=conversation_id,
                sender_id=sender_id,
                sender_type=sender_type,
                content=content,
                is_read=is_read,
            )
            if timestamp is not None:
                message.timestamp = timestamp
            db.add(message)
            db.commit()
            return message.id

    return _add
