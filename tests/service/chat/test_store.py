from datetime import date, datetime

import pytest
from sqlalchemy import func, select

from support_chat.db.models import Conversation
from support_chat.db.session import SessionLocal
from support_chat.service.chat.errors import ChatValidationError
from support_chat.service.chat.store import infer_media_type


def test_resolve_conversation_is_idempotent(store):
    first = store.resolve_conversation(42)
    second = store.resolve_conversation(42)

    assert first == second
    assert store.get_conversation_customer(first) == 42
    with SessionLocal() as db:
        owned = db.execute(select(func.count(Conversation.id)).where(Conversation.customer_id == 42)).scalar_one()
    assert owned == 1


def test_resolve_conversation_prefers_latest_message_then_owned(store, add_conversation, add_message):
    owned = add_conversation(7)
    other = add_conversation(7)
    assert store.resolve_conversation(7) == owned

    add_message(other, 7, "user", "moved")
    assert store.resolve_conversation(7) == other
    assert store.resolve_conversation(7, conversation_id=owned) == owned


def test_insert_message_defaults(store, add_user, add_conversation):
    add_user(42, "alice")
    conversation_id = add_conversation(42)

    message = store.insert_message(conversation_id, 42, "user", "hello")

    assert message.id > 0
    assert message.conversation_id == conversation_id
    assert message.is_read == 0
    assert message.content == "hello"
    assert message.sender_name == "alice"
    assert message.timestamp is not None


def test_insert_media_only_message_infers_type(store, add_conversation):
    conversation_id = add_conversation(3)

    message = store.insert_message(conversation_id, 3, "user", None, "/uploads/chat/a.png")

    assert message.content == ""
    assert message.media_type == "image"


def test_insert_message_rejects_unknown_sender_type(store, add_conversation):
    conversation_id = add_conversation(3)
    with pytest.raises(ChatValidationError):
        store.insert_message(conversation_id, 3, "bot", "hi")


def test_history_is_ascending_and_names_senders(store, add_user, add_conversation, add_message):
    add_user(42, "alice")
    conversation_id = add_conversation(42)
    add_message(conversation_id, 1, "admin", "second", timestamp=datetime(2026, 1, 1, 10, 5))
    add_message(conversation_id, 42, "user", "first", timestamp=datetime(2026, 1, 1, 10, 0))
    add_message(conversation_id, 99, "user", "third", timestamp=datetime(2026, 1, 1, 10, 9))

    messages = store.list_messages(conversation_id)

    assert [m.content for m in messages] == ["first", "second", "third"]
    assert [m.sender_name for m in messages] == ["alice", "Admin", "User"]


def test_history_keeps_most_recent_when_limited(store, add_conversation, add_message):
    conversation_id = add_conversation(1)
    for minute in range(5):
        add_message(conversation_id, 1, "user", f"m{minute}", timestamp=datetime(2026, 1, 1, 9, minute))

    messages = store.list_messages(conversation_id, limit=2)

    assert [m.content for m in messages] == ["m3", "m4"]


def test_customer_history_spans_owned_conversations(store, add_conversation, add_message):
    first = add_conversation(5)
    second = add_conversation(5)
    stranger = add_conversation(6)
    add_message(first, 5, "user", "a", timestamp=datetime(2026, 1, 1, 8))
    add_message(second, 1, "admin", "b", timestamp=datetime(2026, 1, 1, 9))
    add_message(stranger, 6, "user", "c", timestamp=datetime(2026, 1, 1, 10))

    assert [m.content for m in store.list_customer_messages(5)] == ["a", "b"]
    assert store.list_customer_messages(404) == []


def test_mark_read_is_monotonic(store, add_conversation, add_message):
    conversation_id = add_conversation(1)
    message_id = add_message(conversation_id, 1)

    assert store.mark_read(message_id) is True
    assert store.mark_read(message_id) is True
    assert store.list_messages(conversation_id)[0].is_read == 1
    assert store.mark_read(12345) is False


def test_unread_counts_drop_after_mark_read(store, add_conversation, add_message):
    conversation_id = add_conversation(42)
    ids = [add_message(conversation_id, 42, "user", f"m{i}") for i in range(3)]
    add_message(conversation_id, 1, "admin", "reply")

    assert store.count_unread() == 3
    assert store.list_conversations()[0].unread_count == 3

    store.mark_read(ids[0])

    assert store.count_unread() == 2
    assert store.list_conversations()[0].unread_count == 2
    assert store.count_unread(42) == 1
    assert store.count_unread(7) == 0


def test_listing_orders_by_latest_message(store, add_user, add_conversation, add_message):
    add_user(1, "alice")
    quiet = add_conversation(1)
    older = add_conversation(2)
    newer = add_conversation(3)
    add_message(older, 2, "user", "old", timestamp=datetime(2026, 1, 1, 9))
    add_message(newer, 3, "user", "new", timestamp=datetime(2026, 1, 1, 11))
    add_message(older, 2, "user", "older latest", timestamp=datetime(2026, 1, 1, 10))

    conversations = store.list_conversations()

    assert [c.id for c in conversations] == [newer, older, quiet]
    assert conversations[1].last_message == "older latest"
    assert conversations[1].last_message_time == datetime(2026, 1, 1, 10)
    assert conversations[2].last_message is None
    assert conversations[2].customer_name == "alice"


def test_listing_reports_presence(store, add_conversation):
    add_conversation(1)
    add_conversation(2)
    store.presence = lambda: {"2"}

    online = {c.customer_id: c.is_online for c in store.list_conversations()}

    assert online == {1: False, 2: True}


def test_filter_by_priority_keeps_order(store, add_conversation, add_message):
    a = add_conversation(1, "high")
    b = add_conversation(2, "low")
    c = add_conversation(3, "high")
    add_message(a, 1, timestamp=datetime(2026, 1, 1, 9))
    add_message(b, 2, timestamp=datetime(2026, 1, 1, 12))
    add_message(c, 3, timestamp=datetime(2026, 1, 1, 11))

    assert [x.id for x in store.list_conversations("high")] == [c, a]
    assert [x.id for x in store.list_conversations("low")] == [b]
    assert store.list_conversations("medium") == []


def test_filter_unread(store, add_conversation, add_message):
    read = add_conversation(1)
    unread = add_conversation(2)
    add_message(read, 1, is_read=True)
    add_message(unread, 2)

    assert [x.id for x in store.list_conversations("unread")] == [unread]


def test_filter_today_and_yesterday(store, add_conversation, add_message):
    today = date(2026, 3, 10)
    early = add_conversation(1)
    late = add_conversation(2)
    stale = add_conversation(3)
    add_message(early, 1, timestamp=datetime(2026, 3, 10, 0, 1))
    add_message(late, 2, timestamp=datetime(2026, 3, 9, 23, 59))
    add_message(stale, 3, timestamp=datetime(2026, 3, 1, 12))

    assert [x.id for x in store.list_conversations("today", today=today)] == [early]
    assert [x.id for x in store.list_conversations("yesterday", today=today)] == [late]


def test_unknown_filter_returns_everything(store, add_conversation):
    add_conversation(1)
    add_conversation(2)

    assert len(store.list_conversations("nonsense")) == 2


def test_search_matches_username_or_content(store, add_user, add_conversation, add_message):
    add_user(1, "Alice")
    add_user(2, "bob")
    by_name = add_conversation(1)
    by_content = add_conversation(2)
    add_message(by_name, 1, content="hello")
    add_message(by_content, 2, content="my ALICE order")

    found = {c.id for c in store.search_conversations("alice")}

    assert found == {by_name, by_content}
    assert store.search_conversations("nobody") == []


def test_search_treats_wildcards_literally(store, add_conversation, add_message):
    plain = add_conversation(1)
    percent = add_conversation(2)
    add_message(plain, 1, content="fifty")
    add_message(percent, 2, content="50% off")

    assert [c.id for c in store.search_conversations("%")] == [percent]


def test_empty_search_lists_everything(store, add_conversation):
    add_conversation(1)

    assert len(store.search_conversations("   ")) == 1


def test_set_priority(store, add_conversation):
    conversation_id = add_conversation(1)

    assert store.set_priority(conversation_id, "high") is True
    assert store.list_conversations()[0].priority == "high"
    assert store.set_priority(999, "low") is False
    with pytest.raises(ChatValidationError):
        store.set_priority(conversation_id, "urgent")


@pytest.mark.parametrize(
    "url, expected",
    [
        ("/uploads/chat/a.jpg", "image"),
        ("/uploads/chat/b.mp4", "video"),
        ("/uploads/chat/c.pdf", None),
        (None, None),
    ],
)
def test_infer_media_type(url, expected):
    assert infer_media_type(url) == expected
