import pytest
from starlette.websockets import WebSocketState

from support_chat.service.chat.broadcast import BroadcastRouter
from support_chat.service.chat.registry import ConnectionRegistry, Role


@pytest.mark.asyncio
async def test_to_customer_matches_identity_as_string(make_connection):
    registry = ConnectionRegistry()
    router = BroadcastRouter(registry)
    target = make_connection(Role.CUSTOMER, "42")
    other = make_connection(Role.CUSTOMER, "43")
    admin = make_connection(Role.ADMIN, "42")
    for conn in (target, other, admin):
        registry.register(conn)

    delivered = await router.to_customer(42, {"type": "x"})

    assert delivered == 1
    assert target.websocket.sent == [{"type": "x"}]
    assert other.websocket.sent == []
    assert admin.websocket.sent == []


@pytest.mark.asyncio
async def test_to_admins_excludes_sender_and_skips_closed(make_connection):
    registry = ConnectionRegistry()
    router = BroadcastRouter(registry)
    sender = make_connection(Role.ADMIN, "1")
    peer = make_connection(Role.ADMIN, "2")
    closing = make_connection(Role.ADMIN, "3")
    broken = make_connection(Role.ADMIN, "4", fail_send=True)
    closing.websocket.client_state = WebSocketState.DISCONNECTED
    for conn in (sender, peer, closing, broken):
        registry.register(conn)

    delivered = await router.to_admins({"type": "y"}, exclude_admin_id=1)

    assert delivered == 1
    assert sender.websocket.sent == []
    assert peer.websocket.sent == [{"type": "y"}]
    assert closing.websocket.sent == []


def test_registry_presence(make_connection):
    registry = ConnectionRegistry()
    first = make_connection(Role.CUSTOMER, "42")
    second = make_connection(Role.CUSTOMER, "42")
    registry.register(first)
    registry.register(first)
    registry.register(second)
    registry.register(make_connection(Role.ADMIN, "7"))

    assert len(registry) == 3
    assert registry.online_customer_ids() == {"42"}

    registry.unregister(first)
    assert registry.online_customer_ids() == {"42"}
    registry.unregister(second)
    registry.unregister(second)
    assert registry.online_customer_ids() == set()
