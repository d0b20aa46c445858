from typing import Any, Optional

from support_chat.service.chat.registry import ConnectionRegistry, LiveConnection, Role


class BroadcastRouter:
    """Fans events out to live sockets.

    There are no per-conversation subscriptions: every admin socket gets
    every admin-directed event and re-filters on its side.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def _deliver(self, predicate, payload: dict[str, Any]) -> int:
        delivered = 0

        async def send(conn: LiveConnection) -> None:
            nonlocal delivered
            if await conn.send(payload):
                delivered += 1

        await self.registry.for_each(predicate, send)
        return delivered

    async def to_customer(self, customer_id, payload: dict[str, Any]) -> int:
        target = str(customer_id)
        return await self._deliver(
            lambda c: c.role is Role.CUSTOMER and c.identity == target,
            payload,
        )

    async def to_admins(self, payload: dict[str, Any], exclude_admin_id: Optional[str] = None) -> int:
        excluded = None if exclude_admin_id is None else str(exclude_admin_id)
        return await self._deliver(
            lambda c: c.role is Role.ADMIN and c.identity != excluded,
            payload,
        )
