import logging
import threading
from enum import Enum
from typing import Any, Awaitable, Callable, List, Set

from fastapi import WebSocket, status
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class LiveConnection:
    """One open socket, tagged with the role and identity it was opened for."""

    def __init__(self, websocket: WebSocket, role: Role, identity: str):
        self.websocket = websocket
        self.role = role
        self.identity = str(identity)

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, payload: dict[str, Any]) -> bool:
        if not self.is_open:
            return False
        try:
            await self.websocket.send_json(payload)
            return True
        except Exception:
            logger.exception("send failed role=%s identity=%s", self.role.value, self.identity)
            return False

    async def terminate(self, code: int = status.WS_1001_GOING_AWAY) -> None:
        if self.websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self.websocket.close(code=code)
        except Exception:
            logger.debug("close failed role=%s identity=%s", self.role.value, self.identity)

    def __repr__(self) -> str:
        return f"LiveConnection(role={self.role.value!r}, identity={self.identity!r})"


class ConnectionRegistry:
    """Set of live connections; doubles as the presence registry.

    Mutation happens on connect/close. Iteration works on a snapshot taken
    under the lock so sends never run while it is held.
    """

    def __init__(self) -> None:
        self._connections: List[LiveConnection] = []
        self._lock = threading.RLock()

    def register(self, conn: LiveConnection) -> None:
        with self._lock:
            if conn not in self._connections:
                self._connections.append(conn)
        logger.info("registered %r total=%s", conn, len(self))

    def unregister(self, conn: LiveConnection) -> None:
        with self._lock:
            if conn in self._connections:
                self._connections.remove(conn)
        logger.info("unregistered %r total=%s", conn, len(self))

    def connections(self) -> List[LiveConnection]:
        with self._lock:
            return list(self._connections)

    async def for_each(
        self,
        predicate: Callable[[LiveConnection], bool],
        fn: Callable[[LiveConnection], Awaitable[Any]],
    ) -> int:
        matched = 0
        for conn in self.connections():
            if predicate(conn):
                matched += 1
                await fn(conn)
        return matched

    def online_customer_ids(self) -> Set[str]:
        return {c.identity for c in self.connections() if c.role is Role.CUSTOMER}

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
