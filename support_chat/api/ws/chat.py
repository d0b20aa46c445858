import logging

from fastapi import APIRouter, WebSocket, status

from support_chat.service.chat.admin import AdminSession
from support_chat.service.chat.customer import CustomerSession
from support_chat.service.chat.registry import LiveConnection, Role

logger = logging.getLogger(__name__)

router = APIRouter()


def identity_from_path(raw: str) -> str:
    parts = [part for part in (raw or "").split("/") if part.strip()]
    return parts[-1].strip() if parts else ""


async def _serve(websocket: WebSocket, session_cls, role: Role, raw_identity: str) -> None:
    identity = identity_from_path(raw_identity)
    if not identity:
        logger.error("missing %s identity in socket path %s", role.value, websocket.url.path)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    session = session_cls(LiveConnection(websocket, role, identity), websocket.app.state.hub)
    await session.run(websocket)


@router.websocket("/ws/customer/chat/{customer_id:path}")
async def customer_chat(websocket: WebSocket, customer_id: str):
    await _serve(websocket, CustomerSession, Role.CUSTOMER, customer_id)


@router.websocket("/ws/admin/chat/{admin_id:path}")
async def admin_chat(websocket: WebSocket, admin_id: str):
    await _serve(websocket, AdminSession, Role.ADMIN, admin_id)
