import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from support_chat.api.v1.common import get_hub, soft_error
from support_chat.model.chat.chat_request import MessageCreateRequest
from support_chat.service.chat.hub import ChatHub
from support_chat.service.upload.upload import UploadRejected, save_chat_upload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload")
async def upload_file(file: Optional[UploadFile] = File(default=None)):
    try:
        file_url = await save_chat_upload(file)
    except UploadRejected as exc:
        return soft_error(str(exc))
    except Exception:
        logger.exception("customer chat upload failed")
        return soft_error("Failed to upload file")
    return {"file_url": file_url}


@router.get("/history/{user_id}")
async def get_chat_history(user_id: int, hub: ChatHub = Depends(get_hub)):
    try:
        messages = await asyncio.to_thread(hub.store.list_customer_messages, user_id)
    except Exception:
        logger.exception("failed to get chat history user=%s", user_id)
        return soft_error("Failed to get chat history")
    return {"messages": messages}


@router.get("/unread/{user_id}")
async def get_unread_count(user_id: int, hub: ChatHub = Depends(get_hub)):
    try:
        count = await asyncio.to_thread(hub.store.count_unread, user_id)
    except Exception:
        logger.exception("failed to get unread count user=%s", user_id)
        return soft_error("Failed to get unread count")
    return {"count": count}


@router.put("/read/{message_id}")
async def mark_message_as_read(message_id: int, hub: ChatHub = Depends(get_hub)):
    try:
        found = await asyncio.to_thread(hub.store.mark_read, message_id)
    except Exception:
        logger.exception("failed to mark message read message=%s", message_id)
        return soft_error("Failed to mark message as read")
    if not found:
        return soft_error("Message not found")
    return {"success": True}


@router.post("/message")
async def create_message(req: MessageCreateRequest, hub: ChatHub = Depends(get_hub)):
    if not req.sender_id or req.sender_type != "user":
        return soft_error("Missing required fields")
    customer_id = req.customer_id or req.sender_id
    try:
        conversation_id = await asyncio.to_thread(hub.store.resolve_conversation, customer_id, req.conversation_id)
        message = await asyncio.to_thread(
            hub.store.insert_message,
            conversation_id,
            req.sender_id,
            "user",
            req.content,
            req.media_url,
            req.media_type,
        )
    except Exception:
        logger.exception("failed to create message customer=%s", customer_id)
        return soft_error("Failed to create message")
    return {"message": message}
