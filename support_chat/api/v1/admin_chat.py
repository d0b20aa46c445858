import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

import support_chat.config.config as configs
from support_chat.api.v1.common import get_hub, soft_error
from support_chat.model.chat.chat_request import MessageCreateRequest, PriorityUpdateRequest
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
        logger.exception("admin chat upload failed")
        return soft_error("Failed to upload file")
    return {"file_url": file_url}


@router.get("/conversations")
async def get_conversations(hub: ChatHub = Depends(get_hub)):
    try:
        conversations = await asyncio.to_thread(hub.store.list_conversations)
    except Exception:
        logger.exception("failed to get conversations")
        return soft_error("Failed to get conversations")
    return {"conversations": conversations}


@router.get("/history/{conversation_id}")
async def get_chat_history(conversation_id: int, hub: ChatHub = Depends(get_hub)):
    try:
        messages = await asyncio.to_thread(hub.store.list_messages, conversation_id)
    except Exception:
        logger.exception("failed to get chat history conversation=%s", conversation_id)
        return soft_error("Failed to get chat history")
    return {"messages": messages}


@router.get("/unread")
async def get_unread_count(hub: ChatHub = Depends(get_hub)):
    try:
        count = await asyncio.to_thread(hub.store.count_unread)
    except Exception:
        logger.exception("failed to get unread count")
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
    if not req.sender_id or not req.sender_type or not req.conversation_id:
        return soft_error("Missing required fields")
    if req.sender_type not in configs.SENDER_TYPES:
        return soft_error("Invalid sender type")
    if hub.admin_http_limiter is not None:
        try:
            admitted = await asyncio.to_thread(hub.admin_http_limiter.admit, req.sender_id)
        except Exception:
            logger.exception("admin http rate limiter failed sender=%s", req.sender_id)
            return soft_error("Failed to create message")
        if not admitted:
            return soft_error("Too many messages. Please wait before sending more.")
    try:
        message = await asyncio.to_thread(
            hub.store.insert_message,
            req.conversation_id,
            req.sender_id,
            req.sender_type,
            req.content,
            req.media_url,
            req.media_type,
        )
    except Exception:
        logger.exception("failed to create message conversation=%s", req.conversation_id)
        return soft_error("Failed to create message")
    return {"message": message}


@router.put("/priority/{conversation_id}")
async def update_priority(conversation_id: int, req: PriorityUpdateRequest, hub: ChatHub = Depends(get_hub)):
    if req.priority not in configs.PRIORITIES:
        return soft_error("Invalid priority level")
    try:
        found = await asyncio.to_thread(hub.store.set_priority, conversation_id, req.priority)
    except Exception:
        logger.exception("failed to update priority conversation=%s", conversation_id)
        return soft_error("Failed to update priority")
    if not found:
        return soft_error("Conversation not found")
    return {"success": True}


@router.get("/filter")
async def filter_conversations(filter: Optional[str] = None, hub: ChatHub = Depends(get_hub)):
    try:
        conversations = await asyncio.to_thread(hub.store.list_conversations, filter)
    except Exception:
        logger.exception("failed to filter conversations filter=%s", filter)
        return soft_error("Failed to filter conversations")
    return {"conversations": conversations}


@router.get("/search")
async def search_conversations(query: Optional[str] = None, hub: ChatHub = Depends(get_hub)):
    if not query or not query.strip():
        return soft_error("Search query is required")
    try:
        conversations = await asyncio.to_thread(hub.store.search_conversations, query)
    except Exception:
        logger.exception("failed to search conversations")
        return soft_error("Failed to search conversations")
    return {"conversations": conversations}
