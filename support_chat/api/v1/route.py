from fastapi import APIRouter

from support_chat.api.v1.admin_chat import router as admin_chat_router
from support_chat.api.v1.customer_chat import router as customer_chat_router

api_router = APIRouter()
api_router.include_router(admin_chat_router, prefix="/admin/chat", tags=["admin-chat"])
api_router.include_router(customer_chat_router, prefix="/customer/chat", tags=["customer-chat"])
