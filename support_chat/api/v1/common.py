from fastapi import Request
from fastapi.responses import JSONResponse

from support_chat.service.chat.hub import ChatHub


def soft_error(message: str) -> JSONResponse:
    # Failures are reported in the body; the HTTP status stays 200.
    return JSONResponse(status_code=200, content={"status": "error", "success": False, "message": message})


def get_hub(request: Request) -> ChatHub:
    return request.app.state.hub
