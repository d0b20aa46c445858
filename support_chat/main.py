import asyncio
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles

import support_chat.config.config as configs
from support_chat.api.v1.common import soft_error
from support_chat.api.v1.route import api_router as MainRouter
from support_chat.api.ws.chat import router as WsRouter
from support_chat.db import models  # noqa: F401
from support_chat.db.session import Base, engine
from support_chat.service.chat.heartbeat import run_heartbeat
from support_chat.service.chat.hub import build_hub

logging.basicConfig(level=configs.LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="support_chat", version="0.1.0")
app.state.hub = build_hub()
app.include_router(router=MainRouter, prefix="/api")
app.include_router(router=WsRouter)
app.mount(configs.UPLOAD_URL_PREFIX, StaticFiles(directory=configs.UPLOAD_DIR, check_dir=False), name="uploads")


@app.exception_handler(RequestValidationError)
async def soft_validation_error(request: Request, exc: RequestValidationError):
    logger.info("rejected request %s %s: %s", request.method, request.url.path, exc.errors())
    return soft_error("Invalid request")


@app.on_event("startup")
async def startup() -> None:
    Base.metadata.create_all(bind=engine)
    hub = app.state.hub
    hub.tasks.append(asyncio.create_task(run_heartbeat(hub)))


@app.on_event("shutdown")
async def shutdown() -> None:
    hub = app.state.hub
    for task in hub.tasks:
        task.cancel()
    hub.tasks.clear()
    for conn in hub.registry.connections():
        await conn.terminate()


def run() -> None:
    uvicorn.run(
        app,
        host=configs.HOST,
        port=configs.PORT,
        ws_ping_interval=configs.HEARTBEAT_INTERVAL_SEC,
        ws_ping_timeout=configs.HEARTBEAT_TIMEOUT_SEC,
    )


if __name__ == "__main__":
    run()
