import asyncio
import logging

from support_chat.service.chat.hub import ChatHub

logger = logging.getLogger(__name__)


async def sweep(hub: ChatHub) -> int:
    """Drop registry entries whose socket is no longer connected.

    Liveness itself is probed at the protocol layer: uvicorn sends ws pings
    every heartbeat interval and closes peers that miss the pong, which ends
    their receive loop. Idle but connected sockets are left alone. Returns
    how many connections were dropped.
    """
    dropped = 0
    for conn in hub.registry.connections():
        if conn.is_open:
            continue
        logger.info("dropping disconnected %r", conn)
        hub.registry.unregister(conn)
        await conn.terminate()
        dropped += 1

    evicted = hub.limiter.evict_idle()
    if dropped or evicted:
        logger.info("heartbeat dropped=%s evicted_rate_keys=%s", dropped, evicted)
    return dropped


async def run_heartbeat(hub: ChatHub) -> None:
    while True:
        await asyncio.sleep(hub.heartbeat_interval)
        try:
            await sweep(hub)
        except Exception:
            logger.exception("heartbeat sweep failed")
