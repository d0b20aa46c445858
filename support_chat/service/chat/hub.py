from dataclasses import dataclass, field
from typing import Optional

import support_chat.config.config as configs
from support_chat.client.db.redis import create_redis_client
from support_chat.service.chat.broadcast import BroadcastRouter
from support_chat.service.chat.rate_limit import RedisFixedWindowRateLimiter, SlidingWindowRateLimiter
from support_chat.service.chat.registry import ConnectionRegistry
from support_chat.service.chat.store import ConversationStore


@dataclass
class ChatHub:
    """Everything a chat session needs, wired once per process."""

    registry: ConnectionRegistry
    router: BroadcastRouter
    store: ConversationStore
    limiter: SlidingWindowRateLimiter
    admin_http_limiter: Optional[RedisFixedWindowRateLimiter] = None
    heartbeat_interval: float = configs.HEARTBEAT_INTERVAL_SEC
    tasks: list = field(default_factory=list)


def build_hub(store: Optional[ConversationStore] = None) -> ChatHub:
    registry = ConnectionRegistry()
    if store is None:
        store = ConversationStore(presence=registry.online_customer_ids)
    elif store.presence is None:
        store.presence = registry.online_customer_ids

    admin_http_limiter = None
    if configs.ADMIN_RATE_LIMIT_ENABLED:
        admin_http_limiter = RedisFixedWindowRateLimiter(
            create_redis_client(),
            limit=configs.ADMIN_RATE_LIMIT_MESSAGES,
            window=configs.ADMIN_RATE_LIMIT_WINDOW_SEC,
        )

    return ChatHub(
        registry=registry,
        router=BroadcastRouter(registry),
        store=store,
        limiter=SlidingWindowRateLimiter(
            limit=configs.RATE_LIMIT_MESSAGES,
            window=configs.RATE_LIMIT_WINDOW_SEC,
        ),
        admin_http_limiter=admin_http_limiter,
    )
