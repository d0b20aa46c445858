from redis import Redis

import support_chat.config.config as configs


def create_redis_client() -> Redis:
    return Redis(host=configs.REDIS_HOST, port=configs.REDIS_PORT, decode_responses=True)
