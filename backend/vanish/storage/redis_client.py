# backend/vanish/storage/redis_client.py
from __future__ import annotations

import logging

import redis

from vanish.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings | None = None) -> redis.Redis:
    settings = settings or default_settings
    client = redis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
        health_check_interval=30,
    )
    return client


def ping(client: redis.Redis) -> bool:
    try:
        return bool(client.ping())
    except redis.exceptions.RedisError as e:
        logger.error("Redis ping failed: %s", e)
        return False
