"""Shared Redis connection (used when TRANSLATION_STORE=redis)."""

import os
import logging

import redis

logger = logging.getLogger(__name__)

_client = None


def get_redis(url=None):
    """Connected client for REDIS_URL, or None if it is unset or unreachable.

    A failed attempt is not remembered, so the next call tries again.
    """
    global _client

    if _client is not None:
        return _client

    url = url or os.environ.get('REDIS_URL')
    if not url:
        logger.warning("REDIS_URL not set, translations will be kept in memory only")
        return None

    client = redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
    try:
        client.ping()
    except redis.RedisError as e:
        logger.error(f"Redis at {url} unreachable: {e}")
        return None

    logger.info("Connected to Redis for the shared translation cache")
    _client = client
    return _client
