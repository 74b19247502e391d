from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


def create_redis_client(url: str | None) -> Any | None:
    if not url:
        return None
    try:
        import redis.asyncio as redis

        return redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            health_check_interval=30,
        )
    except Exception:
        logger.warning("redis_client_unavailable", extra={"component": "usm_kit"}, exc_info=True)
        return None
