"""Redis pool and key namespace for the session engine.

Every key the stores write lives under ``Settings.redis_key_prefix`` so the
engine can share a Redis instance with other services:

  {prefix}:session:{session_id}                  hash    session fields
  {prefix}:session:{session_id}:results          hash    question_id -> result JSON
  {prefix}:progress:{user_id}:{question_id}      string  practice progress JSON
  {prefix}:profile:{user_id}                     hash    xp / streak fields
  {prefix}:reviews:{user_id}                     zset    question_id by next review
  {prefix}:draft:{user_id}:{question_id}         string  editor draft JSON
"""

import redis.asyncio as redis
import structlog

from interview_core.core.config import get_settings

logger = structlog.get_logger(__name__)

_redis: redis.Redis | None = None


class KeySpace:
    """Builds namespaced keys for session-engine data."""

    def __init__(self, prefix: str = "interview") -> None:
        self.prefix = prefix

    def session(self, session_id: str) -> str:
        return f"{self.prefix}:session:{session_id}"

    def results(self, session_id: str) -> str:
        return f"{self.prefix}:session:{session_id}:results"

    def progress(self, user_id: str, question_id: str) -> str:
        return f"{self.prefix}:progress:{user_id}:{question_id}"

    def profile(self, user_id: str) -> str:
        return f"{self.prefix}:profile:{user_id}"

    def reviews(self, user_id: str) -> str:
        return f"{self.prefix}:reviews:{user_id}"

    def draft(self, user_id: str, question_id: str) -> str:
        return f"{self.prefix}:draft:{user_id}:{question_id}"


def key_space() -> KeySpace:
    """KeySpace for the configured prefix."""
    return KeySpace(get_settings().redis_key_prefix)


async def init_redis(url: str | None = None) -> None:
    """Open the shared pool sized for timer, API and autosave traffic, then ping."""
    global _redis

    if _redis is not None:
        return

    settings = get_settings()
    _redis = redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout_seconds,
        health_check_interval=settings.redis_health_check_interval_seconds,
    )
    await _redis.ping()
    logger.info(
        "redis_pool_ready",
        key_prefix=settings.redis_key_prefix,
        max_connections=settings.redis_max_connections,
    )


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Shared client; FastAPI dependency.

    Raises RuntimeError if init_redis() has not been called.
    """
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis
