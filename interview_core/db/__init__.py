"""Persistence package: Redis pool and the session, progress and draft stores."""

from interview_core.db.draft_store import Draft, RedisDraftStore
from interview_core.db.progress_store import ProgressRecord, RedisProgressStore, UserProfile
from interview_core.db.redis import KeySpace, close_redis, get_redis, init_redis, key_space
from interview_core.db.session_store import RedisSessionStore

__all__ = [
    "Draft",
    "KeySpace",
    "ProgressRecord",
    "RedisDraftStore",
    "RedisProgressStore",
    "RedisSessionStore",
    "UserProfile",
    "close_redis",
    "get_redis",
    "init_redis",
    "key_space",
]
