"""Free-practice editor drafts.

One JSON string per (user, question) under KeySpace.draft() (see db.redis).
"""

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel
from redis.asyncio import Redis

from interview_core.db.redis import KeySpace, key_space


class Draft(BaseModel):
    user_id: str
    question_id: str
    code: str
    language: str
    time_spent: int = 0
    saved_at: datetime


class DraftStore(Protocol):
    async def save_draft(self, draft: Draft) -> None: ...

    async def get_draft(self, user_id: str, question_id: str) -> Draft | None: ...


class RedisDraftStore:
    def __init__(self, redis: Redis, keys: KeySpace | None = None):
        self.redis = redis
        self.keys = keys or key_space()

    async def save_draft(self, draft: Draft) -> None:
        await self.redis.set(
            self.keys.draft(draft.user_id, draft.question_id),
            draft.model_dump_json(),
        )

    async def get_draft(self, user_id: str, question_id: str) -> Draft | None:
        raw = await self.redis.get(self.keys.draft(user_id, question_id))
        return Draft.model_validate_json(raw) if raw else None
