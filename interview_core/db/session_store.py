"""Session persistence: session records and per-question result records.

Keys come from KeySpace.session() and KeySpace.results() (see db.redis).

Result writes are upserts keyed by (session_id, question_id), so retrying a
write after a partial failure is safe.
"""

import json
from datetime import datetime
from typing import Protocol

from redis.asyncio import Redis

from interview_core.db.redis import KeySpace, key_space
from interview_core.domain.session import QuestionResultRecord, Session


class SessionStore(Protocol):
    async def create_session(self, session: Session) -> None: ...

    async def upsert_result(self, record: QuestionResultRecord) -> None: ...

    async def mark_session_ended(self, session_id: str, total_score: int, ended_at: datetime) -> None: ...

    async def get_session(self, session_id: str) -> dict | None: ...

    async def get_results(self, session_id: str) -> list[QuestionResultRecord]: ...


class RedisSessionStore:
    def __init__(self, redis: Redis, keys: KeySpace | None = None):
        self.redis = redis
        self.keys = keys or key_space()

    async def create_session(self, session: Session) -> None:
        await self.redis.hset(
            self.keys.session(session.id),
            mapping={
                "user_id": session.user_id,
                "status": session.status.value,
                "session_type": session.session_type.value,
                "time_limit_seconds": session.time_limit_seconds,
                "question_ids": json.dumps(session.question_ids),
                "created_at": session.created_at.isoformat(),
            },
        )

    async def upsert_result(self, record: QuestionResultRecord) -> None:
        await self.redis.hset(
            self.keys.results(record.session_id),
            record.question_id,
            record.model_dump_json(),
        )

    async def mark_session_ended(self, session_id: str, total_score: int, ended_at: datetime) -> None:
        await self.redis.hset(
            self.keys.session(session_id),
            mapping={
                "status": "ended",
                "total_score": total_score,
                "completed_at": ended_at.isoformat(),
            },
        )

    async def get_session(self, session_id: str) -> dict | None:
        data = await self.redis.hgetall(self.keys.session(session_id))
        if not data:
            return None
        data["question_ids"] = json.loads(data["question_ids"])
        return data

    async def get_results(self, session_id: str) -> list[QuestionResultRecord]:
        raw = await self.redis.hgetall(self.keys.results(session_id))
        return [QuestionResultRecord.model_validate_json(value) for value in raw.values()]
