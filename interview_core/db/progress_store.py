"""Practice progress persistence: per-question progress and per-user profile.

Keys come from KeySpace.progress(), .profile() and .reviews() (see db.redis);
the reviews zset scores question ids by next_review_at in epoch seconds.
"""

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel
from redis.asyncio import Redis

from interview_core.db.redis import KeySpace, key_space


class ProgressRecord(BaseModel):
    user_id: str
    question_id: str
    is_solved: bool = False
    solved_at: datetime | None = None
    xp_earned: int = 0
    hints_used: int = 0
    approach_viewed: bool = False
    brute_force_viewed: bool = False
    solution_viewed: bool = False
    ease_factor: float | None = None
    interval_days: int | None = None
    review_count: int = 0
    next_review_at: datetime | None = None


class UserProfile(BaseModel):
    user_id: str
    total_xp: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_solved_at: datetime | None = None


class ProgressStore(Protocol):
    async def get_progress(self, user_id: str, question_id: str) -> ProgressRecord | None: ...

    async def save_progress(self, record: ProgressRecord) -> None: ...

    async def get_profile(self, user_id: str) -> UserProfile: ...

    async def save_profile(self, profile: UserProfile) -> None: ...

    async def due_question_ids(self, user_id: str, until: datetime, limit: int) -> list[str]: ...

    async def upcoming_question_ids(self, user_id: str, after: datetime, limit: int) -> list[str]: ...


class RedisProgressStore:
    def __init__(self, redis: Redis, keys: KeySpace | None = None):
        self.redis = redis
        self.keys = keys or key_space()

    async def get_progress(self, user_id: str, question_id: str) -> ProgressRecord | None:
        raw = await self.redis.get(self.keys.progress(user_id, question_id))
        return ProgressRecord.model_validate_json(raw) if raw else None

    async def save_progress(self, record: ProgressRecord) -> None:
        reviews_key = self.keys.reviews(record.user_id)
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(
                self.keys.progress(record.user_id, record.question_id),
                record.model_dump_json(),
            )
            if record.next_review_at is not None:
                pipe.zadd(reviews_key, {record.question_id: record.next_review_at.timestamp()})
            else:
                pipe.zrem(reviews_key, record.question_id)
            await pipe.execute()

    async def get_profile(self, user_id: str) -> UserProfile:
        data = await self.redis.hgetall(self.keys.profile(user_id))
        if not data:
            return UserProfile(user_id=user_id)
        return UserProfile(
            user_id=user_id,
            total_xp=int(data.get("total_xp", 0)),
            current_streak=int(data.get("current_streak", 0)),
            longest_streak=int(data.get("longest_streak", 0)),
            last_solved_at=datetime.fromisoformat(data["last_solved_at"]) if data.get("last_solved_at") else None,
        )

    async def save_profile(self, profile: UserProfile) -> None:
        mapping = {
            "total_xp": profile.total_xp,
            "current_streak": profile.current_streak,
            "longest_streak": profile.longest_streak,
        }
        if profile.last_solved_at is not None:
            mapping["last_solved_at"] = profile.last_solved_at.isoformat()
        await self.redis.hset(self.keys.profile(profile.user_id), mapping=mapping)

    async def due_question_ids(self, user_id: str, until: datetime, limit: int) -> list[str]:
        return await self.redis.zrangebyscore(
            self.keys.reviews(user_id), "-inf", until.timestamp(), start=0, num=limit
        )

    async def upcoming_question_ids(self, user_id: str, after: datetime, limit: int) -> list[str]:
        return await self.redis.zrangebyscore(
            self.keys.reviews(user_id), f"({after.timestamp()}", "+inf", start=0, num=limit
        )
