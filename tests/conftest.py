"""Shared test fixtures for all test groups."""

import pytest
from fakeredis import FakeAsyncRedis

from interview_core.core.clock import FakeClock
from interview_core.core.config import Settings
from interview_core.db.session_store import RedisSessionStore
from interview_core.domain.session import QuestionMeta, SessionConfig
from interview_core.services.evaluator_fake import EvaluatorFake

SOLUTION_CODE = (
    "class Solution:\n"
    "    def solve(self, nums):\n"
    "        seen = set()\n"
    "        for n in nums:\n"
    "            if n in seen:\n"
    "                return True\n"
    "            seen.add(n)\n"
    "        return False\n"
)


@pytest.fixture
def settings():
    """Settings tuned for fast, deterministic tests."""
    return Settings(
        snapshot_interval_seconds=120.0,
        snapshot_cap=20,
        finalize_grace_seconds=0.05,
        persistence_max_attempts=3,
        persistence_retry_wait_seconds=0.0,
        evaluator_max_attempts=3,
        autosave_quiet_seconds=0.05,
        shutdown_finalize_timeout_seconds=1.0,
        calendar_timezone="UTC",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def fake_redis():
    """Provide fakeredis instance for tests."""
    redis = FakeAsyncRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture
def session_store(fake_redis):
    return RedisSessionStore(fake_redis)


@pytest.fixture
def evaluator():
    """Fresh EvaluatorFake with the correct scenario (default)."""
    return EvaluatorFake(scenario="correct")


@pytest.fixture
def evaluator_failing():
    """EvaluatorFake with the failure scenario."""
    return EvaluatorFake(scenario="failure")


@pytest.fixture
def evaluator_slow():
    """EvaluatorFake with the slow scenario; call release() to finish."""
    return EvaluatorFake(scenario="slow")


def make_config(question_count: int = 2, time_limit_seconds: int = 600, user_id: str = "user-001") -> SessionConfig:
    return SessionConfig(
        user_id=user_id,
        time_limit_seconds=time_limit_seconds,
        questions=[
            QuestionMeta(id=f"q{i + 1}", title=f"Question {i + 1}", difficulty="easy", pattern_name="hashing")
            for i in range(question_count)
        ],
    )


@pytest.fixture
def solution_code():
    return SOLUTION_CODE


@pytest.fixture
def make_session_config():
    """Factory for SessionConfig with q1..qN."""
    return make_config
