"""Tests for ReviewService: rewards, streaks and the review queue."""

from datetime import timedelta

import pytest

from interview_core.db.progress_store import RedisProgressStore
from interview_core.domain.scoring import Assistance
from interview_core.services.review_service import ReviewService

pytestmark = pytest.mark.unit


@pytest.fixture
def store(fake_redis):
    return RedisProgressStore(fake_redis)


@pytest.fixture
def service(store, settings, clock):
    return ReviewService(store, settings=settings, clock=clock)


async def test_first_solve_rewards_and_schedules(service, clock):
    outcome = await service.record_solve("u1", "q1", base_reward=20)

    assert outcome.first_solve is True
    assert outcome.xp_earned == 20
    assert outcome.schedule.next_review_at == clock.now() + timedelta(days=1)
    assert outcome.profile.total_xp == 20
    assert outcome.profile.current_streak == 1


async def test_assistance_reduces_reward(service):
    outcome = await service.record_solve("u1", "q1", base_reward=20, assistance=Assistance(brute_force_viewed=True))

    assert outcome.multiplier == 0.5
    assert outcome.xp_earned == 10


async def test_recorded_assistance_is_sticky(service):
    await service.record_assistance("u1", "q1", solution_viewed=True)

    outcome = await service.record_solve("u1", "q1", base_reward=20)

    assert outcome.multiplier == 0.25
    assert outcome.xp_earned == 5


async def test_repeat_solve_earns_nothing_and_keeps_schedule(service, clock):
    first = await service.record_solve("u1", "q1", base_reward=20)
    clock.advance(3600)

    again = await service.record_solve("u1", "q1", base_reward=20)

    assert again.first_solve is False
    assert again.xp_earned == 0
    assert again.schedule.next_review_at == first.schedule.next_review_at
    assert again.profile.total_xp == 20


async def test_streak_across_days(service, clock):
    await service.record_solve("u1", "q1", base_reward=10)
    clock.advance(86400)
    outcome = await service.record_solve("u1", "q2", base_reward=10)
    assert outcome.profile.current_streak == 2

    clock.advance(3 * 86400)
    outcome = await service.record_solve("u1", "q3", base_reward=10)
    assert outcome.profile.current_streak == 1
    assert outcome.profile.longest_streak == 2


async def test_review_updates_schedule(service, store, clock):
    await service.record_solve("u1", "q1", base_reward=10)
    clock.advance(86400)

    schedule = await service.record_review("u1", "q1", quality=5)

    assert schedule.review_count == 1
    assert schedule.interval_days == 1
    assert schedule.ease_factor == pytest.approx(2.6)
    record = await store.get_progress("u1", "q1")
    assert record.next_review_at == clock.now() + timedelta(days=1)


async def test_review_of_unsolved_question_fails(service):
    with pytest.raises(LookupError):
        await service.record_review("u1", "q1", quality=4)


async def test_due_and_upcoming_reviews(service, clock):
    await service.record_solve("u1", "q1", base_reward=10)
    clock.advance(3600)
    await service.record_solve("u1", "q2", base_reward=10)

    assert await service.due_reviews("u1") == []

    clock.advance(86400 - 1800)  # q1 due, q2 not yet
    due = await service.due_reviews("u1")
    upcoming = await service.upcoming_reviews("u1")

    assert [r.question_id for r in due] == ["q1"]
    assert [r.question_id for r in upcoming] == ["q2"]
