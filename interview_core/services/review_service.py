"""ReviewService: reward, streak and spaced-repetition bookkeeping for solves
made outside a timed session.

record_solve():
  - reward = base reward x multiplier for the most generous assistance viewed
  - first correct solve creates the review schedule (ease 2.5, interval 1 day)
  - streak: +1 if the last solve was yesterday, unchanged if today, else 1

record_review() applies the SM-2 style update when a scheduled review is done.
Calendar days are evaluated in Settings.calendar_timezone.
"""

from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

import structlog

from interview_core.core.clock import Clock, SystemClock
from interview_core.core.config import Settings, get_settings
from interview_core.db.progress_store import ProgressRecord, ProgressStore, UserProfile
from interview_core.domain.review import ReviewSchedule, apply_review, initial_schedule, next_streak
from interview_core.domain.scoring import Assistance, compute_reward, reward_multiplier

logger = structlog.get_logger(__name__)


@dataclass
class SolveOutcome:
    question_id: str
    first_solve: bool
    xp_earned: int
    multiplier: float
    schedule: ReviewSchedule
    profile: UserProfile


def _schedule_of(record: ProgressRecord) -> ReviewSchedule:
    return ReviewSchedule(
        ease_factor=record.ease_factor,
        interval_days=record.interval_days,
        review_count=record.review_count,
        next_review_at=record.next_review_at,
    )


class ReviewService:
    def __init__(self, store: ProgressStore, settings: Settings | None = None, clock: Clock | None = None):
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock or SystemClock()
        self._tz = ZoneInfo(self._settings.calendar_timezone)

    async def record_assistance(
        self,
        user_id: str,
        question_id: str,
        *,
        hints_used: int = 0,
        approach_viewed: bool = False,
        brute_force_viewed: bool = False,
        solution_viewed: bool = False,
    ) -> ProgressRecord:
        """Record assistance viewed on a question. Viewed flags never reset."""
        record = await self._store.get_progress(user_id, question_id) or ProgressRecord(
            user_id=user_id, question_id=question_id
        )
        record.hints_used = max(record.hints_used, hints_used)
        record.approach_viewed = record.approach_viewed or approach_viewed
        record.brute_force_viewed = record.brute_force_viewed or brute_force_viewed
        record.solution_viewed = record.solution_viewed or solution_viewed
        await self._store.save_progress(record)
        return record

    async def record_solve(
        self,
        user_id: str,
        question_id: str,
        base_reward: int,
        assistance: Assistance | None = None,
        solved_at: datetime | None = None,
    ) -> SolveOutcome:
        """Mark a question solved and update reward, schedule and streak.

        A repeat solve of an already-solved question earns no reward and keeps
        its schedule; it still counts toward the streak.
        """
        solved_at = solved_at or self._clock.now()
        log = logger.bind(user_id=user_id, question_id=question_id)

        record = await self._store.get_progress(user_id, question_id) or ProgressRecord(
            user_id=user_id, question_id=question_id
        )
        assistance = assistance or Assistance()
        merged = Assistance(
            hints_used=max(record.hints_used, assistance.hints_used),
            approach_viewed=record.approach_viewed or assistance.approach_viewed,
            brute_force_viewed=record.brute_force_viewed or assistance.brute_force_viewed,
            solution_viewed=record.solution_viewed or assistance.solution_viewed,
        )
        first_solve = not record.is_solved
        multiplier = reward_multiplier(merged)
        xp_earned = compute_reward(base_reward, merged) if first_solve else 0

        if first_solve:
            schedule = initial_schedule(solved_at)
            record.is_solved = True
            record.solved_at = solved_at
            record.xp_earned = xp_earned
            record.ease_factor = schedule.ease_factor
            record.interval_days = schedule.interval_days
            record.review_count = schedule.review_count
            record.next_review_at = schedule.next_review_at
        else:
            schedule = _schedule_of(record)
        record.hints_used = merged.hints_used
        record.approach_viewed = merged.approach_viewed
        record.brute_force_viewed = merged.brute_force_viewed
        record.solution_viewed = merged.solution_viewed
        await self._store.save_progress(record)

        profile = await self._store.get_profile(user_id)
        profile.current_streak = next_streak(profile.current_streak, profile.last_solved_at, solved_at, self._tz)
        profile.longest_streak = max(profile.longest_streak, profile.current_streak)
        profile.total_xp += xp_earned
        profile.last_solved_at = solved_at
        await self._store.save_profile(profile)

        log.info(
            "question_solved",
            first_solve=first_solve,
            xp_earned=xp_earned,
            multiplier=multiplier,
            streak=profile.current_streak,
        )
        return SolveOutcome(
            question_id=question_id,
            first_solve=first_solve,
            xp_earned=xp_earned,
            multiplier=multiplier,
            schedule=schedule,
            profile=profile,
        )

    async def record_review(
        self,
        user_id: str,
        question_id: str,
        quality: int,
        reviewed_at: datetime | None = None,
    ) -> ReviewSchedule:
        """Apply a review with recall quality 0-5 to a solved question.

        Raises:
            LookupError: The question has no review schedule yet
            ValueError: quality outside 0-5
        """
        reviewed_at = reviewed_at or self._clock.now()
        record = await self._store.get_progress(user_id, question_id)
        if record is None or not record.is_solved or record.next_review_at is None:
            raise LookupError(f"No review schedule for question '{question_id}'")

        schedule = apply_review(_schedule_of(record), quality, reviewed_at)
        record.ease_factor = schedule.ease_factor
        record.interval_days = schedule.interval_days
        record.review_count = schedule.review_count
        record.next_review_at = schedule.next_review_at
        await self._store.save_progress(record)

        logger.info(
            "review_recorded",
            user_id=user_id,
            question_id=question_id,
            quality=quality,
            interval_days=schedule.interval_days,
            ease_factor=round(schedule.ease_factor, 3),
        )
        return schedule

    async def due_reviews(self, user_id: str, now: datetime | None = None, limit: int = 10) -> list[ProgressRecord]:
        """Solved questions whose review is due, soonest first."""
        now = now or self._clock.now()
        ids = await self._store.due_question_ids(user_id, now, limit)
        return await self._load(user_id, ids)

    async def upcoming_reviews(self, user_id: str, now: datetime | None = None, limit: int = 5) -> list[ProgressRecord]:
        now = now or self._clock.now()
        ids = await self._store.upcoming_question_ids(user_id, now, limit)
        return await self._load(user_id, ids)

    async def _load(self, user_id: str, question_ids: list[str]) -> list[ProgressRecord]:
        records = []
        for question_id in question_ids:
            record = await self._store.get_progress(user_id, question_id)
            if record is not None:
                records.append(record)
        return records
