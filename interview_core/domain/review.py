"""Spaced-repetition schedule and streak arithmetic.

Pure functions; callers pass every timestamp in. Calendar days are taken in
a single configured IANA time zone so that "yesterday" means the same thing
for streaks and for review dates regardless of where the server runs.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
INITIAL_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 3
PASSING_QUALITY = 3  # quality 0-5; 3+ is a correct recall


@dataclass
class ReviewSchedule:
    ease_factor: float
    interval_days: int
    review_count: int
    next_review_at: datetime


def initial_schedule(solved_at: datetime) -> ReviewSchedule:
    """Schedule created on the first correct solve of a question."""
    return ReviewSchedule(
        ease_factor=INITIAL_EASE_FACTOR,
        interval_days=INITIAL_INTERVAL_DAYS,
        review_count=0,
        next_review_at=solved_at + timedelta(days=INITIAL_INTERVAL_DAYS),
    )


def apply_review(schedule: ReviewSchedule, quality: int, reviewed_at: datetime) -> ReviewSchedule:
    """SM-2 style update after a review with recall quality 0-5.

    Correct recall: interval 1, then 3, then interval * ease. Ease moves by
    0.1 - (5 - q) * (0.08 + (5 - q) * 0.02).
    Failed recall: interval back to 1, ease drops by 0.2.
    Ease never drops below MIN_EASE_FACTOR; interval never below one day.

    Raises:
        ValueError: If quality is outside 0-5
    """
    if not 0 <= quality <= 5:
        raise ValueError(f"Invalid quality: {quality}. Must be 0-5.")

    if quality >= PASSING_QUALITY:
        if schedule.review_count == 0:
            interval = INITIAL_INTERVAL_DAYS
        elif schedule.review_count == 1:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = round(schedule.interval_days * schedule.ease_factor)
        miss = 5 - quality
        ease = schedule.ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    else:
        interval = INITIAL_INTERVAL_DAYS
        ease = schedule.ease_factor - 0.2

    interval = max(INITIAL_INTERVAL_DAYS, interval)
    ease = max(MIN_EASE_FACTOR, ease)

    return ReviewSchedule(
        ease_factor=ease,
        interval_days=interval,
        review_count=schedule.review_count + 1,
        next_review_at=reviewed_at + timedelta(days=interval),
    )


def calendar_day(moment: datetime, tz: ZoneInfo) -> date:
    """Local calendar date of an aware timestamp in tz."""
    if moment.tzinfo is None:
        raise ValueError("calendar_day requires an aware datetime")
    return moment.astimezone(tz).date()


def next_streak(current_streak: int, last_solved_at: datetime | None, solved_at: datetime, tz: ZoneInfo) -> int:
    """Streak after a solve at solved_at.

    Yesterday -> +1, today -> unchanged, anything else (or no prior solve) -> 1.
    """
    if last_solved_at is None:
        return 1
    gap = (calendar_day(solved_at, tz) - calendar_day(last_solved_at, tz)).days
    if gap <= 0:  # same day, or an out-of-order timestamp
        return current_streak
    if gap == 1:
        return current_streak + 1
    return 1
