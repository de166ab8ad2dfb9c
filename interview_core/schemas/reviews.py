"""Pydantic schemas for practice solves and spaced-repetition reviews."""

from datetime import datetime

from pydantic import BaseModel, Field

from interview_core.db.progress_store import ProgressRecord


class RecordSolveRequest(BaseModel):
    question_id: str
    base_reward: int = Field(..., ge=0)
    hints_used: int = Field(default=0, ge=0)
    approach_viewed: bool = False
    brute_force_viewed: bool = False
    solution_viewed: bool = False


class SolveResponse(BaseModel):
    question_id: str
    first_solve: bool
    xp_earned: int
    multiplier: float
    next_review_at: datetime
    interval_days: int
    ease_factor: float
    total_xp: int
    current_streak: int
    longest_streak: int


class ReviewRequest(BaseModel):
    quality: int = Field(..., ge=0, le=5, description="Recall quality, 0 (blackout) to 5 (perfect)")


class ReviewScheduleResponse(BaseModel):
    question_id: str
    ease_factor: float
    interval_days: int
    review_count: int
    next_review_at: datetime


class ReviewQueueResponse(BaseModel):
    """Lists default to empty arrays, never null."""

    due: list[ProgressRecord] = Field(default_factory=list)
    upcoming: list[ProgressRecord] = Field(default_factory=list)