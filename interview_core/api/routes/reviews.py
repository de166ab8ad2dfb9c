"""Practice solve and spaced-repetition review API routes."""

from fastapi import APIRouter, Depends, HTTPException, Query

from interview_core.api.deps import CurrentUser, get_review_service, require_user
from interview_core.domain.scoring import Assistance
from interview_core.schemas.reviews import (
    RecordSolveRequest,
    ReviewQueueResponse,
    ReviewRequest,
    ReviewScheduleResponse,
    SolveResponse,
)
from interview_core.services.review_service import ReviewService

router = APIRouter()


@router.post("/solves", response_model=SolveResponse)
async def record_solve(
    request: RecordSolveRequest,
    user: CurrentUser = Depends(require_user),
    service: ReviewService = Depends(get_review_service),
):
    """Record a correct practice solve: reward, streak and review schedule."""
    outcome = await service.record_solve(
        user.user_id,
        request.question_id,
        request.base_reward,
        Assistance(
            hints_used=request.hints_used,
            approach_viewed=request.approach_viewed,
            brute_force_viewed=request.brute_force_viewed,
            solution_viewed=request.solution_viewed,
        ),
    )
    return SolveResponse(
        question_id=outcome.question_id,
        first_solve=outcome.first_solve,
        xp_earned=outcome.xp_earned,
        multiplier=outcome.multiplier,
        next_review_at=outcome.schedule.next_review_at,
        interval_days=outcome.schedule.interval_days,
        ease_factor=outcome.schedule.ease_factor,
        total_xp=outcome.profile.total_xp,
        current_streak=outcome.profile.current_streak,
        longest_streak=outcome.profile.longest_streak,
    )


@router.post("/{question_id}/review", response_model=ReviewScheduleResponse)
async def record_review(
    question_id: str,
    request: ReviewRequest,
    user: CurrentUser = Depends(require_user),
    service: ReviewService = Depends(get_review_service),
):
    try:
        schedule = await service.record_review(user.user_id, question_id, request.quality)
    except LookupError:
        raise HTTPException(status_code=404, detail="No review scheduled for this question")
    return ReviewScheduleResponse(
        question_id=question_id,
        ease_factor=schedule.ease_factor,
        interval_days=schedule.interval_days,
        review_count=schedule.review_count,
        next_review_at=schedule.next_review_at,
    )


@router.get("/due", response_model=ReviewQueueResponse)
async def review_queue(
    limit: int = Query(default=10, ge=1, le=50),
    user: CurrentUser = Depends(require_user),
    service: ReviewService = Depends(get_review_service),
):
    """Reviews due now, plus the next few coming up."""
    due = await service.due_reviews(user.user_id, limit=limit)
    upcoming = await service.upcoming_reviews(user.user_id)
    return ReviewQueueResponse(due=due, upcoming=upcoming)
