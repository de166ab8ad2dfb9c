"""Pydantic schemas for the timed session API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from interview_core.domain.evaluation import EvaluationResult
from interview_core.domain.session import QuestionMeta, QuestionResultRecord, SessionType
from interview_core.domain.templates import DEFAULT_LANGUAGE
from interview_core.session.controller import SessionController
from interview_core.session.finalizer import FinalizeOutcome


class StartSessionRequest(BaseModel):
    time_limit_seconds: int = Field(..., gt=0)
    questions: list[QuestionMeta] = Field(..., min_length=1)
    session_type: SessionType = SessionType.QUICK
    language: str = DEFAULT_LANGUAGE


class QuestionView(BaseModel):
    question_id: str
    status: str
    flagged: bool
    hints_used: int
    run_count: int
    elapsed_seconds: int
    selected_language: str
    current_code: str
    submission_count: int
    last_error: str | None = None
    evaluation: EvaluationResult | None = None


class SessionView(BaseModel):
    session_id: str
    user_id: str
    status: str
    session_type: str
    time_limit_seconds: int
    remaining_seconds: int
    current_index: int
    current_question_id: str
    total_score: int | None = None
    ended_at: datetime | None = None
    questions: list[QuestionView] = Field(default_factory=list)

    @classmethod
    def from_controller(cls, controller: SessionController) -> "SessionView":
        session = controller.session
        questions = []
        for qid in session.question_ids:
            state = controller.states[qid]
            questions.append(
                QuestionView(
                    question_id=qid,
                    status=state.status.value,
                    flagged=state.flagged,
                    hints_used=state.hints_used,
                    run_count=state.run_count,
                    elapsed_seconds=round(controller.live_elapsed(qid)),
                    selected_language=state.selected_language,
                    current_code=state.current_code,
                    submission_count=state.submission_count,
                    last_error=state.last_error,
                    evaluation=state.evaluation_result,
                )
            )
        return cls(
            session_id=session.id,
            user_id=session.user_id,
            status=session.status.value,
            session_type=session.session_type.value,
            time_limit_seconds=session.time_limit_seconds,
            remaining_seconds=session.remaining_seconds,
            current_index=controller.current_index,
            current_question_id=controller.current_question_id,
            total_score=session.total_score,
            ended_at=session.ended_at,
            questions=questions,
        )


class NavigateRequest(BaseModel):
    target_index: int


class ActionRequest(BaseModel):
    """One user action on the active question.

    ``code`` is required for action "code", ``language`` for action "language".
    """

    action: Literal["flag", "hint", "skip", "run", "paste", "code", "language"]
    code: str | None = None
    language: str | None = None


class ActionResponse(BaseModel):
    applied: bool | int | None = None
    session: SessionView


class SubmitRequest(BaseModel):
    question_id: str
    code: str
    language: str = DEFAULT_LANGUAGE


class SubmitResponse(BaseModel):
    question_id: str
    status: str
    evaluation: EvaluationResult


class EndSessionRequest(BaseModel):
    confirmed: bool = False


class FinalizeResponse(BaseModel):
    session_id: str
    total_score: int
    ended_at: datetime
    results: list[QuestionResultRecord]

    @classmethod
    def from_outcome(cls, outcome: FinalizeOutcome) -> "FinalizeResponse":
        return cls(
            session_id=outcome.session_id,
            total_score=outcome.total_score,
            ended_at=outcome.ended_at,
            results=outcome.results,
        )


class SessionResultsResponse(BaseModel):
    """Persisted outcome of an ended session, read back from the store."""

    session_id: str
    session_type: SessionType
    time_limit_seconds: int
    created_at: datetime
    total_score: int
    ended_at: datetime
    results: list[QuestionResultRecord]

    @classmethod
    def from_stored(
        cls, session_id: str, stored: dict, records: list[QuestionResultRecord]
    ) -> "SessionResultsResponse":
        by_question = {r.question_id: r for r in records}
        return cls(
            session_id=session_id,
            session_type=stored["session_type"],
            time_limit_seconds=int(stored["time_limit_seconds"]),
            created_at=datetime.fromisoformat(stored["created_at"]),
            total_score=int(stored["total_score"]),
            ended_at=datetime.fromisoformat(stored["completed_at"]),
            results=[by_question[qid] for qid in stored["question_ids"] if qid in by_question],
        )
