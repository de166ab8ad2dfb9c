"""Session records and the per-question result record produced at finalize."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from interview_core.domain.evaluation import EvaluationResult
from interview_core.domain.question_state import QuestionState
from interview_core.domain.templates import DEFAULT_LANGUAGE


class SessionStatus(StrEnum):
    ACTIVE = "active"
    FINALIZING = "finalizing"
    ENDED = "ended"


class SessionType(StrEnum):
    QUICK = "quick"
    FULL = "full"
    PATTERN = "pattern"
    COMPANY = "company"


class QuestionMeta(BaseModel):
    """Question metadata the engine needs; content lives elsewhere."""

    id: str
    title: str
    difficulty: str = "medium"
    pattern_name: str | None = None
    expected_time: int | None = None  # seconds


class SessionConfig(BaseModel):
    user_id: str
    time_limit_seconds: int
    questions: list[QuestionMeta]
    session_type: SessionType = SessionType.QUICK
    language: str = DEFAULT_LANGUAGE


@dataclass
class Session:
    id: str
    user_id: str
    time_limit_seconds: int
    question_ids: list[str]
    created_at: datetime
    session_type: SessionType = SessionType.QUICK
    status: SessionStatus = SessionStatus.ACTIVE
    remaining_seconds: int = 0
    total_score: int | None = None
    ended_at: datetime | None = None
    persisted_question_ids: set[str] = field(default_factory=set)


class SnapshotRecord(BaseModel):
    captured_at: datetime
    code: str


class QuestionResultRecord(BaseModel):
    """Everything downstream needs about one question once a session ends."""

    session_id: str
    question_id: str
    status: str
    time_spent: int
    is_solved: bool
    hints_used: int
    skipped: bool
    flagged: bool
    submitted_code: str | None = None
    selected_language: str
    first_keystroke_at: datetime | None = None
    snapshots: list[SnapshotRecord] = Field(default_factory=list)
    evaluation_result: EvaluationResult | None = None
    run_count: int = 0
    paste_detected: bool = False
    submission_count: int = 0
    submitted_at: datetime | None = None

    @classmethod
    def from_state(cls, session_id: str, state: QuestionState, submitted_at: datetime) -> "QuestionResultRecord":
        return cls(
            session_id=session_id,
            question_id=state.question_id,
            status=state.status.value,
            time_spent=round(state.elapsed_seconds),
            is_solved=state.is_solved,
            hints_used=state.hints_used,
            skipped=state.skipped,
            flagged=state.flagged,
            submitted_code=state.submitted_code if state.submitted_code is not None else state.current_code,
            selected_language=state.submitted_language or state.selected_language,
            first_keystroke_at=state.first_keystroke_at,
            snapshots=[SnapshotRecord(captured_at=s.captured_at, code=s.code) for s in state.snapshots],
            evaluation_result=state.evaluation_result,
            run_count=state.run_count,
            paste_detected=state.paste_detected,
            submission_count=state.submission_count,
            submitted_at=submitted_at,
        )
