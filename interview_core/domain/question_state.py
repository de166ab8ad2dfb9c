"""Per-question progress inside a timed session.

The status is an explicit state machine; ``is_solved`` and ``skipped`` are
read off it, so combinations such as skipped-and-solved cannot exist.
``flagged`` is independent of the status.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

import structlog

from interview_core.domain.evaluation import EvaluationResult
from interview_core.domain.templates import DEFAULT_LANGUAGE, get_template, is_template

logger = structlog.get_logger(__name__)


class QuestionStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PENDING_EVALUATION = "pending_evaluation"
    SOLVED_CORRECT = "solved_correct"
    SOLVED_INCORRECT_REVIEWABLE = "solved_incorrect_reviewable"
    SKIPPED = "skipped"


TRANSITIONS: dict[QuestionStatus, list[QuestionStatus]] = {
    QuestionStatus.NOT_STARTED: [
        QuestionStatus.IN_PROGRESS,
        QuestionStatus.SKIPPED,
        QuestionStatus.PENDING_EVALUATION,
    ],
    QuestionStatus.IN_PROGRESS: [QuestionStatus.PENDING_EVALUATION, QuestionStatus.SKIPPED],
    QuestionStatus.PENDING_EVALUATION: [
        QuestionStatus.SOLVED_CORRECT,
        QuestionStatus.SOLVED_INCORRECT_REVIEWABLE,
        QuestionStatus.IN_PROGRESS,  # evaluation failed or abandoned
    ],
    QuestionStatus.SOLVED_INCORRECT_REVIEWABLE: [QuestionStatus.PENDING_EVALUATION],
    QuestionStatus.SKIPPED: [QuestionStatus.IN_PROGRESS],  # re-visited
    QuestionStatus.SOLVED_CORRECT: [],  # Terminal state
}


@dataclass(frozen=True)
class Snapshot:
    captured_at: datetime
    code: str


@dataclass
class QuestionState:
    """Mutable record of one question's progress. Owned by a SessionController."""

    question_id: str
    current_code: str
    selected_language: str = DEFAULT_LANGUAGE
    status: QuestionStatus = QuestionStatus.NOT_STARTED
    flagged: bool = False
    elapsed_seconds: float = 0.0
    hints_used: int = 0
    run_count: int = 0
    paste_detected: bool = False
    submission_count: int = 0
    first_entered_at: datetime | None = None
    first_keystroke_at: datetime | None = None
    entered_at: float | None = None  # monotonic reading while this question is active
    snapshots: list[Snapshot] = field(default_factory=list)
    evaluation_result: EvaluationResult | None = None
    submitted_code: str | None = None
    submitted_language: str | None = None
    last_error: str | None = None

    @classmethod
    def from_template(cls, question_id: str, language: str = DEFAULT_LANGUAGE) -> "QuestionState":
        return cls(question_id=question_id, current_code=get_template(language), selected_language=language)

    @property
    def is_solved(self) -> bool:
        return self.status == QuestionStatus.SOLVED_CORRECT

    @property
    def skipped(self) -> bool:
        return self.status == QuestionStatus.SKIPPED

    @property
    def is_edited(self) -> bool:
        return not is_template(self.current_code, self.selected_language)

    def can_transition(self, new_status: QuestionStatus) -> bool:
        return new_status in TRANSITIONS.get(self.status, [])

    def transition(self, new_status: QuestionStatus) -> bool:
        """Move to new_status if the transition is allowed.

        Returns:
            True if the status changed, False if the transition is invalid
        """
        if not self.can_transition(new_status):
            logger.debug(
                "question_transition_refused",
                question_id=self.question_id,
                current=self.status.value,
                requested=new_status.value,
            )
            return False
        self.status = new_status
        return True

    def add_snapshot(self, snapshot: Snapshot, cap: int) -> None:
        """Append a snapshot, evicting the oldest entries beyond cap."""
        self.snapshots.append(snapshot)
        overflow = len(self.snapshots) - cap
        if overflow > 0:
            del self.snapshots[:overflow]
