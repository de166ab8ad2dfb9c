"""Events accepted by SessionController.dispatch.

Every mutation of session state arrives as one of these, whether it comes from
the user, the 1 Hz timer, the snapshot recorder, or a finished evaluation.
User actions without a question_id apply to the currently viewed question.
"""

from dataclasses import dataclass

from interview_core.domain.evaluation import EvaluationResult


class SessionEvent:
    """Marker base class for dispatchable events."""


# --- user actions -----------------------------------------------------------


@dataclass(frozen=True)
class Navigate(SessionEvent):
    target_index: int


@dataclass(frozen=True)
class ToggleFlag(SessionEvent):
    pass


@dataclass(frozen=True)
class UseHint(SessionEvent):
    pass


@dataclass(frozen=True)
class Skip(SessionEvent):
    pass


@dataclass(frozen=True)
class ChangeCode(SessionEvent):
    code: str


@dataclass(frozen=True)
class ChangeLanguage(SessionEvent):
    language: str


@dataclass(frozen=True)
class RunCode(SessionEvent):
    pass


@dataclass(frozen=True)
class PasteDetected(SessionEvent):
    pass


# --- periodic sources -------------------------------------------------------


@dataclass(frozen=True)
class Tick(SessionEvent):
    pass


@dataclass(frozen=True)
class CaptureSnapshot(SessionEvent):
    pass


# --- submission pipeline ----------------------------------------------------


@dataclass(frozen=True)
class BeginSubmission(SessionEvent):
    question_id: str
    code: str
    language: str


@dataclass(frozen=True)
class EvaluationCompleted(SessionEvent):
    question_id: str
    result: EvaluationResult


@dataclass(frozen=True)
class EvaluationFailed(SessionEvent):
    question_id: str
    error: str
    abandoned: bool = False


USER_ACTIONS: dict[str, type[SessionEvent]] = {
    "flag": ToggleFlag,
    "hint": UseHint,
    "skip": Skip,
    "run": RunCode,
    "paste": PasteDetected,
}
