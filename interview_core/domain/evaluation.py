"""Canonical evaluation schema and the adapter for evaluator payloads.

The evaluator has answered in two shapes over time: snake_case fields for fresh
results, and camelCase breakdowns plus a bare ``quality_score`` on stored
results. ``normalize_evaluation`` is the only place that knows about both;
everything downstream works with ``EvaluationResult``.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class Approach(StrEnum):
    OPTIMAL = "optimal"
    SUBOPTIMAL = "suboptimal"
    BRUTE_FORCE = "brute_force"
    UNKNOWN = "unknown"


class ComplexityAnalysis(BaseModel):
    time: str = "N/A"
    space: str = "N/A"
    optimal_time: str | None = None
    optimal_space: str | None = None


class CodeBreakdown(BaseModel):
    """Code-quality sub-scores. Their sum is the code-quality score."""

    correctness: int = Field(default=0, ge=0, le=40)
    optimality: int = Field(default=0, ge=0, le=25)
    clean_code: int = Field(default=0, ge=0, le=20)
    edge_cases: int = Field(default=0, ge=0, le=15)

    @property
    def total(self) -> int:
        return self.correctness + self.optimality + self.clean_code + self.edge_cases


class InterviewBreakdown(BaseModel):
    """Interview-performance sub-scores. Their sum is the performance score."""

    time_efficiency: int = Field(default=0, ge=0, le=30)
    run_discipline: int = Field(default=0, ge=0, le=20)
    no_paste: int = Field(default=0, ge=0, le=20)
    thinking_ratio: int = Field(default=0, ge=0, le=15)
    hint_penalty: int = Field(default=0, ge=0, le=15)

    @property
    def total(self) -> int:
        return self.time_efficiency + self.run_discipline + self.no_paste + self.thinking_ratio + self.hint_penalty


class EvaluationRequest(BaseModel):
    """Payload sent to the external code evaluator."""

    code: str
    language: str
    question_title: str
    difficulty: str
    pattern_name: str | None = None
    thinking_time: int = 0
    coding_time: int = 0
    run_count: int = 0
    paste_detected: bool = False
    hints_used: int = 0
    expected_time: int = 600

    def to_wire(self) -> dict:
        """camelCase body expected by the evaluate-code endpoint."""
        return {
            "code": self.code,
            "language": self.language,
            "questionTitle": self.question_title,
            "difficulty": self.difficulty,
            "patternName": self.pattern_name,
            "thinkingTime": self.thinking_time,
            "codingTime": self.coding_time,
            "runCount": self.run_count,
            "pasteDetected": self.paste_detected,
            "hintsUsed": self.hints_used,
            "expectedTime": self.expected_time,
        }


class EvaluationResult(BaseModel):
    is_correct: bool
    approach: Approach = Approach.UNKNOWN
    pattern_detected: str | None = None
    complexity: ComplexityAnalysis = Field(default_factory=ComplexityAnalysis)
    code_quality_score: int = Field(default=0, ge=0, le=100)
    code_breakdown: CodeBreakdown = Field(default_factory=CodeBreakdown)
    interview_performance_score: int = Field(default=0, ge=0, le=100)
    interview_breakdown: InterviewBreakdown = Field(default_factory=InterviewBreakdown)
    feedback: str = ""
    interview_insight: str = ""
    suggestions: list[str] = Field(default_factory=list)

    # Behavioral flags
    paste_detected: bool = False
    run_before_submit: bool = False
    run_count: int = 0

    thinking_time: int = 0
    coding_time: int = 0


# camelCase (stored) -> snake_case (canonical)
_LEGACY_KEYS: dict[str, str] = {
    "isCorrect": "is_correct",
    "approachUsed": "approach_used",
    "patternDetected": "pattern_detected",
    "complexityAnalysis": "complexity_analysis",
    "codeQualityScore": "code_quality_score",
    "codeBreakdown": "code_breakdown",
    "interviewPerformanceScore": "interview_performance_score",
    "interviewBreakdown": "interview_breakdown",
    "interviewInsight": "interview_insight",
    "pasteDetected": "paste_detected",
    "runBeforeSubmit": "run_before_submit",
    "runCount": "run_count",
    "thinkingTime": "thinking_time",
    "codingTime": "coding_time",
    "cleanCode": "clean_code",
    "edgeCases": "edge_cases",
    "timeEfficiency": "time_efficiency",
    "runDiscipline": "run_discipline",
    "noPaste": "no_paste",
    "thinkingRatio": "thinking_ratio",
    "hintPenalty": "hint_penalty",
    "optimalTime": "optimal_time",
    "optimalSpace": "optimal_space",
}


def _snake_keys(data: dict) -> dict:
    return {_LEGACY_KEYS.get(k, k): v for k, v in data.items()}


def _clamp(value: Any, upper: int) -> int:
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(upper, number))


_TRUE_STRINGS = {"true", "1", "yes", "y"}


def _flag(value: Any) -> bool:
    """Strict boolean: strings must spell true, anything unknown is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, int | float):
        return value == 1
    return False


_CODE_BOUNDS = {"correctness": 40, "optimality": 25, "clean_code": 20, "edge_cases": 15}
_INTERVIEW_BOUNDS = {
    "time_efficiency": 30,
    "run_discipline": 20,
    "no_paste": 20,
    "thinking_ratio": 15,
    "hint_penalty": 15,
}


def _breakdown(raw: Any, bounds: dict[str, int]) -> dict:
    if not isinstance(raw, dict):
        return {}
    raw = _snake_keys(raw)
    return {name: _clamp(raw[name], upper) for name, upper in bounds.items() if name in raw}


def _approach(value: Any) -> Approach:
    try:
        return Approach(str(value))
    except ValueError:
        return Approach.UNKNOWN


def normalize_evaluation(payload: dict) -> EvaluationResult:
    """Convert any evaluator payload shape into the canonical EvaluationResult.

    Accepts the ``{"evaluation": {...}}`` envelope or a bare evaluation, in
    either the snake_case or the legacy camelCase naming. Scores are clamped to
    their documented ranges; missing overall scores are derived from the
    breakdowns, falling back to the legacy ``quality_score``.
    """
    data = payload.get("evaluation", payload)
    if not isinstance(data, dict):
        raise ValueError("Evaluation payload must be a JSON object")
    data = _snake_keys(data)

    code_breakdown = CodeBreakdown(**_breakdown(data.get("code_breakdown"), _CODE_BOUNDS))
    interview_breakdown = InterviewBreakdown(**_breakdown(data.get("interview_breakdown"), _INTERVIEW_BOUNDS))

    code_quality = data.get("code_quality_score")
    if code_quality is None:
        code_quality = code_breakdown.total if data.get("code_breakdown") else data.get("quality_score", 0)

    performance = data.get("interview_performance_score")
    if performance is None:
        performance = interview_breakdown.total if data.get("interview_breakdown") else 0

    complexity = data.get("complexity_analysis") or {}
    if isinstance(complexity, dict):
        complexity = {k: str(v) for k, v in _snake_keys(complexity).items() if v is not None}
    else:
        complexity = {}

    suggestions = data.get("suggestions") or []
    if not isinstance(suggestions, list):
        suggestions = [str(suggestions)]

    return EvaluationResult(
        is_correct=_flag(data.get("is_correct")),
        approach=_approach(data.get("approach_used", data.get("approach"))),
        pattern_detected=data.get("pattern_detected"),
        complexity=ComplexityAnalysis(**complexity),
        code_quality_score=_clamp(code_quality, 100),
        code_breakdown=code_breakdown,
        interview_performance_score=_clamp(performance, 100),
        interview_breakdown=interview_breakdown,
        feedback=str(data.get("feedback") or ""),
        interview_insight=str(data.get("interview_insight") or ""),
        suggestions=[str(s) for s in suggestions],
        paste_detected=_flag(data.get("paste_detected")),
        run_before_submit=_flag(data.get("run_before_submit")),
        run_count=_clamp(data.get("run_count", 0), 10_000),
        thinking_time=_clamp(data.get("thinking_time", 0), 10**7),
        coding_time=_clamp(data.get("coding_time", 0), 10**7),
    )
