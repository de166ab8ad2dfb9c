"""Tests for normalize_evaluation: fresh and legacy payload shapes."""

import pytest

from interview_core.domain.evaluation import Approach, EvaluationRequest, normalize_evaluation

pytestmark = pytest.mark.unit


FRESH_PAYLOAD = {
    "evaluation": {
        "is_correct": True,
        "approach_used": "optimal",
        "pattern_detected": "Two Pointers",
        "complexity_analysis": {"time": "O(n)", "space": "O(1)", "optimal_time": "O(n)", "optimal_space": "O(1)"},
        "code_quality_score": 86,
        "code_breakdown": {"correctness": 38, "optimality": 22, "clean_code": 15, "edge_cases": 11},
        "interview_performance_score": 72,
        "interview_breakdown": {
            "time_efficiency": 25,
            "run_discipline": 12,
            "no_paste": 20,
            "thinking_ratio": 8,
            "hint_penalty": 7,
        },
        "feedback": "Solid.",
        "interview_insight": "Good pacing.",
        "suggestions": ["Add comments"],
        "paste_detected": False,
        "run_before_submit": True,
        "run_count": 3,
        "thinking_time": 40,
        "coding_time": 300,
    },
    "usage": {"input_tokens": 10},
}

LEGACY_PAYLOAD = {
    "isCorrect": False,
    "approachUsed": "brute_force",
    "complexityAnalysis": {"time": "O(n^2)", "space": "O(1)", "optimalTime": "O(n)", "optimalSpace": "O(n)"},
    "quality_score": 41,
    "codeBreakdown": {"correctness": 10, "optimality": 5, "cleanCode": 14, "edgeCases": 6},
    "interviewBreakdown": {
        "timeEfficiency": 20,
        "runDiscipline": 5,
        "noPaste": 20,
        "thinkingRatio": 10,
        "hintPenalty": 15,
    },
    "feedback": "Misses duplicates.",
    "pasteDetected": True,
    "runCount": 0,
}


def test_fresh_envelope_is_read():
    result = normalize_evaluation(FRESH_PAYLOAD)

    assert result.is_correct is True
    assert result.approach == Approach.OPTIMAL
    assert result.pattern_detected == "Two Pointers"
    assert result.complexity.time == "O(n)"
    assert result.code_quality_score == 86
    assert result.code_breakdown.clean_code == 15
    assert result.interview_performance_score == 72
    assert result.interview_breakdown.hint_penalty == 7
    assert result.suggestions == ["Add comments"]
    assert result.run_before_submit is True
    assert result.coding_time == 300


def test_legacy_camel_case_is_mapped():
    result = normalize_evaluation(LEGACY_PAYLOAD)

    assert result.is_correct is False
    assert result.approach == Approach.BRUTE_FORCE
    assert result.complexity.optimal_time == "O(n)"
    assert result.code_breakdown.clean_code == 14
    assert result.code_breakdown.edge_cases == 6
    assert result.interview_breakdown.time_efficiency == 20
    assert result.interview_breakdown.no_paste == 20
    assert result.paste_detected is True


def test_missing_overall_scores_come_from_breakdowns():
    result = normalize_evaluation(LEGACY_PAYLOAD)

    assert result.code_quality_score == 10 + 5 + 14 + 6
    assert result.interview_performance_score == 20 + 5 + 20 + 10 + 15


def test_quality_score_used_without_breakdown():
    result = normalize_evaluation({"isCorrect": True, "quality_score": 64})

    assert result.code_quality_score == 64
    assert result.interview_performance_score == 0


def test_scores_are_clamped_to_documented_ranges():
    result = normalize_evaluation(
        {
            "is_correct": True,
            "code_quality_score": 140,
            "code_breakdown": {"correctness": 55, "optimality": -3, "clean_code": "12", "edge_cases": None},
        }
    )

    assert result.code_quality_score == 100
    assert result.code_breakdown.correctness == 40
    assert result.code_breakdown.optimality == 0
    assert result.code_breakdown.clean_code == 12
    assert result.code_breakdown.edge_cases == 0


def test_unknown_approach_falls_back():
    result = normalize_evaluation({"is_correct": False, "approach_used": "galaxy_brain"})

    assert result.approach == Approach.UNKNOWN


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("false", False),
        ("False", False),
        ("0", False),
        ("", False),
        ("true", True),
        (" TRUE ", True),
        (1, True),
        (0, False),
        (None, False),
        ({"nested": True}, False),
    ],
)
def test_loosely_typed_flags_are_parsed_strictly(raw, expected):
    result = normalize_evaluation({"is_correct": raw, "paste_detected": raw, "run_before_submit": raw})

    assert result.is_correct is expected
    assert result.paste_detected is expected
    assert result.run_before_submit is expected


def test_non_object_evaluation_is_rejected():
    with pytest.raises(ValueError):
        normalize_evaluation({"evaluation": "oops"})


def test_request_wire_format_is_camel_case():
    request = EvaluationRequest(
        code="print('hi there')",
        language="python",
        question_title="Two Sum",
        difficulty="easy",
        pattern_name="hashing",
        thinking_time=30,
        coding_time=200,
        run_count=2,
        paste_detected=True,
        hints_used=1,
    )

    wire = request.to_wire()

    assert wire["questionTitle"] == "Two Sum"
    assert wire["runCount"] == 2
    assert wire["pasteDetected"] is True
    assert wire["hintsUsed"] == 1
    assert wire["expectedTime"] == 600
    assert "question_title" not in wire
