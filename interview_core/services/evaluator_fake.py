"""EvaluatorFake: scenario-based test double for the CodeEvaluator protocol.

Scenarios:
- correct: every submission is graded correct with strong scores
- incorrect: every submission is graded incorrect
- failure: every call raises a retryable EvaluatorError
- slow: the call blocks until release() is called, then grades correct

Calls return without network access. Every request is recorded in ``calls``.
"""

import asyncio

from interview_core.core.exceptions import EvaluatorError
from interview_core.domain.evaluation import (
    Approach,
    CodeBreakdown,
    ComplexityAnalysis,
    EvaluationRequest,
    EvaluationResult,
    InterviewBreakdown,
)


class EvaluatorFake:
    VALID_SCENARIOS = {"correct", "incorrect", "failure", "slow"}

    def __init__(self, scenario: str = "correct"):
        if scenario not in self.VALID_SCENARIOS:
            raise ValueError(f"Unknown scenario: {scenario}. Valid scenarios: {self.VALID_SCENARIOS}")
        self.scenario = scenario
        self.calls: list[EvaluationRequest] = []
        self._released = asyncio.Event()

    def release(self) -> None:
        """Let pending calls in the slow scenario finish."""
        self._released.set()

    async def evaluate(self, request: EvaluationRequest) -> EvaluationResult:
        self.calls.append(request)

        if self.scenario == "failure":
            raise EvaluatorError("Rate limit exceeded. Please try again later.", retryable=True, status_code=429)

        if self.scenario == "slow":
            await self._released.wait()

        if self.scenario == "incorrect":
            return self._incorrect(request)
        return self._correct(request)

    @staticmethod
    def _correct(request: EvaluationRequest) -> EvaluationResult:
        return EvaluationResult(
            is_correct=True,
            approach=Approach.OPTIMAL,
            pattern_detected=request.pattern_name,
            complexity=ComplexityAnalysis(time="O(n)", space="O(1)", optimal_time="O(n)", optimal_space="O(1)"),
            code_quality_score=88,
            code_breakdown=CodeBreakdown(correctness=38, optimality=22, clean_code=16, edge_cases=12),
            interview_performance_score=80,
            interview_breakdown=InterviewBreakdown(
                time_efficiency=25,
                run_discipline=20 if request.run_count > 0 else 5,
                no_paste=0 if request.paste_detected else 20,
                thinking_ratio=10,
                hint_penalty=max(0, 15 - request.hints_used * 5),
            ),
            feedback="Clean single-pass solution with correct handling of the main cases.",
            interview_insight="Testing before submission demonstrates good interview discipline.",
            suggestions=["Add a check for empty input", "Name the loop variables more descriptively"],
            paste_detected=request.paste_detected,
            run_before_submit=request.run_count > 0,
            run_count=request.run_count,
            thinking_time=request.thinking_time,
            coding_time=request.coding_time,
        )

    @staticmethod
    def _incorrect(request: EvaluationRequest) -> EvaluationResult:
        return EvaluationResult(
            is_correct=False,
            approach=Approach.BRUTE_FORCE,
            complexity=ComplexityAnalysis(time="O(n^2)", space="O(1)", optimal_time="O(n)", optimal_space="O(n)"),
            code_quality_score=35,
            code_breakdown=CodeBreakdown(correctness=10, optimality=5, clean_code=12, edge_cases=8),
            interview_performance_score=45,
            interview_breakdown=InterviewBreakdown(
                time_efficiency=10,
                run_discipline=20 if request.run_count > 0 else 5,
                no_paste=0 if request.paste_detected else 20,
                thinking_ratio=5,
                hint_penalty=max(0, 15 - request.hints_used * 5),
            ),
            feedback="The nested loop misses the duplicate case and times out on large inputs.",
            interview_insight="Talk through the edge cases before coding.",
            suggestions=["Use a hash map to remember seen values"],
            paste_detected=request.paste_detected,
            run_before_submit=request.run_count > 0,
            run_count=request.run_count,
            thinking_time=request.thinking_time,
            coding_time=request.coding_time,
        )
