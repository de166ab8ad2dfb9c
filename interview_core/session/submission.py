"""SubmissionPipeline: validate, evaluate, merge.

Flow for one submission:
  1. Reject code shorter than the minimum length (ValidationError, nothing mutated)
  2. BeginSubmission through the controller: guards against resubmission while
     pending, flushes elapsed time, moves the question to pending_evaluation and
     returns the EvaluationRequest
  3. Call the external evaluator outside the session lock, so navigation, ticks
     and snapshots keep running while the call is in flight
  4. EvaluationCompleted or EvaluationFailed through the controller

The evaluator call runs as its own task, registered with the controller so a
forced end can wait for it (bounded) or cancel it.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from interview_core.core.exceptions import EvaluatorError, ValidationError
from interview_core.core.logging import session_log_context
from interview_core.domain.evaluation import EvaluationRequest, EvaluationResult
from interview_core.services.evaluator import CodeEvaluator
from interview_core.session.events import BeginSubmission, EvaluationCompleted, EvaluationFailed

if TYPE_CHECKING:
    from interview_core.session.controller import SessionController

logger = structlog.get_logger(__name__)

ABANDONED_MESSAGE = "evaluation abandoned at session end"


class SubmissionPipeline:
    def __init__(self, evaluator: CodeEvaluator, min_code_length: int) -> None:
        self._evaluator = evaluator
        self._min_code_length = min_code_length

    def validate(self, code: str) -> None:
        """Raise ValidationError if code is too short to be worth grading."""
        if len(code.strip()) < self._min_code_length:
            raise ValidationError(
                f"Code must be at least {self._min_code_length} characters to submit"
            )

    async def submit(
        self,
        controller: SessionController,
        question_id: str,
        code: str,
        language: str,
    ) -> EvaluationResult:
        """Run one submission to completion.

        Raises:
            ValidationError: Code too short (no state touched)
            SubmissionRejectedError: Question pending, solved, skipped or session not active
            EvaluatorError: Evaluator failed or the call was abandoned; the question
                is open for resubmission and is_solved is unchanged
        """
        self.validate(code)

        request: EvaluationRequest = await controller.dispatch(
            BeginSubmission(question_id=question_id, code=code, language=language)
        )

        task = asyncio.create_task(self._evaluate_in_context(controller, question_id, request))
        controller.register_evaluation(question_id, task)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise EvaluatorError(ABANDONED_MESSAGE, retryable=False) from None
            raise

    async def _evaluate_in_context(
        self,
        controller: SessionController,
        question_id: str,
        request: EvaluationRequest,
    ) -> EvaluationResult:
        with session_log_context(controller.session.id, controller.session.user_id, question_id):
            return await self._evaluate(controller, question_id, request)

    async def _evaluate(
        self,
        controller: SessionController,
        question_id: str,
        request: EvaluationRequest,
    ) -> EvaluationResult:
        logger.info("evaluation_started", language=request.language, coding_time=request.coding_time)
        # Stays registered until the outcome is merged, so finalize never misses it
        try:
            try:
                result = await self._evaluator.evaluate(request)
            except asyncio.CancelledError:
                logger.warning("evaluation_abandoned")
                await controller.dispatch(EvaluationFailed(question_id, ABANDONED_MESSAGE, abandoned=True))
                raise
            except EvaluatorError as exc:
                logger.warning("evaluation_failed", error=str(exc), retryable=exc.retryable)
                await controller.dispatch(EvaluationFailed(question_id, str(exc)))
                raise
            except Exception as exc:
                logger.error("evaluation_failed_unexpected", error=str(exc), error_type=type(exc).__name__)
                await controller.dispatch(EvaluationFailed(question_id, str(exc)))
                raise EvaluatorError(f"Evaluator call failed: {exc}") from exc

            await controller.dispatch(EvaluationCompleted(question_id, result))
        finally:
            controller.unregister_evaluation(question_id)

        logger.info("evaluation_completed", is_correct=result.is_correct)
        return result
