"""External code evaluator client.

The evaluator is an opaque remote grader: POST the submission, get back an
evaluation. Transient failures (transport errors, 429, 5xx) are retried with
exponential backoff; anything else surfaces as a non-retryable EvaluatorError.
Replies are normalized into the canonical EvaluationResult.
"""

from typing import Protocol, runtime_checkable

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from interview_core.core.config import Settings, get_settings
from interview_core.core.exceptions import EvaluatorError
from interview_core.domain.evaluation import EvaluationRequest, EvaluationResult, normalize_evaluation

logger = structlog.get_logger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


@runtime_checkable
class CodeEvaluator(Protocol):
    async def evaluate(self, request: EvaluationRequest) -> EvaluationResult:
        """Grade one submission.

        Raises:
            EvaluatorError: On any failure; ``retryable`` tells the caller
                whether submitting again may succeed
        """
        ...


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, EvaluatorError) and exc.retryable


class HttpCodeEvaluator:
    """Evaluator reached over HTTP.

    Usage:
        async with httpx.AsyncClient() as client:
            evaluator = HttpCodeEvaluator(client)
            result = await evaluator.evaluate(request)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings | None = None,
        retry_wait_multiplier: float = 1.0,
    ) -> None:
        self._client = client
        self._settings = settings or get_settings()
        self._retry_wait_multiplier = retry_wait_multiplier

    async def evaluate(self, request: EvaluationRequest) -> EvaluationResult:
        retrying = AsyncRetrying(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(self._settings.evaluator_max_attempts),
            wait=wait_exponential(multiplier=self._retry_wait_multiplier, min=0, max=10),
            reraise=True,
            before_sleep=lambda rs: logger.warning(
                "evaluator_retrying",
                attempt=rs.attempt_number,
                error=str(rs.outcome.exception()) if rs.outcome else None,
            ),
        )
        async for attempt in retrying:
            with attempt:
                payload = await self._post(request)
        try:
            return normalize_evaluation(payload)
        except (ValueError, TypeError) as exc:
            raise EvaluatorError(f"Malformed evaluator response: {exc}", retryable=False) from exc

    async def _post(self, request: EvaluationRequest) -> dict:
        headers = {"Content-Type": "application/json"}
        if self._settings.evaluator_api_key:
            headers["Authorization"] = f"Bearer {self._settings.evaluator_api_key}"

        try:
            response = await self._client.post(
                self._settings.evaluator_url,
                json=request.to_wire(),
                headers=headers,
                timeout=self._settings.evaluator_timeout_seconds,
            )
        except httpx.TransportError as exc:
            raise EvaluatorError(f"Evaluator unreachable: {exc}") from exc

        if response.status_code in _RETRYABLE_STATUS:
            raise EvaluatorError(
                f"Evaluator returned {response.status_code}",
                retryable=True,
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            # 402 (credits exhausted) and other client errors will not heal on retry
            raise EvaluatorError(
                f"Evaluator rejected request with {response.status_code}: {response.text[:200]}",
                retryable=False,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise EvaluatorError("Evaluator response is not JSON", retryable=False) from exc
        if not isinstance(body, dict):
            raise EvaluatorError("Evaluator response is not a JSON object", retryable=False)
        if body.get("error") and "evaluation" not in body:
            raise EvaluatorError(f"Evaluator error: {body['error']}")
        return body
