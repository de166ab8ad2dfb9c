"""SessionFinalizer: aggregate, persist, close.

Order of operations (the controller has already flushed the active question's
time and moved the session to Finalizing):
  1. Give outstanding evaluations a bounded grace period, then cancel the rest
  2. Score the session with the pluggable scorer
  3. Upsert one result record per question, each retried independently
  4. Mark the session ended in the store, then in memory

A session whose records are not all durable stays in Finalizing and
PersistenceError names the missing questions. Calling finalize() again writes
only what is still missing.
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

from interview_core.core.clock import Clock
from interview_core.core.exceptions import PersistenceError
from interview_core.db.session_store import SessionStore
from interview_core.domain.question_state import QuestionState
from interview_core.domain.scoring import SessionScorer
from interview_core.domain.session import QuestionResultRecord, Session, SessionStatus

logger = structlog.get_logger(__name__)


@dataclass
class FinalizeOutcome:
    session_id: str
    total_score: int
    ended_at: datetime
    results: list[QuestionResultRecord]


class SessionFinalizer:
    def __init__(
        self,
        store: SessionStore,
        scorer: SessionScorer,
        clock: Clock,
        grace_seconds: float,
        max_attempts: int,
        retry_wait_multiplier: float = 0.5,
    ) -> None:
        self._store = store
        self._scorer = scorer
        self._clock = clock
        self._grace_seconds = grace_seconds
        self._max_attempts = max_attempts
        self._retry_wait_multiplier = retry_wait_multiplier
        self._records: dict[str, QuestionResultRecord] = {}

    async def settle_evaluations(self, in_flight: Iterable[asyncio.Task]) -> int:
        """Wait up to the grace period for evaluations, cancel the stragglers.

        Returns:
            Number of evaluations abandoned
        """
        tasks = [t for t in in_flight if not t.done()]
        if not tasks:
            return 0

        logger.info("finalize_waiting_for_evaluations", pending=len(tasks), grace_seconds=self._grace_seconds)
        _, pending = await asyncio.wait(tasks, timeout=self._grace_seconds)
        for task in pending:
            task.cancel()
        if pending:
            # Let the cancelled tasks run their abandonment handlers
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("finalize_abandoned_evaluations", abandoned=len(pending))
        return len(pending)

    async def finalize(self, session: Session, states: list[QuestionState]) -> FinalizeOutcome:
        """Persist every result record, then end the session.

        Raises:
            PersistenceError: Some records (or the session close) could not be written
        """
        log = logger.bind(session_id=session.id)

        if session.total_score is None:
            session.total_score = self._scorer(states)
            submitted_at = self._clock.now()
            self._records = {
                s.question_id: QuestionResultRecord.from_state(session.id, s, submitted_at) for s in states
            }

        failed: list[str] = []
        for question_id, record in self._records.items():
            if question_id in session.persisted_question_ids:
                continue
            try:
                await self._with_retry(self._store.upsert_result, record)
            except Exception as exc:
                log.error("result_persist_failed", question_id=question_id, error=str(exc))
                failed.append(question_id)
            else:
                session.persisted_question_ids.add(question_id)

        if failed:
            raise PersistenceError(session.id, failed)

        ended_at = self._clock.now()
        try:
            await self._with_retry(self._store.mark_session_ended, session.id, session.total_score, ended_at)
        except Exception as exc:
            log.error("session_close_persist_failed", error=str(exc))
            raise PersistenceError(
                session.id, [], message=f"Session '{session.id}' results are saved but writing the session close failed"
            ) from exc

        session.status = SessionStatus.ENDED
        session.ended_at = ended_at
        log.info(
            "session_ended",
            total_score=session.total_score,
            solved=sum(1 for r in self._records.values() if r.is_solved),
            questions=len(self._records),
        )
        return FinalizeOutcome(
            session_id=session.id,
            total_score=session.total_score,
            ended_at=ended_at,
            results=[self._records[qid] for qid in session.question_ids],
        )

    async def _with_retry(self, fn, *args) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_wait_multiplier, max=5),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await fn(*args)
