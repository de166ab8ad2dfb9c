"""SessionController: the single owner of a timed session.

All three event sources (the 1 Hz countdown, the snapshot recorder, user
actions) reach session state only through dispatch(). dispatch() applies one
event at a time under one asyncio.Lock, so a time flush on navigate and a tick
decrement can never interleave. The only suspension point outside the lock is
the evaluator call made by the SubmissionPipeline.

Session lifecycle:  ACTIVE -> FINALIZING -> ENDED   (one-way)

Time accounting: the active question carries a monotonic ``entered_at``.
Leaving it (navigate, skip, submit, finalize) credits ``now - entered_at`` to
its elapsed_seconds and restarts the clock, inside the same locked step that
moves the pointer.
"""

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from interview_core.core.clock import Clock, SystemClock
from interview_core.core.config import Settings, get_settings
from interview_core.core.exceptions import (
    ConfigError,
    InvariantViolation,
    SessionStateError,
    SubmissionRejectedError,
)
from interview_core.core.logging import session_log_context
from interview_core.db.session_store import SessionStore
from interview_core.domain.evaluation import EvaluationRequest, EvaluationResult
from interview_core.domain.question_state import QuestionState, QuestionStatus
from interview_core.domain.scoring import SessionScorer, make_solved_count_scorer
from interview_core.domain.session import QuestionMeta, Session, SessionConfig, SessionStatus
from interview_core.domain.templates import SUPPORTED_LANGUAGES, get_template
from interview_core.services.evaluator import CodeEvaluator
from interview_core.session.events import (
    BeginSubmission,
    CaptureSnapshot,
    ChangeCode,
    ChangeLanguage,
    EvaluationCompleted,
    EvaluationFailed,
    Navigate,
    PasteDetected,
    RunCode,
    SessionEvent,
    Skip,
    Tick,
    ToggleFlag,
    UseHint,
)
from interview_core.session.finalizer import FinalizeOutcome, SessionFinalizer
from interview_core.session.recorder import SnapshotRecorder
from interview_core.session.submission import ABANDONED_MESSAGE, SubmissionPipeline

logger = structlog.get_logger(__name__)


class SessionController:
    """Runs one timed, multi-question session.

    Usage:
        controller = await SessionController.start(config, evaluator=evaluator, store=store)
        await controller.navigate(1)
        await controller.dispatch(ChangeCode(code))
        result = await controller.submit(question_id, code, "python")
        outcome = await controller.end(confirmed=True)
    """

    def __init__(
        self,
        session: Session,
        questions: list[QuestionMeta],
        *,
        evaluator: CodeEvaluator,
        store: SessionStore,
        settings: Settings,
        clock: Clock,
        scorer: SessionScorer,
        language: str,
    ) -> None:
        self.session = session
        self._questions = {q.id: q for q in questions}
        self.states: dict[str, QuestionState] = {
            q.id: QuestionState.from_template(q.id, language) for q in questions
        }
        self.current_index = 0
        self._settings = settings
        self._clock = clock
        self._lock = asyncio.Lock()
        self._finalize_lock = asyncio.Lock()
        self._in_flight: dict[str, asyncio.Task] = {}
        self._timer_tasks: list[asyncio.Task] = []
        self._outcome: FinalizeOutcome | None = None
        self.finalize_error: Exception | None = None

        self.recorder = SnapshotRecorder(
            clock=clock,
            cap=settings.snapshot_cap,
            interval_seconds=settings.snapshot_interval_seconds,
        )
        self.pipeline = SubmissionPipeline(evaluator, settings.min_submission_length)
        self.finalizer = SessionFinalizer(
            store=store,
            scorer=scorer,
            clock=clock,
            grace_seconds=settings.finalize_grace_seconds,
            max_attempts=settings.persistence_max_attempts,
            retry_wait_multiplier=settings.persistence_retry_wait_seconds,
        )
        self._handlers: dict[type[SessionEvent], Callable[[Any], Any]] = {
            Navigate: self._on_navigate,
            ToggleFlag: self._on_toggle_flag,
            UseHint: self._on_use_hint,
            Skip: self._on_skip,
            ChangeCode: self._on_change_code,
            ChangeLanguage: self._on_change_language,
            RunCode: self._on_run_code,
            PasteDetected: self._on_paste_detected,
            Tick: self._on_tick,
            CaptureSnapshot: self._on_capture_snapshot,
            BeginSubmission: self._on_begin_submission,
            EvaluationCompleted: self._on_evaluation_completed,
            EvaluationFailed: self._on_evaluation_failed,
        }
        self._log = logger.bind(session_id=session.id)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    async def start(
        cls,
        config: SessionConfig,
        *,
        evaluator: CodeEvaluator,
        store: SessionStore,
        settings: Settings | None = None,
        clock: Clock | None = None,
        scorer: SessionScorer | None = None,
        session_id: str | None = None,
        run_timers: bool = True,
    ) -> "SessionController":
        """Create the session and its question states, persist the session
        record, enter the first question and start the timers.

        Raises:
            ConfigError: Empty question list, duplicate questions, non-positive
                time limit or unsupported language
        """
        settings = settings or get_settings()
        clock = clock or SystemClock()

        if not config.questions:
            raise ConfigError("A session needs at least one question")
        if config.time_limit_seconds <= 0:
            raise ConfigError(f"Time limit must be positive, got {config.time_limit_seconds}")
        question_ids = [q.id for q in config.questions]
        if len(set(question_ids)) != len(question_ids):
            raise ConfigError("Question ids must be unique within a session")
        if config.language not in SUPPORTED_LANGUAGES:
            raise ConfigError(f"Unsupported language: {config.language}")

        session = Session(
            id=session_id or str(uuid.uuid4()),
            user_id=config.user_id,
            time_limit_seconds=config.time_limit_seconds,
            question_ids=question_ids,
            created_at=clock.now(),
            session_type=config.session_type,
            remaining_seconds=config.time_limit_seconds,
        )
        controller = cls(
            session,
            config.questions,
            evaluator=evaluator,
            store=store,
            settings=settings,
            clock=clock,
            scorer=scorer or make_solved_count_scorer(settings.points_per_solved_question),
            language=config.language,
        )
        await store.create_session(session)
        controller._enter(0)
        controller._log.info(
            "session_started",
            user_id=config.user_id,
            questions=len(question_ids),
            time_limit_seconds=config.time_limit_seconds,
        )
        if run_timers:
            controller.start_timers()
        return controller

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self.session.status == SessionStatus.ACTIVE

    @property
    def current_question_id(self) -> str:
        return self.session.question_ids[self.current_index]

    @property
    def current_state(self) -> QuestionState:
        return self.states[self.current_question_id]

    @property
    def outcome(self) -> FinalizeOutcome | None:
        return self._outcome

    def live_elapsed(self, question_id: str) -> float:
        """Elapsed seconds including the not-yet-flushed stretch on the active question."""
        state = self.states[question_id]
        if state.entered_at is None:
            return state.elapsed_seconds
        return state.elapsed_seconds + (self._clock.monotonic() - state.entered_at)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def dispatch(self, event: SessionEvent) -> Any:
        """Apply one event under the session lock and return the handler's result."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported session event: {type(event).__name__}")
        async with self._lock:
            return handler(event)

    async def navigate(self, target_index: int) -> bool:
        """Switch the active question. Returns False for out-of-range targets."""
        return await self.dispatch(Navigate(target_index))

    async def tick(self) -> bool:
        """Advance the countdown by one second.

        Returns:
            True if this tick expired the session (finalize has then run)
        """
        expired = await self.dispatch(Tick())
        if expired:
            self._log.info("session_time_expired")
            await self._run_finalize()
        return expired

    async def submit(self, question_id: str, code: str, language: str) -> EvaluationResult:
        return await self.pipeline.submit(self, question_id, code, language)

    async def end(self, confirmed: bool) -> FinalizeOutcome | None:
        """End the session early on explicit user confirmation.

        Returns None when not confirmed. Raises PersistenceError if results could
        not be written; calling end() again retries the missing writes.
        """
        if not confirmed:
            self._log.debug("session_end_not_confirmed")
            return None
        async with self._lock:
            self._begin_finalize(reason="user_ended")
        return await self._run_finalize()

    def register_evaluation(self, question_id: str, task: asyncio.Task) -> None:
        self._in_flight[question_id] = task

    def unregister_evaluation(self, question_id: str) -> None:
        self._in_flight.pop(question_id, None)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def start_timers(self) -> None:
        """Launch the countdown and snapshot loops as background tasks."""
        self._timer_tasks = [
            asyncio.create_task(self._in_session_context(self._tick_loop()), name=f"session-timer-{self.session.id}"),
            asyncio.create_task(
                self._in_session_context(self.recorder.run(self)), name=f"session-snapshots-{self.session.id}"
            ),
        ]

    async def _in_session_context(self, loop: Awaitable[None]) -> None:
        with session_log_context(self.session.id, self.session.user_id):
            await loop

    def stop_timers(self) -> None:
        current = asyncio.current_task()
        for task in self._timer_tasks:
            if task is not current and not task.done():
                task.cancel()

    async def _tick_loop(self) -> None:
        interval = self._settings.tick_interval_seconds
        # Deadlines on the monotonic clock keep ticks from drifting behind wall time
        deadline = self._clock.monotonic() + interval
        while self.is_active:
            await asyncio.sleep(max(0.0, deadline - self._clock.monotonic()))
            deadline += interval
            try:
                await self.tick()
            except Exception as exc:
                # Finalize blocked on persistence; the session stays in Finalizing
                # and the caller retries through end()/retry_finalize().
                self._log.error("forced_finalize_failed", error=str(exc), error_type=type(exc).__name__)
                return

    # ------------------------------------------------------------------
    # Finalize
    # ------------------------------------------------------------------

    async def retry_finalize(self) -> FinalizeOutcome:
        """Retry persistence for a session stuck in Finalizing."""
        return await self._run_finalize()

    def _begin_finalize(self, reason: str) -> bool:
        """Move ACTIVE -> FINALIZING and flush the active question. Lock held."""
        if self.session.status != SessionStatus.ACTIVE:
            return False
        self._flush(self.current_state)
        self.session.status = SessionStatus.FINALIZING
        self._check_time_invariant()
        self._log.info("session_finalizing", reason=reason, remaining_seconds=self.session.remaining_seconds)
        return True

    async def _run_finalize(self) -> FinalizeOutcome:
        async with self._finalize_lock:
            if self._outcome is not None:
                return self._outcome
            if self.session.status != SessionStatus.FINALIZING:
                raise SessionStateError(f"Session {self.session.id} is {self.session.status}, not finalizing")

            self.stop_timers()
            await self.finalizer.settle_evaluations(list(self._in_flight.values()))
            async with self._lock:
                self._abandon_pending()
                states = [self.states[qid] for qid in self.session.question_ids]

            try:
                self._outcome = await self.finalizer.finalize(self.session, states)
            except Exception as exc:
                self.finalize_error = exc
                raise
            self.finalize_error = None
            return self._outcome

    def _abandon_pending(self) -> None:
        for state in self.states.values():
            if state.status == QuestionStatus.PENDING_EVALUATION:
                self._close_failed_evaluation(state, ABANDONED_MESSAGE)

    # ------------------------------------------------------------------
    # Time accounting
    # ------------------------------------------------------------------

    def _flush(self, state: QuestionState) -> None:
        if state.entered_at is None:
            return
        now = self._clock.monotonic()
        delta = now - state.entered_at
        if delta < 0:
            raise InvariantViolation(f"Negative elapsed delta {delta} for question {state.question_id}")
        state.elapsed_seconds += delta
        state.entered_at = now

    def _enter(self, index: int) -> None:
        self.current_index = index
        state = self.current_state
        state.entered_at = self._clock.monotonic()
        if state.first_entered_at is None:
            state.first_entered_at = self._clock.now()
        if state.status in (QuestionStatus.NOT_STARTED, QuestionStatus.SKIPPED):
            state.transition(QuestionStatus.IN_PROGRESS)

    def _revisit_skipped(self, state: QuestionState) -> None:
        if state.status == QuestionStatus.SKIPPED:
            state.transition(QuestionStatus.IN_PROGRESS)
            self._log.debug("skipped_question_resumed", question_id=state.question_id)

    def _leave_current(self) -> None:
        state = self.current_state
        self._flush(state)
        state.entered_at = None

    def _check_time_invariant(self) -> None:
        accounted = sum(s.elapsed_seconds for s in self.states.values()) + self.session.remaining_seconds
        drift = abs(accounted - self.session.time_limit_seconds)
        if drift > self._settings.tick_interval_seconds + 1:
            self._log.error(
                "time_accounting_drift",
                accounted=accounted,
                time_limit=self.session.time_limit_seconds,
            )

    # ------------------------------------------------------------------
    # Event handlers (all called with the session lock held)
    # ------------------------------------------------------------------

    def _on_navigate(self, event: Navigate) -> bool:
        if not self.is_active:
            return False
        if not 0 <= event.target_index < len(self.session.question_ids):
            self._log.debug("navigate_out_of_range", target_index=event.target_index)
            return False
        if event.target_index == self.current_index:
            self._revisit_skipped(self.current_state)
            return True
        self._leave_current()
        self._enter(event.target_index)
        return True

    def _on_toggle_flag(self, event: ToggleFlag) -> bool:
        if not self.is_active:
            return False
        state = self.current_state
        state.flagged = not state.flagged
        return state.flagged

    def _on_use_hint(self, event: UseHint) -> int:
        state = self.current_state
        if self.is_active:
            state.hints_used += 1
        return state.hints_used

    def _on_skip(self, event: Skip) -> bool:
        if not self.is_active:
            return False
        state = self.current_state
        if not state.transition(QuestionStatus.SKIPPED):
            return False
        if self.current_index < len(self.session.question_ids) - 1:
            self._leave_current()
            self._enter(self.current_index + 1)
        return True

    def _on_change_code(self, event: ChangeCode) -> None:
        if not self.is_active:
            return
        state = self.current_state
        self._revisit_skipped(state)
        state.current_code = event.code
        if state.first_keystroke_at is None and state.is_edited:
            state.first_keystroke_at = self._clock.now()

    def _on_change_language(self, event: ChangeLanguage) -> bool:
        if not self.is_active:
            return False
        if event.language not in SUPPORTED_LANGUAGES:
            self._log.warning("unsupported_language", language=event.language)
            return False
        state = self.current_state
        state.selected_language = event.language
        state.current_code = get_template(event.language)
        return True

    def _on_run_code(self, event: RunCode) -> int:
        state = self.current_state
        if self.is_active:
            state.run_count += 1
        return state.run_count

    def _on_paste_detected(self, event: PasteDetected) -> None:
        if self.is_active:
            self.current_state.paste_detected = True

    def _on_tick(self, event: Tick) -> bool:
        if not self.is_active:
            return False
        self.session.remaining_seconds = max(0, self.session.remaining_seconds - 1)
        if self.session.remaining_seconds == 0:
            return self._begin_finalize(reason="time_expired")
        return False

    def _on_capture_snapshot(self, event: CaptureSnapshot) -> None:
        if self.is_active:
            self.recorder.capture(self.current_state)

    def _on_begin_submission(self, event: BeginSubmission) -> EvaluationRequest:
        qid = event.question_id
        if not self.is_active:
            raise SubmissionRejectedError(qid, "session is not active")
        state = self.states.get(qid)
        if state is None:
            raise SubmissionRejectedError(qid, "question is not part of this session")
        if state.status == QuestionStatus.PENDING_EVALUATION:
            raise SubmissionRejectedError(qid, "an evaluation is already pending")
        if state.status == QuestionStatus.SOLVED_CORRECT:
            raise SubmissionRejectedError(qid, "question is already solved")
        if event.language not in SUPPORTED_LANGUAGES:
            raise SubmissionRejectedError(qid, f"unsupported language '{event.language}'")
        if not state.transition(QuestionStatus.PENDING_EVALUATION):
            raise SubmissionRejectedError(qid, f"cannot submit from status '{state.status}'")

        if qid == self.current_question_id:
            self._flush(state)
        state.current_code = event.code
        state.selected_language = event.language
        state.submitted_code = event.code
        state.submitted_language = event.language
        state.last_error = None

        thinking_time = 0
        if state.first_keystroke_at is not None and state.first_entered_at is not None:
            thinking_time = max(0, round((state.first_keystroke_at - state.first_entered_at).total_seconds()))

        meta = self._questions[qid]
        return EvaluationRequest(
            code=event.code,
            language=event.language,
            question_title=meta.title,
            difficulty=meta.difficulty,
            pattern_name=meta.pattern_name,
            thinking_time=thinking_time,
            coding_time=round(state.elapsed_seconds),
            run_count=state.run_count,
            paste_detected=state.paste_detected,
            hints_used=state.hints_used,
            expected_time=meta.expected_time or self._settings.default_expected_time_seconds,
        )

    def _on_evaluation_completed(self, event: EvaluationCompleted) -> bool:
        state = self.states[event.question_id]
        if self.session.status == SessionStatus.ENDED or state.status != QuestionStatus.PENDING_EVALUATION:
            self._log.warning("late_evaluation_ignored", question_id=event.question_id)
            return False
        target = (
            QuestionStatus.SOLVED_CORRECT if event.result.is_correct else QuestionStatus.SOLVED_INCORRECT_REVIEWABLE
        )
        state.transition(target)
        state.evaluation_result = event.result
        state.submission_count += 1
        return True

    def _on_evaluation_failed(self, event: EvaluationFailed) -> None:
        state = self.states[event.question_id]
        if state.status != QuestionStatus.PENDING_EVALUATION:
            return
        if event.abandoned:
            self._log.info("pending_evaluation_abandoned", question_id=event.question_id)
        self._close_failed_evaluation(state, event.error)

    def _close_failed_evaluation(self, state: QuestionState, error: str) -> None:
        # Back to where a resubmission is allowed; is_solved is untouched
        target = (
            QuestionStatus.SOLVED_INCORRECT_REVIEWABLE
            if state.evaluation_result is not None
            else QuestionStatus.IN_PROGRESS
        )
        state.transition(target)
        state.last_error = error
