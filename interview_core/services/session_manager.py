"""SessionManager: in-process registry of live session controllers.

A user has at most one session that is not yet ended. Ended sessions stay
readable until discard() so their results can be fetched once.
"""

import asyncio

import structlog

from interview_core.core.clock import Clock, SystemClock
from interview_core.core.config import Settings, get_settings
from interview_core.core.exceptions import ActiveSessionExistsError, PersistenceError, SessionNotFoundError
from interview_core.db.session_store import SessionStore
from interview_core.domain.scoring import SessionScorer
from interview_core.domain.session import SessionConfig, SessionStatus
from interview_core.services.evaluator import CodeEvaluator
from interview_core.session.controller import SessionController

logger = structlog.get_logger(__name__)


class SessionManager:
    def __init__(
        self,
        evaluator: CodeEvaluator,
        store: SessionStore,
        settings: Settings | None = None,
        clock: Clock | None = None,
        scorer: SessionScorer | None = None,
        run_timers: bool = True,
    ) -> None:
        self.evaluator = evaluator
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.scorer = scorer
        self.run_timers = run_timers
        self._sessions: dict[str, SessionController] = {}

    def active_for(self, user_id: str) -> SessionController | None:
        """The user's session that has not ended yet, if any."""
        for controller in self._sessions.values():
            if controller.session.user_id == user_id and controller.session.status != SessionStatus.ENDED:
                return controller
        return None

    async def start(self, config: SessionConfig) -> SessionController:
        """Start a session for config.user_id.

        Raises:
            ActiveSessionExistsError: The user already has a live session
            ConfigError: The configuration cannot be started
        """
        existing = self.active_for(config.user_id)
        if existing is not None:
            raise ActiveSessionExistsError(config.user_id, existing.session.id)

        controller = await SessionController.start(
            config,
            evaluator=self.evaluator,
            store=self.store,
            settings=self.settings,
            clock=self.clock,
            scorer=self.scorer,
            run_timers=self.run_timers,
        )
        self._sessions[controller.session.id] = controller
        return controller

    def get(self, session_id: str, user_id: str | None = None) -> SessionController:
        """Look up a session, optionally restricted to its owner.

        Raises:
            SessionNotFoundError: Unknown id, discarded, or owned by someone else
        """
        controller = self._sessions.get(session_id)
        if controller is None or (user_id is not None and controller.session.user_id != user_id):
            raise SessionNotFoundError(f"Session '{session_id}' not found")
        return controller

    def discard(self, session_id: str) -> None:
        """Forget an ended session. Live sessions are kept."""
        controller = self._sessions.get(session_id)
        if controller is not None and controller.session.status == SessionStatus.ENDED:
            del self._sessions[session_id]

    async def close(self) -> None:
        """Stop every timer loop and finalize sessions that have not ended.

        Each unfinished session gets up to shutdown_finalize_timeout_seconds to
        write its results. Failures are logged so every session gets its turn.
        """
        timeout = self.settings.shutdown_finalize_timeout_seconds
        for controller in list(self._sessions.values()):
            controller.stop_timers()
            if controller.session.status == SessionStatus.ENDED:
                continue
            log = logger.bind(session_id=controller.session.id, user_id=controller.session.user_id)
            try:
                await asyncio.wait_for(controller.end(confirmed=True), timeout=timeout)
            except PersistenceError as exc:
                log.error("shutdown_finalize_failed", missing=exc.question_ids, error=str(exc))
            except TimeoutError:
                log.error("shutdown_finalize_timed_out", timeout_seconds=timeout)
            except Exception as exc:
                log.error("shutdown_finalize_failed", error=str(exc), error_type=type(exc).__name__)
            else:
                log.info("session_finalized_at_shutdown", total_score=controller.session.total_score)
        self._sessions.clear()
