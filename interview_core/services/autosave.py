"""DraftAutosaver: debounced saving for the free-practice code editor.

Each edit replaces the pending save for that (user, question) and restarts the
quiet period; only the latest edit is written. close() writes any pending
draft immediately when the editor goes away.
"""

import structlog

from interview_core.core.clock import Clock, SystemClock
from interview_core.db.draft_store import Draft, DraftStore
from interview_core.services.debounce import DebouncedTaskScheduler

logger = structlog.get_logger(__name__)


class DraftAutosaver:
    def __init__(self, store: DraftStore, quiet_seconds: float, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._scheduler = DebouncedTaskScheduler(quiet_seconds)

    @staticmethod
    def _key(user_id: str, question_id: str) -> str:
        return f"{user_id}:{question_id}"

    def on_edit(self, user_id: str, question_id: str, code: str, language: str, time_spent: int = 0) -> None:
        """Schedule a save of this editor state after the quiet period."""

        async def save() -> None:
            draft = Draft(
                user_id=user_id,
                question_id=question_id,
                code=code,
                language=language,
                time_spent=time_spent,
                saved_at=self._clock.now(),
            )
            await self._store.save_draft(draft)
            logger.debug("draft_saved", user_id=user_id, question_id=question_id, chars=len(code))

        self._scheduler.schedule(self._key(user_id, question_id), save)

    def is_pending(self, user_id: str, question_id: str) -> bool:
        return self._scheduler.is_pending(self._key(user_id, question_id))

    async def flush(self, user_id: str, question_id: str) -> bool:
        return await self._scheduler.flush(self._key(user_id, question_id))

    async def close(self) -> None:
        await self._scheduler.close()
