"""SnapshotRecorder: periodic capture of in-progress code.

Fires on a fixed period independent of navigation. Each firing captures the
active question's code, but only if it differs from the language template.
History per question is capped; the oldest snapshots are evicted first.

The recorder never touches a QuestionState directly from its own task: it
posts CaptureSnapshot into the controller, which calls capture() while holding
the session lock.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from interview_core.core.clock import Clock
from interview_core.domain.question_state import QuestionState, Snapshot
from interview_core.session.events import CaptureSnapshot

if TYPE_CHECKING:
    from interview_core.session.controller import SessionController

logger = structlog.get_logger(__name__)


class SnapshotRecorder:
    def __init__(self, clock: Clock, cap: int, interval_seconds: float) -> None:
        if cap < 1:
            raise ValueError(f"Snapshot cap must be positive, got {cap}")
        self._clock = clock
        self.cap = cap
        self.interval_seconds = interval_seconds

    def capture(self, state: QuestionState) -> Snapshot | None:
        """Append a snapshot of state's code if it has been edited.

        Only the snapshot list is written.

        Returns:
            The new Snapshot, or None if the code is still the template
        """
        if not state.is_edited:
            return None
        snapshot = Snapshot(captured_at=self._clock.now(), code=state.current_code)
        state.add_snapshot(snapshot, self.cap)
        logger.debug(
            "snapshot_captured",
            question_id=state.question_id,
            snapshot_count=len(state.snapshots),
        )
        return snapshot

    async def run(self, controller: SessionController) -> None:
        """Post CaptureSnapshot every interval while the session is active.

        Intended to run as: ``asyncio.create_task(recorder.run(controller))``
        """
        while controller.is_active:
            await asyncio.sleep(self.interval_seconds)
            if not controller.is_active:
                return
            await controller.dispatch(CaptureSnapshot())
