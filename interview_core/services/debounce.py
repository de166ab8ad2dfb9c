"""DebouncedTaskScheduler: one pending delayed action per resource key.

schedule() (re)starts the quiet period for a key: any action still waiting
for that key is cancelled and replaced. When the quiet period passes without
new input, the latest action runs. flush() runs a waiting action immediately
and close() flushes every key, for teardown.

An action that has already started is never cancelled by a later schedule().
Actions for the same key run one at a time in the order they became due, so an
older save can never land after a newer one. flush() and close() also wait for
an action that is already running.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)

Action = Callable[[], Awaitable[None]]


@dataclass
class _Pending:
    task: asyncio.Task
    action: Action


class DebouncedTaskScheduler:
    def __init__(self, quiet_seconds: float) -> None:
        self.quiet_seconds = quiet_seconds
        self._pending: dict[str, _Pending] = {}
        # Last action task to start per key; each run waits for the one before it
        self._running: dict[str, asyncio.Task] = {}

    def schedule(self, key: str, action: Action) -> None:
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous.task.cancel()
        task = asyncio.create_task(self._run_later(key, action))
        self._pending[key] = _Pending(task=task, action=action)

    def is_pending(self, key: str) -> bool:
        """True while an action for key is waiting or running."""
        return key in self._pending or key in self._running

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending.keys() | self._running.keys())

    async def flush(self, key: str) -> bool:
        """Run the waiting action for key now, after any running one finishes.

        Returns:
            True if an action was waiting or running, False if nothing was pending

        Raises:
            Whatever the waiting action raises
        """
        entry = self._pending.pop(key, None)
        if entry is None:
            running = self._running.get(key)
            if running is None:
                return False
            await asyncio.wait([running])
            return True
        entry.task.cancel()
        await asyncio.create_task(self._run(key, entry.action))
        return True

    async def close(self) -> None:
        """Flush every pending key and wait for running actions.

        Failures are logged so every key gets its turn.
        """
        for key in list(self._pending):
            try:
                await self.flush(key)
            except Exception as exc:
                logger.error("debounced_flush_failed", key=key, error=str(exc), error_type=type(exc).__name__)
        running = list(self._running.values())
        if running:
            await asyncio.wait(running)

    async def _run_later(self, key: str, action: Action) -> None:
        await asyncio.sleep(self.quiet_seconds)
        entry = self._pending.get(key)
        if entry is not None and entry.task is asyncio.current_task():
            del self._pending[key]
        try:
            await self._run(key, action)
        except Exception as exc:
            logger.error("debounced_action_failed", key=key, error=str(exc), error_type=type(exc).__name__)

    async def _run(self, key: str, action: Action) -> None:
        current = asyncio.current_task()
        previous = self._running.get(key)
        self._running[key] = current
        try:
            if previous is not None:
                await asyncio.wait([previous])
            await action()
        finally:
            if self._running.get(key) is current:
                del self._running[key]
