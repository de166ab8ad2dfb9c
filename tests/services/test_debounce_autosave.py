"""Tests for DebouncedTaskScheduler and the draft autosaver built on it."""

import asyncio

import pytest

from interview_core.db.draft_store import RedisDraftStore
from interview_core.services.autosave import DraftAutosaver
from interview_core.services.debounce import DebouncedTaskScheduler

pytestmark = pytest.mark.unit

QUIET = 0.05


def recorder(log: list, value):
    async def action():
        log.append(value)

    return action


# ============================================================================
# DebouncedTaskScheduler
# ============================================================================


async def test_only_latest_action_runs_after_quiet_period():
    scheduler = DebouncedTaskScheduler(QUIET)
    ran: list[int] = []

    for value in range(3):
        scheduler.schedule("doc", recorder(ran, value))
        await asyncio.sleep(QUIET / 5)

    assert ran == []
    await asyncio.sleep(QUIET * 3)

    assert ran == [2]
    assert scheduler.is_pending("doc") is False


async def test_keys_are_independent():
    scheduler = DebouncedTaskScheduler(QUIET)
    ran: list[str] = []

    scheduler.schedule("a", recorder(ran, "a"))
    scheduler.schedule("b", recorder(ran, "b"))
    await asyncio.sleep(QUIET * 3)

    assert sorted(ran) == ["a", "b"]


async def test_flush_runs_pending_action_immediately():
    scheduler = DebouncedTaskScheduler(10.0)
    ran: list[int] = []
    scheduler.schedule("doc", recorder(ran, 1))

    assert await scheduler.flush("doc") is True
    assert ran == [1]
    assert await scheduler.flush("doc") is False

    # The cancelled timer never fires a second time
    await asyncio.sleep(0)
    assert ran == [1]


async def test_close_flushes_every_key():
    scheduler = DebouncedTaskScheduler(10.0)
    ran: list[str] = []
    scheduler.schedule("a", recorder(ran, "a"))
    scheduler.schedule("b", recorder(ran, "b"))

    await scheduler.close()

    assert sorted(ran) == ["a", "b"]
    assert scheduler.pending_keys == []


async def test_close_continues_past_failing_action():
    scheduler = DebouncedTaskScheduler(10.0)
    ran: list[str] = []

    async def broken():
        raise RuntimeError("disk full")

    scheduler.schedule("a", broken)
    scheduler.schedule("b", recorder(ran, "b"))

    await scheduler.close()

    assert ran == ["b"]


async def test_failing_background_action_does_not_break_scheduler():
    scheduler = DebouncedTaskScheduler(QUIET)
    ran: list[int] = []

    async def broken():
        raise RuntimeError("boom")

    scheduler.schedule("doc", broken)
    await asyncio.sleep(QUIET * 3)
    scheduler.schedule("doc", recorder(ran, 1))
    await asyncio.sleep(QUIET * 3)

    assert ran == [1]


async def test_running_action_is_not_cancelled_by_reschedule():
    scheduler = DebouncedTaskScheduler(QUIET)
    started = asyncio.Event()
    finished: list[str] = []

    async def slow_save():
        started.set()
        await asyncio.sleep(QUIET / 2)
        finished.append("first")

    scheduler.schedule("doc", slow_save)
    await started.wait()
    scheduler.schedule("doc", recorder(finished, "second"))
    await asyncio.sleep(QUIET * 4)

    assert finished == ["first", "second"]


async def test_actions_for_one_key_never_overlap_and_keep_order():
    scheduler = DebouncedTaskScheduler(QUIET)
    written: list[str] = []
    active = 0
    max_active = 0

    def save(value: str, duration: float):
        async def action():
            nonlocal active, max_active
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(duration)
            written.append(value)
            active -= 1

        return action

    scheduler.schedule("doc", save("old", QUIET * 6))
    await asyncio.sleep(QUIET * 2)
    scheduler.schedule("doc", save("new", 0))
    await asyncio.sleep(QUIET * 10)

    assert max_active == 1
    assert written == ["old", "new"]
    assert scheduler.is_pending("doc") is False


async def test_flush_waits_for_running_action():
    scheduler = DebouncedTaskScheduler(QUIET)
    started = asyncio.Event()
    written: list[str] = []

    async def slow_save():
        started.set()
        await asyncio.sleep(QUIET * 4)
        written.append("saved")

    scheduler.schedule("doc", slow_save)
    await started.wait()
    assert scheduler.is_pending("doc") is True

    assert await scheduler.flush("doc") is True
    assert written == ["saved"]
    assert await scheduler.flush("doc") is False


async def test_flush_runs_waiting_action_after_running_one():
    scheduler = DebouncedTaskScheduler(QUIET)
    started = asyncio.Event()
    written: list[str] = []

    async def slow_save():
        started.set()
        await asyncio.sleep(QUIET * 4)
        written.append("old")

    scheduler.schedule("doc", slow_save)
    await started.wait()
    scheduler.schedule("doc", recorder(written, "new"))

    assert await scheduler.flush("doc") is True
    assert written == ["old", "new"]


async def test_close_waits_for_running_action():
    scheduler = DebouncedTaskScheduler(QUIET)
    started = asyncio.Event()
    written: list[str] = []

    async def slow_save():
        started.set()
        await asyncio.sleep(QUIET * 4)
        written.append("saved")

    scheduler.schedule("doc", slow_save)
    await started.wait()

    await scheduler.close()

    assert written == ["saved"]
    assert scheduler.pending_keys == []


# ============================================================================
# DraftAutosaver
# ============================================================================


async def test_autosave_writes_latest_edit(fake_redis, clock):
    store = RedisDraftStore(fake_redis)
    autosaver = DraftAutosaver(store, QUIET, clock=clock)

    autosaver.on_edit("user-1", "q1", "print('a')", "python")
    autosaver.on_edit("user-1", "q1", "print('ab')", "python", time_spent=12)
    assert autosaver.is_pending("user-1", "q1") is True
    await asyncio.sleep(QUIET * 3)

    draft = await store.get_draft("user-1", "q1")
    assert draft.code == "print('ab')"
    assert draft.time_spent == 12
    assert draft.saved_at == clock.now()
    assert autosaver.is_pending("user-1", "q1") is False


async def test_autosave_close_writes_pending_draft(fake_redis, clock):
    store = RedisDraftStore(fake_redis)
    autosaver = DraftAutosaver(store, 10.0, clock=clock)

    autosaver.on_edit("user-1", "q1", "let x = 1;", "javascript")
    assert await store.get_draft("user-1", "q1") is None

    await autosaver.close()

    draft = await store.get_draft("user-1", "q1")
    assert draft.language == "javascript"
