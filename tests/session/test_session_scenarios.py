"""End-to-end session scenarios: solve then expire, evaluator failure, snapshots."""

from datetime import timedelta

import pytest

from interview_core.core.exceptions import EvaluatorError
from interview_core.domain.session import SessionStatus
from interview_core.session.controller import SessionController
from interview_core.session.events import CaptureSnapshot, ChangeCode

pytestmark = pytest.mark.unit


async def run_seconds(controller, clock, seconds: int) -> None:
    for _ in range(seconds):
        clock.advance(1)
        await controller.tick()


async def test_solve_first_then_let_timer_expire(
    make_session_config, evaluator, session_store, settings, clock, solution_code
):
    controller = await SessionController.start(
        make_session_config(question_count=2, time_limit_seconds=600),
        evaluator=evaluator,
        store=session_store,
        settings=settings,
        clock=clock,
        session_id="sess-a",
        run_timers=False,
    )

    await run_seconds(controller, clock, 120)
    await controller.submit("q1", solution_code, "python")
    await controller.navigate(1)
    await run_seconds(controller, clock, 480)

    assert controller.session.status == SessionStatus.ENDED
    outcome = controller.outcome
    assert outcome.total_score == 100

    q1, q2 = outcome.results
    assert (q1.question_id, q1.is_solved, q1.time_spent) == ("q1", True, 120)
    assert (q2.question_id, q2.is_solved, q2.skipped, q2.time_spent) == ("q2", False, False, 480)

    stored = {r.question_id: r for r in await session_store.get_results("sess-a")}
    assert stored["q1"].is_solved is True
    assert stored["q2"].time_spent == 480
    session_record = await session_store.get_session("sess-a")
    assert session_record["status"] == "ended"
    assert session_record["total_score"] == "100"


async def test_evaluator_error_then_resubmit(
    make_session_config, evaluator_failing, session_store, settings, clock, solution_code
):
    controller = await SessionController.start(
        make_session_config(question_count=1),
        evaluator=evaluator_failing,
        store=session_store,
        settings=settings,
        clock=clock,
        run_timers=False,
    )

    with pytest.raises(EvaluatorError):
        await controller.submit("q1", solution_code, "python")
    assert controller.states["q1"].is_solved is False

    evaluator_failing.scenario = "correct"
    await controller.submit("q1", solution_code, "python")
    outcome = await controller.end(confirmed=True)

    (result,) = outcome.results
    assert result.is_solved is True
    assert result.submission_count == 1
    assert result.hints_used == 0


async def test_snapshots_only_for_edited_question(make_session_config, evaluator, session_store, settings, clock):
    controller = await SessionController.start(
        make_session_config(question_count=2, time_limit_seconds=300),
        evaluator=evaluator,
        store=session_store,
        settings=settings,
        clock=clock,
        run_timers=False,
    )

    period = int(settings.snapshot_interval_seconds)
    for second in range(1, 301):
        if controller.is_active:
            await controller.dispatch(ChangeCode(f"class Solution:\n    # revision {second}\n    pass\n"))
        clock.advance(1)
        await controller.tick()
        # The recorder posts CaptureSnapshot once per period
        if second % period == 0:
            await controller.dispatch(CaptureSnapshot())

    assert controller.session.status == SessionStatus.ENDED
    created = controller.session.created_at
    q1, q2 = controller.outcome.results
    assert [s.captured_at for s in q1.snapshots] == [created + timedelta(seconds=120), created + timedelta(seconds=240)]
    assert q2.snapshots == []
