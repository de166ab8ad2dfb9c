"""Tests for structlog configuration helpers."""

import asyncio

import pytest
import structlog

from interview_core.core.logging import (
    add_correlation_id,
    order_session_fields,
    redact_code,
    session_log_context,
)
from interview_core.session.controller import SessionController

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def clean_contextvars():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


def test_correlation_id_absent_outside_request():
    event = add_correlation_id(None, "info", {"event": "x"})

    assert "correlation_id" not in event


def test_code_fields_are_replaced_by_size():
    event = redact_code(None, "info", {"event": "draft_saved", "code": "print(1)", "chars": 8})

    assert event == {"event": "draft_saved", "code": "<8 chars>", "chars": 8}


def test_session_fields_lead_the_entry():
    event = order_session_fields(
        None, "info", {"remaining": 5, "question_id": "q1", "event": "tick", "session_id": "s1"}
    )

    assert list(event) == ["event", "session_id", "question_id", "remaining"]


def test_session_log_context_is_restored_on_exit():
    with session_log_context("sess-1", "user-1", "q1"):
        assert structlog.contextvars.get_contextvars() == {
            "session_id": "sess-1",
            "user_id": "user-1",
            "question_id": "q1",
        }

    assert structlog.contextvars.get_contextvars() == {}


async def test_timers_do_not_leak_session_ids_into_caller(
    make_session_config, evaluator, session_store, settings, clock
):
    controller = await SessionController.start(
        make_session_config(),
        evaluator=evaluator,
        store=session_store,
        settings=settings,
        clock=clock,
        run_timers=True,
    )
    await asyncio.sleep(0)

    assert structlog.contextvars.get_contextvars() == {}
    controller.stop_timers()
