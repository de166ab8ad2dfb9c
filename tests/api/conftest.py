"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import pytest
from fakeredis import FakeAsyncRedis
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from interview_core.api.deps import get_review_service
from interview_core.db.draft_store import RedisDraftStore
from interview_core.db.progress_store import RedisProgressStore
from interview_core.db.redis import get_redis
from interview_core.db.session_store import RedisSessionStore
from interview_core.services.autosave import DraftAutosaver
from interview_core.services.evaluator_fake import EvaluatorFake
from interview_core.services.review_service import ReviewService
from interview_core.services.session_manager import SessionManager


@pytest.fixture
def api_evaluator():
    """EvaluatorFake shared with the app; tests may switch its scenario."""
    return EvaluatorFake(scenario="correct")


@pytest.fixture
def api_client(api_evaluator, settings, clock):
    """FastAPI test client wired to fakeredis and the fake evaluator.

    Redis is created inside the TestClient's own event loop; timers are off
    so the countdown only moves when a test says so.
    """
    from interview_core.api.routes import api_router
    from interview_core.main import generic_exception_handler, http_exception_handler
    from interview_core.middleware.correlation import setup_correlation_middleware

    resources = {}

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        redis = FakeAsyncRedis(decode_responses=True)
        resources["redis"] = redis
        app.state.session_manager = SessionManager(
            api_evaluator, RedisSessionStore(redis), settings=settings, clock=clock, run_timers=False
        )
        app.state.draft_autosaver = DraftAutosaver(RedisDraftStore(redis), settings.autosave_quiet_seconds, clock=clock)
        yield
        await app.state.session_manager.close()
        await app.state.draft_autosaver.close()
        await redis.aclose()

    app = FastAPI(title="Interview Core - Test Client", lifespan=test_lifespan)
    setup_correlation_middleware(app)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)
    app.include_router(api_router, prefix="/api")
    app.dependency_overrides[get_redis] = lambda: resources["redis"]
    app.dependency_overrides[get_review_service] = lambda: ReviewService(
        RedisProgressStore(resources["redis"]), settings=settings, clock=clock
    )

    with TestClient(app) as client:
        yield client
