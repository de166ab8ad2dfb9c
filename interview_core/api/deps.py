"""Shared FastAPI dependencies.

Identity comes from the X-User-Id header set by the upstream gateway; every
dependency here can be replaced through app.dependency_overrides in tests.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request

from interview_core.db.draft_store import RedisDraftStore
from interview_core.db.progress_store import RedisProgressStore
from interview_core.db.redis import get_redis
from interview_core.db.session_store import RedisSessionStore
from interview_core.services.autosave import DraftAutosaver
from interview_core.services.review_service import ReviewService
from interview_core.services.session_manager import SessionManager


@dataclass(frozen=True)
class CurrentUser:
    user_id: str


async def require_user(x_user_id: str | None = Header(default=None)) -> CurrentUser:
    """Resolve the calling user or fail with 401."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return CurrentUser(user_id=x_user_id)


def get_session_manager(request: Request) -> SessionManager:
    manager = getattr(request.app.state, "session_manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Session engine not initialized")
    return manager


def get_review_service(redis=Depends(get_redis)) -> ReviewService:
    return ReviewService(RedisProgressStore(redis))


def get_draft_autosaver(request: Request) -> DraftAutosaver:
    autosaver = getattr(request.app.state, "draft_autosaver", None)
    if autosaver is None:
        raise HTTPException(status_code=503, detail="Draft autosave not initialized")
    return autosaver


def get_session_store(redis=Depends(get_redis)) -> RedisSessionStore:
    return RedisSessionStore(redis)


def get_draft_store(redis=Depends(get_redis)) -> RedisDraftStore:
    return RedisDraftStore(redis)
