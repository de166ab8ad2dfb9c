from fastapi import APIRouter

from interview_core.api.routes import drafts, health, reviews, sessions

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
api_router.include_router(drafts.router, prefix="/drafts", tags=["drafts"])
