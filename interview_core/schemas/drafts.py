"""Pydantic schemas for free-practice editor drafts."""

from pydantic import BaseModel, Field


class SaveDraftRequest(BaseModel):
    code: str
    language: str
    time_spent: int = Field(default=0, ge=0)
