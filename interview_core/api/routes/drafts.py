"""Free-practice editor drafts, saved after a quiet period."""

from fastapi import APIRouter, Depends, HTTPException

from interview_core.api.deps import CurrentUser, get_draft_autosaver, get_draft_store, require_user
from interview_core.db.draft_store import Draft, RedisDraftStore
from interview_core.schemas.drafts import SaveDraftRequest
from interview_core.services.autosave import DraftAutosaver

router = APIRouter()


@router.put("/{question_id}", status_code=202)
async def save_draft(
    question_id: str,
    request: SaveDraftRequest,
    user: CurrentUser = Depends(require_user),
    autosaver: DraftAutosaver = Depends(get_draft_autosaver),
):
    """Queue a draft save; only the latest edit within the quiet period is written."""
    autosaver.on_edit(user.user_id, question_id, request.code, request.language, request.time_spent)
    return {"status": "scheduled", "question_id": question_id}


@router.get("/{question_id}", response_model=Draft)
async def get_draft(
    question_id: str,
    user: CurrentUser = Depends(require_user),
    autosaver: DraftAutosaver = Depends(get_draft_autosaver),
    store: RedisDraftStore = Depends(get_draft_store),
):
    # A pending save is written first so readers see their latest edit
    await autosaver.flush(user.user_id, question_id)
    draft = await store.get_draft(user.user_id, question_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return draft
