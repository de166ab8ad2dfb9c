"""Timed interview session API routes."""

from fastapi import APIRouter, Depends, HTTPException, Response

from interview_core.api.deps import CurrentUser, get_session_manager, get_session_store, require_user
from interview_core.core.exceptions import (
    ActiveSessionExistsError,
    ConfigError,
    EvaluatorError,
    PersistenceError,
    SessionNotFoundError,
    SessionStateError,
    SubmissionRejectedError,
    ValidationError,
)
from interview_core.db.session_store import RedisSessionStore
from interview_core.domain.session import SessionConfig
from interview_core.schemas.sessions import (
    ActionRequest,
    ActionResponse,
    EndSessionRequest,
    FinalizeResponse,
    NavigateRequest,
    SessionResultsResponse,
    SessionView,
    StartSessionRequest,
    SubmitRequest,
    SubmitResponse,
)
from interview_core.services.session_manager import SessionManager
from interview_core.session.controller import SessionController
from interview_core.session.events import USER_ACTIONS, ChangeCode, ChangeLanguage

router = APIRouter()


def _load(manager: SessionManager, session_id: str, user: CurrentUser) -> SessionController:
    try:
        return manager.get(session_id, user_id=user.user_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")


def _require_active(controller: SessionController) -> None:
    if not controller.is_active:
        raise HTTPException(status_code=409, detail=f"Session is {controller.session.status}")


@router.post("", status_code=201, response_model=SessionView)
async def start_session(
    request: StartSessionRequest,
    user: CurrentUser = Depends(require_user),
    manager: SessionManager = Depends(get_session_manager),
):
    """Start a timed session for the calling user.

    Raises:
        HTTPException(409): User already has a session that has not ended
        HTTPException(422): Configuration cannot be started
    """
    config = SessionConfig(
        user_id=user.user_id,
        time_limit_seconds=request.time_limit_seconds,
        questions=request.questions,
        session_type=request.session_type,
        language=request.language,
    )
    try:
        controller = await manager.start(config)
    except ActiveSessionExistsError as e:
        raise HTTPException(status_code=409, detail=f"Active session already exists: {e.session_id}")
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return SessionView.from_controller(controller)


@router.get("/{session_id}", response_model=SessionView)
async def get_session(
    session_id: str,
    user: CurrentUser = Depends(require_user),
    manager: SessionManager = Depends(get_session_manager),
):
    return SessionView.from_controller(_load(manager, session_id, user))


@router.get("/{session_id}/results", response_model=SessionResultsResponse)
async def get_session_results(
    session_id: str,
    user: CurrentUser = Depends(require_user),
    store: RedisSessionStore = Depends(get_session_store),
):
    """Persisted results of an ended session, available after discard or restart.

    Raises:
        HTTPException(404): No such session for this user
        HTTPException(409): Session has not ended yet
    """
    stored = await store.get_session(session_id)
    if stored is None or stored["user_id"] != user.user_id:
        raise HTTPException(status_code=404, detail="Session not found")
    if stored["status"] != "ended":
        raise HTTPException(status_code=409, detail=f"Session is {stored['status']}")
    records = await store.get_results(session_id)
    return SessionResultsResponse.from_stored(session_id, stored, records)


@router.delete("/{session_id}", status_code=204)
async def discard_session(
    session_id: str,
    user: CurrentUser = Depends(require_user),
    manager: SessionManager = Depends(get_session_manager),
):
    """Forget an ended session. Returns 409 while it is still running."""
    controller = _load(manager, session_id, user)
    if controller.outcome is None:
        raise HTTPException(status_code=409, detail="Session has not ended")
    manager.discard(session_id)
    return Response(status_code=204)


@router.post("/{session_id}/navigate", response_model=SessionView)
async def navigate(
    session_id: str,
    request: NavigateRequest,
    user: CurrentUser = Depends(require_user),
    manager: SessionManager = Depends(get_session_manager),
):
    controller = _load(manager, session_id, user)
    _require_active(controller)
    if not await controller.navigate(request.target_index):
        raise HTTPException(status_code=400, detail=f"Question index out of range: {request.target_index}")
    return SessionView.from_controller(controller)


@router.post("/{session_id}/actions", response_model=ActionResponse)
async def apply_action(
    session_id: str,
    request: ActionRequest,
    user: CurrentUser = Depends(require_user),
    manager: SessionManager = Depends(get_session_manager),
):
    """Apply one editor or question action to the active question."""
    controller = _load(manager, session_id, user)
    _require_active(controller)

    if request.action == "code":
        if request.code is None:
            raise HTTPException(status_code=422, detail="Action 'code' requires 'code'")
        event = ChangeCode(request.code)
    elif request.action == "language":
        if request.language is None:
            raise HTTPException(status_code=422, detail="Action 'language' requires 'language'")
        event = ChangeLanguage(request.language)
    else:
        event = USER_ACTIONS[request.action]()

    applied = await controller.dispatch(event)
    if request.action == "language" and not applied:
        raise HTTPException(status_code=422, detail=f"Unsupported language: {request.language}")
    return ActionResponse(applied=applied, session=SessionView.from_controller(controller))


@router.post("/{session_id}/submissions", response_model=SubmitResponse)
async def submit(
    session_id: str,
    request: SubmitRequest,
    user: CurrentUser = Depends(require_user),
    manager: SessionManager = Depends(get_session_manager),
):
    """Submit code for evaluation and wait for the verdict.

    Raises:
        HTTPException(422): Code too short
        HTTPException(409): Question pending, already solved, or session not active
        HTTPException(503): Evaluator temporarily unavailable; resubmission allowed
        HTTPException(502): Evaluator failed permanently or the call was abandoned
    """
    controller = _load(manager, session_id, user)
    try:
        result = await controller.submit(request.question_id, request.code, request.language)
    except SubmissionRejectedError as e:
        raise HTTPException(status_code=409, detail=e.reason)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except EvaluatorError as e:
        raise HTTPException(status_code=503 if e.retryable else 502, detail=str(e))
    state = controller.states[request.question_id]
    return SubmitResponse(question_id=request.question_id, status=state.status.value, evaluation=result)


@router.post("/{session_id}/end", response_model=FinalizeResponse)
async def end_session(
    session_id: str,
    request: EndSessionRequest,
    user: CurrentUser = Depends(require_user),
    manager: SessionManager = Depends(get_session_manager),
):
    """End the session early. Requires {"confirmed": true}."""
    controller = _load(manager, session_id, user)
    if not request.confirmed:
        raise HTTPException(status_code=400, detail="Ending a session requires confirmation")
    try:
        outcome = await controller.end(confirmed=True)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return FinalizeResponse.from_outcome(outcome)


@router.post("/{session_id}/finalize/retry", response_model=FinalizeResponse)
async def retry_finalize(
    session_id: str,
    user: CurrentUser = Depends(require_user),
    manager: SessionManager = Depends(get_session_manager),
):
    """Retry persistence for a session whose results are not all written yet."""
    controller = _load(manager, session_id, user)
    try:
        outcome = await controller.retry_finalize()
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return FinalizeResponse.from_outcome(outcome)
