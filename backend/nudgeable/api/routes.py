"""API routes for the Nudgeable practice platform."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pydantic import BaseModel

from nudgeable.agents.rubric import get_rubric, verdict_for
from nudgeable.config import settings
from nudgeable.errors import UnauthorizedError
from nudgeable.models import (
    DimensionResult,
    DimensionScore,
    Evaluation,
    EvaluationResponse,
    MessageResponse,
    ProgressSummary,
    PromptEfficiency,
    SessionCreate,
    SessionResponse,
    User,
    ValidationFlag,
    utc_now,
)
from nudgeable.services import SessionLifecycle
from nudgeable.services.spreadsheet import (
    check_excel_upload,
    format_for_context,
    read_workbook,
    summarize_sheets,
)


router = APIRouter()


# Request/Response models
class CreateSessionResponse(BaseModel):
    """Response after creating a session."""
    success: bool = True
    session_id: str
    attempt_number: int


class EvaluationSummary(BaseModel):
    """Evaluation fields shown in session lists."""
    overall_score: int
    dimension_scores: dict[str, DimensionScore]
    strengths: list[str]
    improvements: list[str]


class SessionListItem(SessionResponse):
    """Session with its evaluation summary, if complete."""
    evaluation: Optional[EvaluationSummary] = None


class SessionListResponse(BaseModel):
    sessions: list[SessionListItem]


class SessionDetailResponse(SessionResponse):
    """Session with its full evaluation and message count."""
    evaluation: Optional[EvaluationResponse] = None
    message_count: int


class ValidationResponse(BaseModel):
    flags: list[ValidationFlag]
    status: str
    has_errors: bool


class ChatRequest(BaseModel):
    """Request to send one simulated user message."""
    message: str


class ChatResponse(BaseModel):
    reply: str
    message_count: int


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
    count: int


class EvaluateResponse(BaseModel):
    success: bool = True
    session_id: str
    status: str
    evaluation: EvaluationResponse


class SheetSummary(BaseModel):
    name: str
    row_count: int
    columns: list[str]


class UploadResponse(BaseModel):
    success: bool = True
    file_name: str
    sheets: list[SheetSummary]
    formatted_context: str


# Dependencies
_lifecycle: Optional[SessionLifecycle] = None


def get_lifecycle() -> SessionLifecycle:
    """Process-wide lifecycle service."""
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = SessionLifecycle()
    return _lifecycle


def get_current_user(
    request: Request,
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
) -> User:
    """Resolve the authenticated username from the session cookie."""
    username = request.cookies.get(settings.auth_cookie_name)
    if not username:
        raise UnauthorizedError("Unauthorized")
    return lifecycle.sessions.get_or_create_user(username)


def build_evaluation_response(evaluation: Evaluation) -> EvaluationResponse:
    """Attach rubric labels and verdict bands to stored dimension scores."""
    try:
        rubric = get_rubric(evaluation.rubric_version)
    except ValueError:
        rubric = None

    dimensions = {}
    for key, value in (evaluation.dimension_scores or {}).items():
        score = DimensionScore.model_validate(value)
        if rubric and key in rubric.keys:
            label = rubric.dimension(key).label
        else:
            label = key.replace("_", " ").title()
        dimensions[key] = DimensionResult(
            **score.model_dump(),
            label=label,
            verdict=verdict_for(score.score, score.max),
        )

    return EvaluationResponse(
        session_id=evaluation.session_id,
        rubric_version=evaluation.rubric_version,
        overall_score=evaluation.overall_score,
        computed_score=evaluation.computed_score,
        dimension_scores=dimensions,
        strengths=evaluation.strengths or [],
        improvements=evaluation.improvements or [],
        prompt_efficiency=(
            PromptEfficiency.model_validate(evaluation.prompt_efficiency)
            if evaluation.prompt_efficiency else None
        ),
        created_at=evaluation.created_at,
    )


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": utc_now().isoformat()}


@router.post("/api/sessions", response_model=CreateSessionResponse)
async def create_session(
    request: SessionCreate,
    user: User = Depends(get_current_user),
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """Create a new draft attempt for a problem statement."""
    session = lifecycle.create_session(user, request)
    return CreateSessionResponse(session_id=session.id, attempt_number=session.attempt_number)


@router.get("/api/sessions", response_model=SessionListResponse)
async def list_sessions(
    user: User = Depends(get_current_user),
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """List the user's sessions, newest first."""
    items = []
    for session, evaluation in lifecycle.list_sessions(user):
        summary = None
        if evaluation:
            summary = EvaluationSummary(
                overall_score=evaluation.overall_score,
                dimension_scores=evaluation.dimension_scores or {},
                strengths=evaluation.strengths or [],
                improvements=evaluation.improvements or [],
            )
        items.append(SessionListItem(
            **SessionResponse.model_validate(session).model_dump(),
            evaluation=summary,
        ))
    return SessionListResponse(sessions=items)


@router.get("/api/sessions/{session_id}", response_model=SessionDetailResponse)
async def get_session(
    session_id: str,
    user: User = Depends(get_current_user),
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """
    Get a session with its evaluation.

    Clients poll this endpoint to observe ``evaluating`` → ``complete``.
    """
    session = lifecycle.get_session(user, session_id)
    evaluation = lifecycle.sessions.get_evaluation(session_id)
    return SessionDetailResponse(
        **SessionResponse.model_validate(session).model_dump(),
        evaluation=build_evaluation_response(evaluation) if evaluation else None,
        message_count=lifecycle.sessions.count_messages(session_id),
    )


@router.post("/api/sessions/{session_id}/validate", response_model=ValidationResponse)
async def validate_session(
    session_id: str,
    user: User = Depends(get_current_user),
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """Run the static validator over the session's system prompt."""
    result = lifecycle.validate_session(user, session_id)
    return ValidationResponse(flags=result.flags, status=result.status, has_errors=result.has_errors)


@router.post("/api/sessions/{session_id}/chat", response_model=ChatResponse)
async def chat(
    session_id: str,
    request: ChatRequest,
    user: User = Depends(get_current_user),
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """Send one simulated user message to the agent under test."""
    turn = await lifecycle.send_message(user, session_id, request.message)
    return ChatResponse(reply=turn.reply, message_count=turn.message_count)


@router.get("/api/sessions/{session_id}/messages", response_model=MessageListResponse)
async def list_messages(
    session_id: str,
    user: User = Depends(get_current_user),
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """Get the conversation in order."""
    messages = lifecycle.get_messages(user, session_id)
    return MessageListResponse(
        messages=[MessageResponse.model_validate(m) for m in messages],
        count=len(messages),
    )


@router.post("/api/sessions/{session_id}/evaluate", response_model=EvaluateResponse)
async def evaluate_session(
    session_id: str,
    user: User = Depends(get_current_user),
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """
    Grade the conversation and complete the session.

    Runs the full judge protocol before responding; model calls can take
    10-15 seconds.
    """
    evaluation = await lifecycle.request_evaluation(user, session_id)
    session = lifecycle.get_session(user, session_id)
    return EvaluateResponse(
        session_id=session_id,
        status=session.status,
        evaluation=build_evaluation_response(evaluation),
    )


@router.get("/api/users/me/progress", response_model=ProgressSummary)
async def get_progress(
    user: User = Depends(get_current_user),
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """Score history grouped by problem statement."""
    return lifecycle.get_progress(user)


@router.post("/api/upload/excel", response_model=UploadResponse)
async def upload_excel(
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
):
    """Convert an uploaded workbook into a context data block."""
    check_excel_upload(file.filename or "", file.content_type)
    sheets = read_workbook(await file.read())
    return UploadResponse(
        file_name=file.filename or "",
        sheets=[SheetSummary(**s) for s in summarize_sheets(sheets)],
        formatted_context=format_for_context(sheets),
    )
