"""Table models and API schemas for users, sessions, messages and evaluations."""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import Column, JSON, Text
from sqlmodel import Field, SQLModel
from uuid import uuid4

from .state import (
    DimensionScore,
    MessageRole,
    PromptEfficiency,
    SessionStatus,
    ValidationFlag,
)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """Database model for a platform user."""

    __tablename__ = "users"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    username: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=utc_now)


class Session(SQLModel, table=True):
    """Database model for one prompt-development attempt."""

    __tablename__ = "sessions"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    problem_statement: str = Field(sa_column=Column(Text, nullable=False))
    system_prompt: str = Field(sa_column=Column(Text, nullable=False))
    use_case_prompt: Optional[str] = Field(default=None, sa_column=Column(Text))
    context_data: Optional[str] = Field(default=None, sa_column=Column(Text))
    compiled_prompt: str = Field(sa_column=Column(Text, nullable=False))
    attempt_number: int = 1
    validation_flags: Optional[list[dict]] = Field(default=None, sa_column=Column(JSON))
    status: str = Field(default=SessionStatus.DRAFT.value, index=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    evaluated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Message(SQLModel, table=True):
    """Database model for one turn of a simulated conversation."""

    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    session_id: str = Field(foreign_key="sessions.id", index=True)
    role: str
    content: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=utc_now)


class Evaluation(SQLModel, table=True):
    """Database model for the judge's verdict on a session."""

    __tablename__ = "evaluations"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    session_id: str = Field(foreign_key="sessions.id", index=True, unique=True)
    rubric_version: str
    overall_score: int
    computed_score: Optional[int] = None
    dimension_scores: dict = Field(default_factory=dict, sa_column=Column(JSON))
    strengths: list = Field(default_factory=list, sa_column=Column(JSON))
    improvements: list = Field(default_factory=list, sa_column=Column(JSON))
    prompt_efficiency: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now)


class SessionCreate(SQLModel):
    """Schema for creating a new session."""
    problem_statement: str
    system_prompt: str
    use_case_prompt: Optional[str] = None
    context_data: Optional[str] = None


class SessionResponse(SQLModel):
    """Schema for session API response."""
    id: str
    problem_statement: str
    system_prompt: str
    use_case_prompt: Optional[str]
    context_data: Optional[str]
    compiled_prompt: str
    attempt_number: int
    validation_flags: Optional[list[ValidationFlag]]
    status: SessionStatus
    created_at: datetime
    updated_at: datetime
    evaluated_at: Optional[datetime]
    completed_at: Optional[datetime]


class MessageResponse(SQLModel):
    """Schema for a conversation turn."""
    id: int
    role: MessageRole
    content: str
    created_at: datetime


class DimensionResult(DimensionScore):
    """Dimension score with its display label and verdict band."""
    label: str
    verdict: str


class EvaluationResponse(SQLModel):
    """Schema for evaluation API response."""
    session_id: str
    rubric_version: str
    overall_score: int
    computed_score: Optional[int]
    dimension_scores: dict[str, DimensionResult]
    strengths: list[str]
    improvements: list[str]
    prompt_efficiency: Optional[PromptEfficiency]
    created_at: datetime
