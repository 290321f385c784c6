"""Models package."""
from .state import (
    DimensionScore,
    FlagLevel,
    JudgeState,
    JudgeVerdict,
    MessageRole,
    PromptEfficiency,
    RedundancyFlag,
    SessionStatus,
    ValidationFlag,
)
from .session import (
    utc_now,
    DimensionResult,
    Evaluation,
    EvaluationResponse,
    Message,
    MessageResponse,
    Session,
    SessionCreate,
    SessionResponse,
    User,
)
from .progress import Attempt, ProgressSummary, UseCase, UseCaseSummary

__all__ = [
    "Attempt",
    "DimensionResult",
    "DimensionScore",
    "Evaluation",
    "EvaluationResponse",
    "FlagLevel",
    "JudgeState",
    "JudgeVerdict",
    "Message",
    "MessageResponse",
    "MessageRole",
    "ProgressSummary",
    "PromptEfficiency",
    "RedundancyFlag",
    "Session",
    "SessionCreate",
    "SessionResponse",
    "SessionStatus",
    "UseCase",
    "UseCaseSummary",
    "User",
    "ValidationFlag",
    "utc_now",
]
