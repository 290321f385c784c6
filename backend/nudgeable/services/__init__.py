"""Services package."""
from .lifecycle import ChatTurn, SessionLifecycle, ValidationResult
from .progress import aggregate, summarize
from .session_service import SessionService, compile_prompt, session_service
from .validator import PromptValidator, has_blocking_errors, validate

__all__ = [
    "ChatTurn",
    "PromptValidator",
    "SessionLifecycle",
    "SessionService",
    "ValidationResult",
    "aggregate",
    "compile_prompt",
    "has_blocking_errors",
    "session_service",
    "summarize",
    "validate",
]
