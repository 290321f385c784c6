"""Error taxonomy for the Nudgeable core.

Every error carries a stable ``code`` and the HTTP ``status_code`` the API
layer answers with. Retryable upstream failures set ``retryable``.
"""
from typing import Optional


class NudgeableError(Exception):
    """Base class for errors surfaced by the core."""

    code = "internal_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Input errors

class InvalidInputError(NudgeableError):
    """A required field is missing or malformed."""
    code = "invalid_input"
    status_code = 400


class UnauthorizedError(NudgeableError):
    """No authenticated username is available for the request."""
    code = "unauthorized"
    status_code = 401


class SessionNotFoundError(NudgeableError):
    """The session does not exist or belongs to another user."""
    code = "session_not_found"
    status_code = 404

    def __init__(self, session_id: str):
        super().__init__("Session not found")
        self.session_id = session_id


# Guard violations

class SessionStateError(NudgeableError):
    """The operation is not allowed in the session's current status."""
    code = "invalid_session_state"
    status_code = 409

    def __init__(self, message: str, status: str):
        super().__init__(message)
        self.status = status


class ValidationRequiredError(NudgeableError):
    """The prompt has not passed validation, so simulation may not start."""
    code = "validation_required"
    status_code = 409


class EvaluationGuardError(NudgeableError):
    """Evaluation was requested before enough exchanges took place."""
    code = "not_enough_messages"
    status_code = 400

    def __init__(self, message_count: int, required: int):
        super().__init__(
            f"Minimum of {required // 2} exchanges ({required} messages) required "
            f"before evaluation; session has {message_count}"
        )
        self.message_count = message_count
        self.required = required


# Upstream model errors

class ModelCallError(NudgeableError):
    """The generative model call failed."""
    code = "model_error"
    status_code = 502


class ModelQuotaError(ModelCallError):
    """The provider rejected the call for rate-limit or quota reasons."""
    code = "model_quota_exceeded"
    status_code = 429
    retryable = True

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class ModelTimeoutError(ModelCallError):
    """The model did not answer in time."""
    code = "model_timeout"
    status_code = 504
    retryable = True


class EvaluationParseError(NudgeableError):
    """The judge response was not valid JSON or did not match the rubric."""
    code = "evaluation_parse_error"
    status_code = 502

    def __init__(self, reason: str, raw_response: str = ""):
        super().__init__(f"Judge response could not be parsed: {reason}")
        self.reason = reason
        self.raw_response = raw_response


# Persistence

class PersistenceError(NudgeableError):
    """A read or write against the relational store failed."""
    code = "persistence_error"
    status_code = 500


class SpreadsheetError(NudgeableError):
    """An uploaded workbook could not be read."""
    code = "spreadsheet_error"
    status_code = 400
