"""Session lifecycle: draft → simulating → evaluating → complete.

``SessionLifecycle`` owns every status transition and its guard. Store
access goes through ``SessionService``; model access goes through the
simulator and the judge protocol.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from nudgeable.agents.judge import JudgeProtocol
from nudgeable.agents.rubric import get_rubric
from nudgeable.agents.simulator import SupportAgentSimulator
from nudgeable.config import settings
from nudgeable.errors import (
    EvaluationGuardError,
    InvalidInputError,
    SessionNotFoundError,
    SessionStateError,
    ValidationRequiredError,
)
from nudgeable.models import (
    Evaluation,
    Message,
    ProgressSummary,
    Session,
    SessionCreate,
    SessionStatus,
    User,
    ValidationFlag,
    utc_now,
)
from .progress import aggregate, summarize
from .session_service import SessionService, session_service
from .validator import PromptValidator, has_blocking_errors

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of one validation run."""
    flags: list[ValidationFlag]
    status: str
    has_errors: bool


@dataclass
class ChatTurn:
    """Reply of one simulated turn."""
    reply: str
    message_count: int


class SessionLifecycle:
    """State machine for a user's prompt-development attempts."""

    def __init__(
        self,
        sessions: Optional[SessionService] = None,
        validator: Optional[PromptValidator] = None,
        simulator: Optional[SupportAgentSimulator] = None,
        judge: Optional[JudgeProtocol] = None,
        min_evaluation_messages: Optional[int] = None,
    ):
        self.sessions = sessions or session_service
        self.validator = validator or PromptValidator()
        self.simulator = simulator or SupportAgentSimulator()
        self.judge = judge or JudgeProtocol(get_rubric(settings.rubric_version))
        self.min_evaluation_messages = (
            settings.min_evaluation_messages
            if min_evaluation_messages is None
            else min_evaluation_messages
        )

    # Reads

    def get_session(self, user: User, session_id: str) -> Session:
        """Fetch a session owned by ``user``."""
        session = self.sessions.get_by_id(session_id)
        if not session or session.user_id != user.id:
            raise SessionNotFoundError(session_id)
        return session

    def list_sessions(self, user: User) -> list[tuple[Session, Optional[Evaluation]]]:
        """All of the user's sessions, newest first, with evaluations of completed ones."""
        sessions = self.sessions.list_for_user(user.id)
        completed = [s.id for s in sessions if s.status == SessionStatus.COMPLETE.value]
        evaluations = self.sessions.get_evaluations(completed)
        return [(s, evaluations.get(s.id)) for s in sessions]

    def get_messages(self, user: User, session_id: str) -> list[Message]:
        self.get_session(user, session_id)
        return self.sessions.get_messages(session_id)

    def get_evaluation(self, user: User, session_id: str) -> Optional[Evaluation]:
        self.get_session(user, session_id)
        return self.sessions.get_evaluation(session_id)

    def get_progress(self, user: User) -> ProgressSummary:
        """Per-use-case score history over the user's completed sessions."""
        records = self.sessions.list_completed_with_evaluations(user.id)
        return summarize(aggregate(records))

    # Transitions

    def create_session(self, user: User, data: SessionCreate) -> Session:
        """Create a draft session; attempt numbers count per problem statement."""
        if not (data.problem_statement or "").strip() or not (data.system_prompt or "").strip():
            raise InvalidInputError("Problem statement and system prompt are required")

        session = self.sessions.create(user.id, data)
        logger.info(
            "Created session %s for %s (attempt %d)",
            session.id, user.username, session.attempt_number,
        )
        return session

    def validate_session(self, user: User, session_id: str) -> ValidationResult:
        """
        Run the static validator and overwrite the stored result.

        Blocking errors return the session to ``draft``; a clean result
        leaves the status as it was.
        """
        session = self.get_session(user, session_id)
        if session.status not in (SessionStatus.DRAFT.value, SessionStatus.SIMULATING.value):
            raise SessionStateError(
                f"Cannot validate a session that is {session.status}", session.status
            )

        flags = self.validator.validate(session.system_prompt, session.context_data)
        has_errors = has_blocking_errors(flags)
        status = SessionStatus.DRAFT.value if has_errors else session.status

        self.sessions.save_validation(session_id, flags, status)
        logger.info(
            "Validated session %s: %d flags, blocking=%s",
            session_id, len(flags), has_errors,
        )
        return ValidationResult(flags=flags, status=status, has_errors=has_errors)

    async def send_message(self, user: User, session_id: str, message: str) -> ChatTurn:
        """
        Run one simulated turn and persist the exchange.

        The first successful turn moves a ``draft`` session to ``simulating``.
        Nothing is written when the model call fails.
        """
        if not message or not message.strip():
            raise InvalidInputError("Message is required")

        session = self.get_session(user, session_id)
        if session.status not in (SessionStatus.DRAFT.value, SessionStatus.SIMULATING.value):
            raise SessionStateError(
                f"Cannot chat in a session that is {session.status}", session.status
            )

        starting = session.status == SessionStatus.DRAFT.value
        if starting:
            if session.validation_flags is None:
                raise ValidationRequiredError("Validate the prompt before starting the simulation")
            flags = [ValidationFlag.model_validate(f) for f in session.validation_flags]
            if has_blocking_errors(flags):
                raise ValidationRequiredError(
                    "Fix the validation errors in your prompt before starting the simulation"
                )

        history = self.sessions.get_messages(session_id)
        reply = await self.simulator.reply(session.compiled_prompt, history, message)

        count = self.sessions.add_exchange(
            session_id, message, reply, start_simulation=starting,
        )
        if starting:
            logger.info("Session %s is now simulating", session_id)
        return ChatTurn(reply=reply, message_count=count)

    async def request_evaluation(self, user: User, session_id: str) -> Evaluation:
        """
        Grade the session's transcript once and complete the session.

        A session that is already complete is rejected. A session whose
        evaluation was stored but whose status never reached ``complete`` is
        repaired without calling the judge again. On any judge failure the
        session stays ``evaluating`` so the request can be retried.
        """
        session = self.get_session(user, session_id)
        if session.status == SessionStatus.COMPLETE.value:
            raise SessionStateError("Session has already been evaluated", session.status)

        existing = self.sessions.get_evaluation(session_id)
        if existing:
            logger.warning("Session %s has an evaluation but status %s; repairing", session_id, session.status)
            self.sessions.update(
                session_id,
                status=SessionStatus.COMPLETE.value,
                completed_at=utc_now(),
            )
            return existing

        message_count = self.sessions.count_messages(session_id)
        if message_count < self.min_evaluation_messages:
            raise EvaluationGuardError(message_count, self.min_evaluation_messages)

        session = self.sessions.update(
            session_id,
            status=SessionStatus.EVALUATING.value,
            evaluated_at=utc_now(),
        )
        messages = self.sessions.get_messages(session_id)

        logger.info("Evaluating session %s over %d messages", session_id, len(messages))
        outcome = await self.judge.evaluate(session, messages)

        verdict = outcome.verdict
        evaluation = Evaluation(
            session_id=session_id,
            rubric_version=outcome.rubric_version,
            overall_score=verdict.overall_score,
            computed_score=outcome.computed_score,
            dimension_scores={
                key: dim.model_dump() for key, dim in verdict.dimension_scores.items()
            },
            strengths=list(verdict.strengths),
            improvements=list(verdict.improvements),
            prompt_efficiency=(
                verdict.prompt_efficiency.model_dump(mode="json")
                if verdict.prompt_efficiency else None
            ),
        )
        self.sessions.complete_with_evaluation(evaluation)
        logger.info(
            "Session %s complete: overall %d (computed %d)",
            session_id, evaluation.overall_score, outcome.computed_score,
        )
        return evaluation
