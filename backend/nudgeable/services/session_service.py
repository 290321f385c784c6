"""Session service for reading and writing sessions, messages and evaluations."""
import logging
from typing import Optional
from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from nudgeable.db import engine as default_engine
from nudgeable.errors import PersistenceError
from nudgeable.models import (
    Evaluation,
    Message,
    MessageRole,
    Session as SessionModel,
    SessionCreate,
    SessionStatus,
    User,
    ValidationFlag,
    utc_now,
)

logger = logging.getLogger(__name__)

PROMPT_SEPARATOR = "\n\n---\n\n"


def compile_prompt(
    system_prompt: str,
    use_case_prompt: Optional[str] = None,
    context_data: Optional[str] = None,
) -> str:
    """Join the non-empty prompt parts with a visible separator."""
    parts = [system_prompt, use_case_prompt or "", context_data or ""]
    return PROMPT_SEPARATOR.join(part for part in parts if part)


class SessionService:
    """Service for CRUD operations on sessions and their children."""

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or default_engine

    def _db(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    # Users

    def get_or_create_user(self, username: str) -> User:
        """Return the user named ``username``, creating it on first sight."""
        try:
            with self._db() as db:
                user = db.exec(select(User).where(User.username == username)).first()
                if user:
                    return user
                user = User(username=username)
                db.add(user)
                db.commit()
                db.refresh(user)
                logger.info("Created user %s", username)
                return user
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load user: {exc}") from exc

    # Sessions

    def create(self, user_id: str, data: SessionCreate) -> SessionModel:
        """Create a new draft session with its attempt number."""
        try:
            with self._db() as db:
                existing = db.exec(
                    select(func.count())
                    .select_from(SessionModel)
                    .where(SessionModel.user_id == user_id)
                    .where(SessionModel.problem_statement == data.problem_statement)
                ).one()
                session = SessionModel(
                    user_id=user_id,
                    problem_statement=data.problem_statement,
                    system_prompt=data.system_prompt,
                    use_case_prompt=data.use_case_prompt or None,
                    context_data=data.context_data or None,
                    compiled_prompt=compile_prompt(
                        data.system_prompt, data.use_case_prompt, data.context_data
                    ),
                    attempt_number=existing + 1,
                    status=SessionStatus.DRAFT.value,
                )
                db.add(session)
                db.commit()
                db.refresh(session)
                return session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to create session: {exc}") from exc

    def get_by_id(self, session_id: str) -> Optional[SessionModel]:
        """Get a session by ID."""
        try:
            with self._db() as db:
                return db.get(SessionModel, session_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to fetch session: {exc}") from exc

    def list_for_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        ascending: bool = False,
    ) -> list[SessionModel]:
        """List a user's sessions, newest first unless ``ascending``."""
        try:
            with self._db() as db:
                order = SessionModel.created_at.asc() if ascending else SessionModel.created_at.desc()
                statement = select(SessionModel).where(SessionModel.user_id == user_id).order_by(order)
                if status:
                    statement = statement.where(SessionModel.status == status)
                return list(db.exec(statement).all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to list sessions: {exc}") from exc

    def update(self, session_id: str, **changes) -> Optional[SessionModel]:
        """Update fields of a session."""
        try:
            with self._db() as db:
                session = db.get(SessionModel, session_id)
                if not session:
                    return None
                for key, value in changes.items():
                    setattr(session, key, value)
                session.updated_at = utc_now()
                db.add(session)
                db.commit()
                db.refresh(session)
                return session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to update session: {exc}") from exc

    def save_validation(
        self,
        session_id: str,
        flags: list[ValidationFlag],
        status: str,
    ) -> Optional[SessionModel]:
        """Overwrite the stored validation result."""
        return self.update(
            session_id,
            validation_flags=[flag.model_dump(mode="json") for flag in flags],
            status=status,
        )

    # Messages

    def get_messages(self, session_id: str) -> list[Message]:
        """Messages of a session in canonical conversation order."""
        try:
            with self._db() as db:
                statement = (
                    select(Message)
                    .where(Message.session_id == session_id)
                    .order_by(Message.created_at.asc(), Message.id.asc())
                )
                return list(db.exec(statement).all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to fetch messages: {exc}") from exc

    def count_messages(self, session_id: str) -> int:
        try:
            with self._db() as db:
                return db.exec(
                    select(func.count())
                    .select_from(Message)
                    .where(Message.session_id == session_id)
                ).one()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to count messages: {exc}") from exc

    def add_exchange(
        self,
        session_id: str,
        user_content: str,
        assistant_content: str,
        start_simulation: bool = False,
    ) -> int:
        """
        Persist one user/assistant exchange in a single transaction.

        When ``start_simulation`` is set the session moves to ``simulating``
        in the same commit. Returns the session's new message count.
        """
        try:
            with self._db() as db:
                now = utc_now()
                db.add(Message(
                    session_id=session_id,
                    role=MessageRole.USER.value,
                    content=user_content,
                    created_at=now,
                ))
                db.add(Message(
                    session_id=session_id,
                    role=MessageRole.ASSISTANT.value,
                    content=assistant_content,
                    created_at=now,
                ))
                session = db.get(SessionModel, session_id)
                session.updated_at = now
                if start_simulation:
                    session.status = SessionStatus.SIMULATING.value
                db.add(session)
                db.commit()
                return db.exec(
                    select(func.count())
                    .select_from(Message)
                    .where(Message.session_id == session_id)
                ).one()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save messages: {exc}") from exc

    # Evaluations

    def get_evaluation(self, session_id: str) -> Optional[Evaluation]:
        try:
            with self._db() as db:
                return db.exec(
                    select(Evaluation).where(Evaluation.session_id == session_id)
                ).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to fetch evaluation: {exc}") from exc

    def get_evaluations(self, session_ids: list[str]) -> dict[str, Evaluation]:
        """Evaluations keyed by session id."""
        if not session_ids:
            return {}
        try:
            with self._db() as db:
                rows = db.exec(
                    select(Evaluation).where(Evaluation.session_id.in_(session_ids))
                ).all()
                return {row.session_id: row for row in rows}
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to fetch evaluations: {exc}") from exc

    def complete_with_evaluation(self, evaluation: Evaluation) -> SessionModel:
        """
        Insert the evaluation and mark its session complete in one commit.
        """
        try:
            with self._db() as db:
                now = utc_now()
                session = db.get(SessionModel, evaluation.session_id)
                session.status = SessionStatus.COMPLETE.value
                session.completed_at = now
                session.updated_at = now
                db.add(evaluation)
                db.add(session)
                db.commit()
                db.refresh(session)
                db.refresh(evaluation)
                return session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save evaluation: {exc}") from exc

    def list_completed_with_evaluations(
        self,
        user_id: str,
    ) -> list[tuple[SessionModel, Optional[Evaluation]]]:
        """Completed sessions (oldest first) paired with their evaluation, if any."""
        sessions = self.list_for_user(user_id, status=SessionStatus.COMPLETE.value, ascending=True)
        evaluations = self.get_evaluations([s.id for s in sessions])
        return [(s, evaluations.get(s.id)) for s in sessions]


session_service = SessionService()
