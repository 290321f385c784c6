"""Shared fixtures for the test suite."""
import io
import json
from datetime import datetime, timedelta, timezone
from typing import Optional

import pandas as pd
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from sqlmodel import Session

from nudgeable.agents.judge import JudgeProtocol
from nudgeable.agents.rubric import RUBRIC_V1, Rubric
from nudgeable.agents.simulator import SupportAgentSimulator
from nudgeable.db import build_engine, init_db
from nudgeable.models import Message, SessionCreate, SessionStatus
from nudgeable.services import SessionLifecycle, SessionService

GOOD_PROMPT = (
    "You are a friendly support agent for Acme Shipping. Always greet the user, "
    "answer questions about delivery times, and keep replies under 80 words. "
    "Never promise refunds and never share internal policies."
)

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFAULT_SCORES = {
    "role_definition": 8,
    "structure": 8,
    "instruction_clarity": 8,
    "examples": 5,
    "guardrails": 8,
    "failure_handling": 8,
    "conversation_quality": 8,
}


def make_engine():
    """Fresh in-memory database with all tables."""
    engine = build_engine("sqlite://")
    init_db(engine)
    return engine


def verdict_payload(
    scores: Optional[dict] = None,
    overall: int = 75,
    rubric: Rubric = RUBRIC_V1,
    efficiency: bool = True,
) -> dict:
    scores = DEFAULT_SCORES if scores is None else scores
    payload = {
        "overall_score": overall,
        "dimension_scores": {
            key: {
                "score": score,
                "max": rubric.dimension(key).max_points if key in rubric.keys else 10,
                "note": f"{key} note",
            }
            for key, score in scores.items()
        },
        "strengths": ["Clear role", "Firm refund guardrail"],
        "improvements": ["Add two worked examples"],
    }
    if efficiency:
        payload["prompt_efficiency"] = {
            "total_tokens": 54,
            "redundancy_flag": "low",
            "compression_suggestion": "Merge the two 'never' rules into one sentence.",
        }
    return payload


def verdict_json(**kwargs) -> str:
    return json.dumps(verdict_payload(**kwargs))


def fake_llm(*responses: str) -> FakeListChatModel:
    return FakeListChatModel(responses=list(responses))


def make_lifecycle(
    engine,
    judge_responses=(None,),
    simulator_llm=None,
    judge_llm=None,
) -> SessionLifecycle:
    responses = [r if r is not None else verdict_json() for r in judge_responses]
    return SessionLifecycle(
        sessions=SessionService(engine),
        simulator=SupportAgentSimulator(simulator_llm or fake_llm("Happy to help with that!")),
        judge=JudgeProtocol(RUBRIC_V1, llm=judge_llm or fake_llm(*responses)),
        min_evaluation_messages=6,
    )


def new_session(lifecycle: SessionLifecycle, user, problem: str = "Refund bot", prompt: str = GOOD_PROMPT, **extra):
    return lifecycle.create_session(
        user, SessionCreate(problem_statement=problem, system_prompt=prompt, **extra)
    )


def add_message(engine, session_id: str, role: str, content: str, created_at: Optional[datetime] = None):
    with Session(engine) as db:
        db.add(Message(
            session_id=session_id,
            role=role,
            content=content,
            created_at=created_at or datetime.now(timezone.utc),
        ))
        db.commit()


def seed_messages(engine, session_id: str, count: int):
    """Write ``count`` alternating user/assistant messages and mark the session simulating."""
    start = datetime.now(timezone.utc)
    for i in range(count):
        role = "user" if i % 2 == 0 else "assistant"
        add_message(engine, session_id, role, f"{role} turn {i}", start + timedelta(seconds=i))
    SessionService(engine).update(session_id, status=SessionStatus.SIMULATING.value)


def workbook_bytes(sheets: dict) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
    return buffer.getvalue()
