"""Agents package."""
from .judge import JudgeOutcome, JudgeProtocol, parse_verdict, render_transcript, strip_code_fences
from .rubric import RUBRIC_V1, RUBRIC_V2, Rubric, get_rubric, verdict_for
from .simulator import SupportAgentSimulator

__all__ = [
    "JudgeOutcome",
    "JudgeProtocol",
    "RUBRIC_V1",
    "RUBRIC_V2",
    "Rubric",
    "SupportAgentSimulator",
    "get_rubric",
    "parse_verdict",
    "render_transcript",
    "strip_code_fences",
    "verdict_for",
]
