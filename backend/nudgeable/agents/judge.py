"""Judge Agent - Grades a prompt and its simulated conversation against the rubric."""
import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import Runnable
from pydantic import ValidationError

from nudgeable.errors import EvaluationParseError
from nudgeable.graph import create_evaluation_workflow
from nudgeable.models import JudgeState, JudgeVerdict, Message, Session
from .llm import build_judge_llm, classify_model_error
from .prompts import JUDGE_TASK_PROMPT, PROBLEM_STATEMENT_BLOCK, render_judge_instructions
from .rubric import Rubric
from .simulator import message_text

logger = logging.getLogger(__name__)


@dataclass
class ParsedVerdict:
    """Successful parse of a judge response."""
    verdict: JudgeVerdict
    ok: bool = field(default=True, init=False)


@dataclass
class VerdictParseFailure:
    """Judge response that could not be turned into a verdict."""
    reason: str
    ok: bool = field(default=False, init=False)


VerdictParseResult = Union[ParsedVerdict, VerdictParseFailure]


@dataclass
class JudgeOutcome:
    """Everything the lifecycle needs to persist an evaluation."""
    rubric_version: str
    verdict: JudgeVerdict
    computed_score: int
    score_mismatch: bool
    raw_response: str


def render_transcript(messages: Sequence[Union[Message, dict]]) -> str:
    """Render turns as ``ROLE: content`` separated by blank lines."""
    lines = []
    for msg in messages:
        role = msg["role"] if isinstance(msg, dict) else msg.role
        content = msg["content"] if isinstance(msg, dict) else msg.content
        lines.append(f"{str(role).upper()}: {content}")
    return "\n\n".join(lines)


def strip_code_fences(raw_text: str) -> str:
    """Return the body of the first markdown code fence, if the response has one."""
    text = raw_text.strip()
    if text.startswith("{") or "```" not in text:
        return text

    if "```json" in text:
        text = text.split("```json", 1)[1].split("```", 1)[0]
    else:
        text = text.split("```", 2)[1]
        # Drop a language tag such as ```JSON
        first, _, rest = text.partition("\n")
        if rest and not first.strip().startswith(("{", "[")):
            text = rest
    return text.strip()


def _summarize_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"])
        problems.append(f"{location}: {err['msg']}")
    return "; ".join(problems)


def parse_verdict(raw_text: str, rubric: Rubric) -> VerdictParseResult:
    """
    Parse and validate a raw judge response against ``rubric``.

    Every rubric dimension must be present with an integer score between 0
    and the dimension's max. Reported ``max`` values are replaced by the
    rubric's, and dimensions the rubric does not declare are dropped.
    """
    text = strip_code_fences(raw_text or "")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        return VerdictParseFailure(f"invalid JSON ({exc.msg} at position {exc.pos})")

    if not isinstance(data, dict):
        return VerdictParseFailure("expected a JSON object at the top level")

    dimension_scores = data.get("dimension_scores")
    if not isinstance(dimension_scores, dict):
        return VerdictParseFailure("missing 'dimension_scores' object")

    missing = [key for key in rubric.keys if key not in dimension_scores]
    if missing:
        return VerdictParseFailure(f"missing dimensions: {', '.join(missing)}")

    unknown = sorted(set(dimension_scores) - set(rubric.keys))
    if unknown:
        logger.warning("Dropping dimensions not in rubric %s: %s", rubric.version, unknown)

    normalized = {}
    for dim in rubric.dimensions:
        entry = dimension_scores[dim.key]
        if not isinstance(entry, dict):
            return VerdictParseFailure(f"dimension '{dim.key}' is not an object")
        normalized[dim.key] = {**entry, "max": dim.max_points}

    try:
        verdict = JudgeVerdict.model_validate({**data, "dimension_scores": normalized})
    except ValidationError as exc:
        return VerdictParseFailure(_summarize_validation_error(exc))

    for dim in rubric.dimensions:
        score = verdict.dimension_scores[dim.key].score
        if score > dim.max_points:
            return VerdictParseFailure(
                f"dimension '{dim.key}' scored {score}, above its max of {dim.max_points}"
            )

    return ParsedVerdict(verdict)


class JudgeProtocol:
    """
    Turns a stored prompt and transcript into a structured evaluation.

    The steps run as a LangGraph workflow (see ``nudgeable.graph``); this class
    owns the node implementations and the rubric they share.
    """

    def __init__(self, rubric: Rubric, llm: Optional[Runnable] = None):
        self.rubric = rubric
        self.instructions = render_judge_instructions(rubric)
        self._llm = llm
        self._workflow = None

    @property
    def llm(self) -> Runnable:
        if self._llm is None:
            self._llm = build_judge_llm()
        return self._llm

    @property
    def workflow(self):
        if self._workflow is None:
            self._workflow = create_evaluation_workflow(self)
        return self._workflow

    # Workflow nodes

    async def build_request(self, state: JudgeState) -> dict:
        """Render the transcript and the evaluation request."""
        transcript = render_transcript(state["messages"])
        problem_statement_block = ""
        if self.rubric.include_problem_statement and state.get("problem_statement"):
            problem_statement_block = PROBLEM_STATEMENT_BLOCK.format(
                problem_statement=state["problem_statement"],
            )
        request = JUDGE_TASK_PROMPT.format(
            problem_statement_block=problem_statement_block,
            compiled_prompt=state["compiled_prompt"],
            message_count=len(state["messages"]),
            transcript=transcript,
        )
        return {"transcript": transcript, "request": request}

    async def call_judge(self, state: JudgeState) -> dict:
        """Submit the request with the rubric instructions to the judge model."""
        messages = [
            SystemMessage(content=self.instructions),
            HumanMessage(content=state["request"]),
        ]
        try:
            response = await self.llm.ainvoke(messages)
        except Exception as exc:
            error = classify_model_error(exc)
            logger.warning("Judge call failed (%s): %s", error.code, exc)
            raise error from exc
        return {"raw_response": message_text(response)}

    async def parse_response(self, state: JudgeState) -> dict:
        """Parse the raw response into a verdict or record why it failed."""
        result = parse_verdict(state["raw_response"], self.rubric)
        if not result.ok:
            logger.warning("Judge response rejected: %s", result.reason)
            return {"parse_error": result.reason}
        return {"verdict": result.verdict}

    async def score_verdict(self, state: JudgeState) -> dict:
        """Recompute the overall score and flag disagreement with the judge."""
        verdict = state["verdict"]
        computed = self.rubric.compute_overall(
            {key: dim.score for key, dim in verdict.dimension_scores.items()}
        )
        mismatch = computed != verdict.overall_score
        if mismatch:
            logger.warning(
                "Judge overall_score %d differs from rubric %s formula %d",
                verdict.overall_score, self.rubric.version, computed,
            )
        return {"computed_score": computed, "score_mismatch": mismatch}

    # Entry point

    async def evaluate(self, session: Session, messages: Sequence[Message]) -> JudgeOutcome:
        """
        Run the judge over ``messages`` for ``session``.

        Raises ``EvaluationParseError`` when the response is unusable and a
        ``ModelCallError`` subclass when the model call itself fails.
        """
        state = await self.workflow.ainvoke({
            "problem_statement": session.problem_statement,
            "compiled_prompt": session.compiled_prompt,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        })

        if state.get("parse_error"):
            raise EvaluationParseError(state["parse_error"], state.get("raw_response", ""))

        return JudgeOutcome(
            rubric_version=self.rubric.version,
            verdict=state["verdict"],
            computed_score=state["computed_score"],
            score_mismatch=state["score_mismatch"],
            raw_response=state["raw_response"],
        )
