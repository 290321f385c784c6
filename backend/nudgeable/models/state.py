"""Status enums and structured value objects shared across the platform."""
from enum import Enum
from typing import Optional, TypedDict
from pydantic import BaseModel, Field, StrictInt, field_validator


class SessionStatus(str, Enum):
    """Lifecycle status of a prompt-development attempt."""
    DRAFT = "draft"
    SIMULATING = "simulating"
    EVALUATING = "evaluating"
    COMPLETE = "complete"


class FlagLevel(str, Enum):
    """Severity of a static validation flag."""
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class MessageRole(str, Enum):
    """Speaker of a simulated conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


class RedundancyFlag(str, Enum):
    """How much repetition the judge found in the prompt."""
    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class ValidationFlag(BaseModel):
    """One finding of the static prompt validator."""
    id: str
    level: FlagLevel
    message: str


class DimensionScore(BaseModel):
    """Judge score for a single rubric dimension."""
    score: StrictInt = Field(ge=0)
    max: StrictInt = Field(gt=0)
    note: str = ""

    @field_validator("note", mode="before")
    @classmethod
    def _null_note(cls, value):
        return "" if value is None else value


class PromptEfficiency(BaseModel):
    """Optional prompt-efficiency block reported by the judge."""
    total_tokens: StrictInt = Field(ge=0)
    redundancy_flag: RedundancyFlag
    compression_suggestion: str = ""


class JudgeVerdict(BaseModel):
    """Structured verdict returned by the judge model."""
    overall_score: StrictInt = Field(ge=0, le=100)
    dimension_scores: dict[str, DimensionScore]
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    prompt_efficiency: Optional[PromptEfficiency] = None


class JudgeState(TypedDict, total=False):
    """
    State passed between the nodes of the evaluation workflow.
    """
    # Inputs
    problem_statement: str
    compiled_prompt: str
    messages: list[dict]

    # Built request
    transcript: str
    request: str

    # Judge output
    raw_response: str
    verdict: JudgeVerdict
    parse_error: str

    # Scoring
    computed_score: int
    score_mismatch: bool
