"""Chat model construction and upstream error classification."""
import re

import openai
from langchain_core.language_models import BaseChatModel
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from nudgeable.config import settings
from nudgeable.errors import ModelCallError, ModelQuotaError, ModelTimeoutError

QUOTA_MARKERS = ("quota", "rate limit", "resource_exhausted")
QUOTA_STATUS = re.compile(r"\b429\b")


def build_simulation_llm() -> BaseChatModel:
    """Chat model that plays the customer-support agent."""
    return ChatOpenAI(
        model=settings.openai_model,
        api_key=settings.openai_api_key,
        temperature=settings.simulation_temperature,
        timeout=settings.generation_timeout,
    )


def build_judge_llm() -> Runnable:
    """Chat model that grades transcripts, constrained to JSON output."""
    llm = ChatOpenAI(
        model=settings.judge_model,
        api_key=settings.openai_api_key,
        temperature=settings.judge_temperature,  # Low temperature for consistent grading
        timeout=settings.generation_timeout,
    )
    return llm.bind(response_format={"type": "json_object"})


def classify_model_error(exc: BaseException) -> ModelCallError:
    """Map a provider exception onto the platform's model error types."""
    if isinstance(exc, ModelCallError):
        return exc

    text = str(exc)
    quota = (
        isinstance(exc, openai.RateLimitError)
        or getattr(exc, "status_code", None) == 429
        or QUOTA_STATUS.search(text)
        or any(m in text.lower() for m in QUOTA_MARKERS)
    )
    if quota:
        return ModelQuotaError(
            "API quota exceeded. Please wait a moment and try again, "
            "or the daily limit may have been reached.",
            retry_after=settings.quota_retry_after,
        )

    if isinstance(exc, (openai.APITimeoutError, TimeoutError)):
        return ModelTimeoutError(f"Model call timed out after {settings.generation_timeout}s")

    return ModelCallError(f"Model call failed: {text or type(exc).__name__}")
