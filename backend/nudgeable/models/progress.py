"""Progress history models."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from .state import DimensionScore


class Attempt(BaseModel):
    """One completed, evaluated attempt at a problem statement."""
    session_id: str
    attempt_number: int
    overall_score: int
    created_at: datetime
    dimension_scores: Optional[dict[str, DimensionScore]] = None
    delta: Optional[int] = None  # change from the previous attempt
    lowest_dimension: Optional[str] = None


class UseCase(BaseModel):
    """All evaluated attempts sharing one problem statement."""
    problem_statement: str
    attempts: list[Attempt]
    last_updated: datetime

    @property
    def latest_score(self) -> int:
        return self.attempts[-1].overall_score

    @property
    def best_score(self) -> int:
        return max(a.overall_score for a in self.attempts)


class UseCaseSummary(BaseModel):
    """Use case as returned by the progress API."""
    problem_statement: str
    attempts: list[Attempt]
    last_updated: datetime
    latest_score: int
    best_score: int


class ProgressSummary(BaseModel):
    """Progress dashboard for one user."""
    use_cases: list[UseCaseSummary]
    total_completed: int
    personal_best: Optional[int] = None
