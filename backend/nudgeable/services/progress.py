"""Progress aggregation over completed attempts."""
import logging
from typing import Iterable, Optional

from nudgeable.models import (
    Attempt,
    DimensionScore,
    Evaluation,
    ProgressSummary,
    Session,
    UseCase,
    UseCaseSummary,
)

logger = logging.getLogger(__name__)


def _dimension_scores(evaluation: Evaluation) -> Optional[dict[str, DimensionScore]]:
    if not evaluation.dimension_scores:
        return None
    return {
        key: DimensionScore.model_validate(value)
        for key, value in evaluation.dimension_scores.items()
    }


def lowest_dimension(scores: Optional[dict[str, DimensionScore]]) -> Optional[str]:
    """Key of the dimension with the lowest score relative to its max."""
    if not scores:
        return None
    return min(scores, key=lambda key: scores[key].score / scores[key].max)


def aggregate(records: Iterable[tuple[Session, Optional[Evaluation]]]) -> list[UseCase]:
    """
    Group completed sessions into per-problem-statement histories.

    Grouping is an exact string match on ``problem_statement``. Attempts are
    ordered oldest first; use cases are ordered by their most recent attempt,
    newest first. Sessions without an evaluation are skipped.
    """
    groups: dict[str, list[tuple[Session, Evaluation]]] = {}
    for session, evaluation in records:
        if evaluation is None:
            logger.info("No evaluation found for session %s; skipping", session.id)
            continue
        groups.setdefault(session.problem_statement, []).append((session, evaluation))

    use_cases = []
    for problem_statement, pairs in groups.items():
        pairs.sort(key=lambda pair: pair[0].created_at)
        attempts = []
        previous: Optional[int] = None
        for session, evaluation in pairs:
            scores = _dimension_scores(evaluation)
            attempts.append(Attempt(
                session_id=session.id,
                attempt_number=session.attempt_number,
                overall_score=evaluation.overall_score,
                created_at=session.created_at,
                dimension_scores=scores,
                delta=None if previous is None else evaluation.overall_score - previous,
                lowest_dimension=lowest_dimension(scores),
            ))
            previous = evaluation.overall_score
        use_cases.append(UseCase(
            problem_statement=problem_statement,
            attempts=attempts,
            last_updated=max(a.created_at for a in attempts),
        ))

    use_cases.sort(key=lambda uc: uc.last_updated, reverse=True)
    return use_cases


def summarize(use_cases: list[UseCase]) -> ProgressSummary:
    """Dashboard totals over aggregated use cases."""
    summaries = [
        UseCaseSummary(
            problem_statement=uc.problem_statement,
            attempts=uc.attempts,
            last_updated=uc.last_updated,
            latest_score=uc.latest_score,
            best_score=uc.best_score,
        )
        for uc in use_cases
    ]
    return ProgressSummary(
        use_cases=summaries,
        total_completed=sum(len(uc.attempts) for uc in use_cases),
        personal_best=max((uc.best_score for uc in use_cases), default=None),
    )
