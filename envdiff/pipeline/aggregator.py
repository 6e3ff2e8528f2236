"""Result aggregation: classifies page results and orders them by severity."""

from __future__ import annotations

from typing import Iterable

from envdiff.models.comparison import (
    ERRORED,
    FAILED,
    PASSED,
    ClassifiedResult,
    PageComparisonResult,
    RunSummary,
    SimilarityOutcome,
)

DEFAULT_PASS_THRESHOLD = 95.0


def classify(result: PageComparisonResult, pass_threshold: float = DEFAULT_PASS_THRESHOLD) -> str:
    """Map an outcome to passed/failed/errored."""
    outcome = result.outcome
    if isinstance(outcome, SimilarityOutcome):
        return PASSED if outcome.percentage >= pass_threshold else FAILED
    return ERRORED


def _severity_key(result: PageComparisonResult) -> tuple[int, float]:
    # Errors first, then most divergent similarity first
    if isinstance(result.outcome, SimilarityOutcome):
        return 1, result.outcome.percentage
    return 0, 0.0


def aggregate(
    results: Iterable[PageComparisonResult],
    pass_threshold: float = DEFAULT_PASS_THRESHOLD,
    run_id: str = "",
    reference_url: str = "",
    candidate_url: str = "",
) -> RunSummary:
    """Build a RunSummary from per-page results without modifying them.

    Records are ordered errored first (stable among themselves), then by
    ascending similarity.
    """
    ordered = sorted(results, key=_severity_key)
    classified = [ClassifiedResult(result=r, status=classify(r, pass_threshold)) for r in ordered]
    return RunSummary(
        run_id=run_id,
        reference_url=reference_url,
        candidate_url=candidate_url,
        results=classified,
        passed=sum(1 for c in classified if c.status == PASSED),
        failed=sum(1 for c in classified if c.status == FAILED),
        errored=sum(1 for c in classified if c.status == ERRORED),
    )
