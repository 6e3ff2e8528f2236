"""Regression detection: finds pages that passed last run and no longer do."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from envdiff.models.comparison import PASSED, RunSummary, SimilarityOutcome

logger = logging.getLogger(__name__)


@dataclass
class Regression:
    page_path: str
    previous_status: str
    current_status: str
    previous_similarity: float | None = None
    current_similarity: float | None = None


def _similarity(entry) -> float | None:
    outcome = entry.result.outcome
    return outcome.percentage if isinstance(outcome, SimilarityOutcome) else None


def detect_regressions(previous: RunSummary, current: RunSummary) -> list[Regression]:
    """Compare two runs, matching pages by path, and list pass -> fail/error transitions."""
    prev_by_path = {entry.result.page.path: entry for entry in previous.results}

    regressions = []
    for entry in current.results:
        prev = prev_by_path.get(entry.result.page.path)
        if prev and prev.status == PASSED and entry.status != PASSED:
            regressions.append(Regression(
                page_path=entry.result.page.path,
                previous_status=prev.status,
                current_status=entry.status,
                previous_similarity=_similarity(prev),
                current_similarity=_similarity(entry),
            ))

    if regressions:
        logger.warning("Detected %d regressions", len(regressions))
    return regressions
