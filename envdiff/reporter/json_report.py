"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from envdiff.models.comparison import RunSummary
from .regression_detector import Regression


def generate_json_report(
    summary: RunSummary,
    regressions: list[Regression],
    output_path: Path,
) -> None:
    """Write a machine-readable JSON report."""
    report = summary.model_dump()
    report["total"] = summary.total
    report["regressions"] = [
        {
            "page_path": r.page_path,
            "previous_status": r.previous_status,
            "current_status": r.current_status,
            "previous_similarity": r.previous_similarity,
            "current_similarity": r.current_similarity,
        }
        for r in regressions
    ]

    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)
