"""Report generation orchestration."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from envdiff.models.comparison import RunSummary
from envdiff.models.config import RunConfig

from .json_report import generate_json_report
from .regression_detector import detect_regressions

logger = logging.getLogger(__name__)


class Reporter:
    """Writes reports for a finished run."""

    def __init__(self, config: RunConfig):
        self.config = config

    def generate_reports(
        self,
        summary: RunSummary,
        output_dir: Path | None = None,
    ) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        out_dir = output_dir or Path(self.config.report_output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        generated = {}

        previous = self.load_previous_summary(out_dir, summary.run_id)
        regressions = []
        if previous:
            logger.debug("Detecting regressions against %s...", previous.run_id)
            regressions = detect_regressions(previous, summary)

        if "json" in self.config.report_formats:
            path = out_dir / f"report_{summary.run_id}.json"
            generate_json_report(summary, regressions, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        for fmt in self.config.report_formats:
            if fmt != "json":
                logger.warning("Unsupported report format '%s' skipped", fmt)

        return generated

    def load_previous_summary(self, report_dir: Path, current_run_id: str) -> RunSummary | None:
        """Load the most recent earlier run from existing JSON reports."""
        if not report_dir.exists():
            return None

        report_files = sorted(
            report_dir.glob("report_run_*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )

        for report_path in report_files:
            try:
                with open(report_path) as f:
                    data = json.load(f)
                if data.get("run_id") == current_run_id:
                    continue
                return RunSummary.model_validate(data)
            except Exception as e:
                logger.debug("Could not load previous run from %s: %s", report_path, e)
                continue

        return None
