"""Tests for report generation and regression detection."""

import json
import os
import time
from pathlib import Path

import pytest

from conftest import capture_error, make_result, similarity, size_mismatch
from envdiff.pipeline.aggregator import aggregate
from envdiff.reporter.json_report import generate_json_report
from envdiff.reporter.regression_detector import detect_regressions
from envdiff.reporter.reporter import Reporter


def _summary(run_id: str, *results):
    summary = aggregate(list(results), run_id=run_id, reference_url="https://stg", candidate_url="https://prod")
    return summary


class TestGenerateJsonReport:
    def test_basic_report(self, tmp_path: Path):
        summary = _summary(
            "run_0001",
            make_result("/", similarity(100.0)),
            make_result("/events", similarity(75.0, 10000)),
            make_result("/newsroom", capture_error("Failed to load https://prod/newsroom after 3 attempts")),
        )
        output = tmp_path / "report.json"

        generate_json_report(summary, [], output)

        data = json.loads(output.read_text())
        assert data["run_id"] == "run_0001"
        assert data["total"] == 3
        assert (data["passed"], data["failed"], data["errored"]) == (1, 1, 1)
        assert data["regressions"] == []

    def test_records_carry_paths_and_status(self, tmp_path: Path):
        summary = _summary("run_0002", make_result("/events", similarity(75.0, 10000)))
        output = tmp_path / "report.json"

        generate_json_report(summary, [], output)

        record = json.loads(output.read_text())["results"][0]
        assert record["status"] == "failed"
        assert record["result"]["reference_image_path"] == "screenshots/staging/events.png"
        assert record["result"]["candidate_image_path"] == "screenshots/prod/events.png"
        assert record["result"]["diff_image_path"] == "screenshots/diff/events.png"
        assert record["result"]["outcome"] == {
            "kind": "similarity", "percentage": 75.0, "mismatched_pixels": 10000,
        }

    def test_severity_order_preserved(self, tmp_path: Path):
        summary = _summary(
            "run_0003",
            make_result("/a", similarity(99.0)),
            make_result("/b", size_mismatch()),
            make_result("/c", similarity(20.0)),
        )
        output = tmp_path / "report.json"

        generate_json_report(summary, [], output)

        paths = [r["result"]["page"]["path"] for r in json.loads(output.read_text())["results"]]
        assert paths == ["/b", "/c", "/a"]


class TestDetectRegressions:
    def test_pass_to_fail_detected(self):
        previous = _summary("run_a", make_result("/", similarity(99.0)), make_result("/events", similarity(97.0)))
        current = _summary("run_b", make_result("/", similarity(99.5)), make_result("/events", similarity(60.0)))

        regressions = detect_regressions(previous, current)

        assert len(regressions) == 1
        assert regressions[0].page_path == "/events"
        assert regressions[0].previous_status == "passed"
        assert regressions[0].current_status == "failed"
        assert regressions[0].previous_similarity == 97.0
        assert regressions[0].current_similarity == 60.0

    def test_pass_to_error_detected(self):
        previous = _summary("run_a", make_result("/", similarity(100.0)))
        current = _summary("run_b", make_result("/", capture_error()))

        regressions = detect_regressions(previous, current)

        assert regressions[0].current_status == "errored"
        assert regressions[0].current_similarity is None

    def test_already_failing_not_a_regression(self):
        previous = _summary("run_a", make_result("/", similarity(50.0)))
        current = _summary("run_b", make_result("/", similarity(40.0)))
        assert detect_regressions(previous, current) == []

    def test_new_page_not_a_regression(self):
        previous = _summary("run_a", make_result("/", similarity(100.0)))
        current = _summary("run_b", make_result("/new", capture_error()))
        assert detect_regressions(previous, current) == []


class TestReporter:
    def test_writes_json_report(self, run_config, tmp_path: Path):
        summary = _summary("run_1111", make_result("/", similarity(100.0)))

        generated = Reporter(run_config).generate_reports(summary)

        path = Path(generated["json"])
        assert path.name == "report_run_1111.json"
        assert path.exists()

    def test_uses_previous_report_for_regressions(self, run_config, tmp_path: Path):
        reporter = Reporter(run_config)
        first = _summary("run_old1", make_result("/", similarity(100.0)))
        old_path = Path(reporter.generate_reports(first)["json"])
        past = time.time() - 60
        os.utime(old_path, (past, past))

        second = _summary("run_new1", make_result("/", similarity(10.0)))
        new_path = Path(reporter.generate_reports(second)["json"])

        data = json.loads(new_path.read_text())
        assert [r["page_path"] for r in data["regressions"]] == ["/"]

    def test_previous_summary_skips_current_and_corrupt(self, run_config, tmp_path: Path):
        out = Path(run_config.report_output_dir)
        out.mkdir(parents=True)
        reporter = Reporter(run_config)
        generate_json_report(_summary("run_aaaa", make_result("/", similarity(100.0))), [], out / "report_run_aaaa.json")
        (out / "report_run_bad.json").write_text("{not json")

        previous = reporter.load_previous_summary(out, "run_zzzz")
        assert previous is not None
        assert previous.run_id == "run_aaaa"
        assert previous.results[0].result.outcome.percentage == 100.0

        assert reporter.load_previous_summary(out, "run_aaaa") is None

    def test_no_report_dir(self, run_config, tmp_path: Path):
        assert Reporter(run_config).load_previous_summary(tmp_path / "nope", "run_x") is None

    def test_unknown_format_skipped(self, run_config):
        run_config.report_formats = ["json", "html"]
        generated = Reporter(run_config).generate_reports(_summary("run_2222", make_result("/", similarity(100.0))))
        assert list(generated) == ["json"]
