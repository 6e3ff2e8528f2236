"""Comparison orchestrator: captures, normalizes and diffs every configured page."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from playwright.async_api import Browser, async_playwright

from envdiff.capture.page_capturer import PageCapturer
from envdiff.errors import CaptureError, ConfigurationError, MissingArtifactError
from envdiff.imaging.differencer import diff, write_diff_image
from envdiff.imaging.normalizer import canvas_size, image_size, normalize
from envdiff.models.comparison import (
    CaptureErrorOutcome,
    PageComparisonResult,
    PageTarget,
    RunSummary,
    SimilarityOutcome,
    SizeMismatchOutcome,
)
from envdiff.models.config import RunConfig
from envdiff.pipeline.aggregator import aggregate
from envdiff.utils.browser_session import create_session_context, launch_browser
from envdiff.utils.paths import artifact_name, resolve_url

logger = logging.getLogger(__name__)


@dataclass
class CaptureSession:
    """Page handles for both environments, used by one worker at a time."""
    reference: PageCapturer
    candidate: PageCapturer


@dataclass
class ArtifactPaths:
    reference: Path
    candidate: Path
    diff: Path


class ComparisonOrchestrator:
    """Runs the capture → normalize → diff pipeline for each configured page."""

    def __init__(self, config: RunConfig, screenshot_dir: Path | None = None):
        self.config = config
        self.screenshot_dir = Path(screenshot_dir or config.screenshot_dir)

    def targets(self) -> list[PageTarget]:
        """Configured page targets, in order. Fails fast when none are configured."""
        if not self.config.paths:
            raise ConfigurationError("No page paths configured; nothing to compare.")
        return [PageTarget(path=p) for p in self.config.paths]

    def artifact_paths(self, target: PageTarget) -> ArtifactPaths:
        name = artifact_name(target.path)
        return ArtifactPaths(
            reference=self.screenshot_dir / self.config.reference.name / name,
            candidate=self.screenshot_dir / self.config.candidate.name / name,
            diff=self.screenshot_dir / "diff" / name,
        )

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def run_sync(self) -> RunSummary:
        """Execute the full comparison run in a fresh event loop."""
        return asyncio.run(self.run())

    async def run(self) -> RunSummary:
        targets = self.targets()
        run_id = f"run_{uuid.uuid4().hex[:8]}"
        started_at = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        start = time.time()
        logger.info("=== Starting comparison %s: %s vs %s (%d pages) ===",
                    run_id, self.config.reference.base_url,
                    self.config.candidate.base_url, len(targets))

        async with async_playwright() as pw:
            browser = await launch_browser(pw, headless=self.config.headless)
            try:
                worker_count = min(self.config.max_parallel_pages, len(targets))
                sessions = [await self.open_session(browser) for _ in range(worker_count)]
                results = await self.compare_all(targets, sessions)
            finally:
                await browser.close()

        summary = aggregate(
            results,
            pass_threshold=self.config.comparison.pass_threshold,
            run_id=run_id,
            reference_url=self.config.reference.base_url,
            candidate_url=self.config.candidate.base_url,
        )
        summary.started_at = started_at
        summary.completed_at = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        summary.duration_seconds = round(time.time() - start, 2)
        logger.info("=== Comparison complete in %.1fs: %d passed, %d failed, %d errored ===",
                    summary.duration_seconds, summary.passed, summary.failed, summary.errored)
        return summary

    async def open_session(self, browser: Browser) -> CaptureSession:
        """Open one context + page per environment (credentials are per context)."""
        capturers = []
        for env in (self.config.reference, self.config.candidate):
            context = await create_session_context(
                browser,
                viewport=self.config.viewport,
                http_credentials=env.http_credentials,
                user_agent=self.config.user_agent,
            )
            page = await context.new_page()
            capturers.append(PageCapturer(page, self.config.capture, label=env.name))
        return CaptureSession(reference=capturers[0], candidate=capturers[1])

    async def compare_all(
        self, targets: list[PageTarget], sessions: list[CaptureSession],
    ) -> list[PageComparisonResult]:
        """Compare every target using the given sessions; result order follows ``targets``.

        Each session is used by exactly one worker, so no page handle ever has
        two navigations in flight.
        """
        if not sessions:
            raise ValueError("At least one capture session is required")

        queue: asyncio.Queue[tuple[int, PageTarget]] = asyncio.Queue()
        for index, target in enumerate(targets):
            queue.put_nowait((index, target))
        slots: list[PageComparisonResult | None] = [None] * len(targets)

        async def worker(session: CaptureSession) -> None:
            while True:
                try:
                    index, target = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                slots[index] = await self.compare_one(
                    target,
                    self.config.reference.base_url,
                    self.config.candidate.base_url,
                    session,
                )

        await asyncio.gather(*(worker(s) for s in sessions))
        return [r for r in slots if r is not None]

    # ------------------------------------------------------------------
    # Single page
    # ------------------------------------------------------------------

    async def compare_one(
        self,
        target: PageTarget,
        reference_base_url: str,
        candidate_base_url: str,
        session: CaptureSession,
    ) -> PageComparisonResult:
        """Produce exactly one result for ``target``; never raises for page-level failures."""
        start = time.time()
        paths = self.artifact_paths(target)
        reference_url = resolve_url(reference_base_url, target.path)
        candidate_url = resolve_url(candidate_base_url, target.path)
        label = target.path or "/"
        logger.info("Testing page: %s", label)
        self._clear_artifacts(paths)

        try:
            await asyncio.wait_for(
                self._capture_pair(session, reference_url, candidate_url, paths),
                timeout=self.config.page_timeout_seconds,
            )
            outcome = await asyncio.to_thread(self.compare_images, paths)
        except (CaptureError, MissingArtifactError) as e:
            outcome = CaptureErrorOutcome(message=str(e))
        except asyncio.TimeoutError:
            outcome = CaptureErrorOutcome(
                message=f"Page timed out after {self.config.page_timeout_seconds}s",
            )
        except Exception as e:
            logger.exception("Unexpected error comparing %s", label)
            outcome = CaptureErrorOutcome(message=f"Unexpected {type(e).__name__}: {e}")

        if isinstance(outcome, CaptureErrorOutcome):
            logger.warning("Error testing page: %s - %s", label, outcome.message)
        elif isinstance(outcome, SizeMismatchOutcome):
            logger.info("Size mismatch detected for page: %s", label)
        else:
            logger.info("Similarity percentage for page %s: %.2f%%", label, outcome.percentage)

        return PageComparisonResult(
            page=target,
            reference_url=reference_url,
            candidate_url=candidate_url,
            reference_image_path=str(paths.reference),
            candidate_image_path=str(paths.candidate),
            diff_image_path=str(paths.diff),
            outcome=outcome,
            duration_seconds=round(time.time() - start, 2),
        )

    @staticmethod
    def _clear_artifacts(paths: ArtifactPaths) -> None:
        # Files left from an earlier run must not stand in for this run's captures
        for path in (paths.reference, paths.candidate, paths.diff):
            path.unlink(missing_ok=True)

    async def _capture_pair(
        self, session: CaptureSession, reference_url: str, candidate_url: str, paths: ArtifactPaths,
    ) -> None:
        await session.reference.capture(reference_url, paths.reference)
        await session.candidate.capture(candidate_url, paths.candidate)

    def compare_images(self, paths: ArtifactPaths) -> SimilarityOutcome | SizeMismatchOutcome:
        """Normalize both captures onto one shared canvas and diff them.

        The canvas is the larger width and height of the pair, capped at the
        configured canonical size.

        Raises:
            MissingArtifactError: If either capture is absent on disk.
        """
        cmp = self.config.comparison
        try:
            width, height = canvas_size(
                [image_size(paths.reference), image_size(paths.candidate)],
                cmp.canonical_width, cmp.canonical_height,
            )
            reference = normalize(paths.reference, width, height)
            candidate = normalize(paths.candidate, width, height)
        except MissingArtifactError:
            raise
        except (OSError, ValueError) as e:
            logger.warning("Normalization failed for %s: %s", paths.reference.name, e)
            return SizeMismatchOutcome()

        if reference.size != candidate.size:
            return SizeMismatchOutcome(reference_size=reference.size, candidate_size=candidate.size)

        result = diff(reference, candidate, cmp)
        write_diff_image(result, paths.diff)
        logger.debug("Mismatched pixels for %s vs %s: %d",
                     paths.reference, paths.candidate, result.mismatched_pixels)
        return SimilarityOutcome(
            percentage=result.similarity,
            mismatched_pixels=result.mismatched_pixels,
        )
