"""Pytest configuration and shared fixtures."""

import io
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from PIL import Image

from envdiff.errors import CaptureError
from envdiff.models.comparison import (
    CaptureErrorOutcome,
    PageComparisonResult,
    PageTarget,
    SimilarityOutcome,
    SizeMismatchOutcome,
)
from envdiff.models.config import (
    CaptureConfig,
    ComparisonConfig,
    EnvironmentConfig,
    HttpCredentials,
    RunConfig,
    ViewportConfig,
)
from envdiff.pipeline.orchestrator import CaptureSession

WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)
BLACK = (0, 0, 0, 255)


# ============================================================================
# Image helpers
# ============================================================================


def make_image(width, height, color=WHITE, block=None) -> Image.Image:
    """Create a solid RGBA image, optionally with a filled rectangle.

    ``block`` is ``(x, y, w, h, color)``.
    """
    img = Image.new("RGBA", (width, height), color)
    if block:
        x, y, w, h, block_color = block
        img.paste(Image.new("RGBA", (w, h), block_color), (x, y))
    return img


def png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def reference_env() -> EnvironmentConfig:
    return EnvironmentConfig(
        name="staging",
        base_url="https://staging.example.com",
        http_credentials=HttpCredentials(username="stage", password="secret"),
    )


@pytest.fixture
def candidate_env() -> EnvironmentConfig:
    return EnvironmentConfig(name="prod", base_url="https://www.example.com")


@pytest.fixture
def fast_capture_config() -> CaptureConfig:
    """Capture config with all delays disabled."""
    return CaptureConfig(
        navigation_timeout_ms=1000,
        retry_backoff_seconds=0,
        scroll_pause_ms=0,
        settle_delay_ms=0,
        image_load_timeout_ms=100,
    )


@pytest.fixture
def run_config(reference_env, candidate_env, fast_capture_config, tmp_path: Path) -> RunConfig:
    """Small canonical canvas so pixel diffs stay quick."""
    return RunConfig(
        reference=reference_env,
        candidate=candidate_env,
        paths=["/", "/events"],
        viewport=ViewportConfig(width=1280, height=720),
        capture=fast_capture_config,
        comparison=ComparisonConfig(canonical_width=200, canonical_height=200),
        screenshot_dir=str(tmp_path / "screenshots"),
        report_output_dir=str(tmp_path / "reports"),
        page_timeout_seconds=30,
    )


@pytest.fixture
def temp_config_file(run_config: RunConfig, tmp_path: Path) -> Path:
    config_file = tmp_path / "envdiff-config.json"
    run_config.save(config_file)
    return config_file


# ============================================================================
# Browser Fixtures
# ============================================================================


@pytest.fixture
def make_mock_page():
    """Factory for a Playwright Page mock that renders a given image."""

    def _make(
        image: Image.Image | None = None,
        document_height: int = 720,
        viewport_height: int = 720,
        cookie_visible: bool = False,
    ):
        page = AsyncMock()
        page.url = "https://example.com/"
        page.screenshot = AsyncMock(return_value=png_bytes(image or make_image(20, 20)))

        async def evaluate(script, *args):
            if "scrollHeight" in script:
                return {"height": document_height, "viewport": viewport_height}
            return None

        page.evaluate = AsyncMock(side_effect=evaluate)

        button = Mock()
        button.is_visible = AsyncMock(return_value=cookie_visible)
        button.click = AsyncMock()
        locator = Mock()
        locator.first = button
        page.locator = Mock(return_value=locator)
        page.cookie_button = button
        return page

    return _make


class FakeCapturer:
    """Stands in for PageCapturer: writes pre-built images keyed by URL."""

    def __init__(self, images: dict):
        self.images = images
        self.calls: list[str] = []

    async def capture(self, url: str, destination: Path) -> Path:
        self.calls.append(url)
        item = self.images.get(url)
        if isinstance(item, Exception):
            raise item
        if item is None:
            raise CaptureError(url, 3, "net::ERR_NAME_NOT_RESOLVED")
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        item.save(destination)
        return destination


@pytest.fixture
def fake_session():
    """Factory building a CaptureSession from reference/candidate image maps."""

    def _make(reference_images: dict, candidate_images: dict) -> CaptureSession:
        return CaptureSession(
            reference=FakeCapturer(reference_images),
            candidate=FakeCapturer(candidate_images),
        )

    return _make


# ============================================================================
# Result Fixtures
# ============================================================================


def make_result(path: str, outcome) -> PageComparisonResult:
    name = path.strip("/") or "home"
    return PageComparisonResult(
        page=PageTarget(path=path),
        reference_image_path=f"screenshots/staging/{name}.png",
        candidate_image_path=f"screenshots/prod/{name}.png",
        diff_image_path=f"screenshots/diff/{name}.png",
        outcome=outcome,
    )


def similarity(pct: float, mismatched: int = 0) -> SimilarityOutcome:
    return SimilarityOutcome(percentage=pct, mismatched_pixels=mismatched)


def capture_error(msg: str = "Failed to load") -> CaptureErrorOutcome:
    return CaptureErrorOutcome(message=msg)


def size_mismatch() -> SizeMismatchOutcome:
    return SizeMismatchOutcome(reference_size=(10, 10), candidate_size=(10, 20))
