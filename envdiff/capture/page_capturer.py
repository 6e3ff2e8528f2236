"""Page capturer: loads a URL until visually stable and saves a full-page screenshot."""

from __future__ import annotations

import logging
from pathlib import Path

from playwright.async_api import Page

from envdiff.errors import CaptureError, ImageTimeoutError, RetryExhaustedError
from envdiff.models.config import CaptureConfig
from envdiff.utils.retry import retry_async

logger = logging.getLogger(__name__)

_SCROLL_METRICS_JS = """() => ({
    height: Math.max(
        document.body ? document.body.scrollHeight : 0,
        document.documentElement.scrollHeight
    ),
    viewport: window.innerHeight,
})"""

_IMAGES_LOADED_JS = """() => Array.from(document.images).every(
    (img) => img.complete && img.naturalHeight > 0
)"""


class PageCapturer:
    """Drives a single Playwright page through navigate → stabilise → screenshot.

    The page handle is owned by the caller and reused across captures; only
    one navigation is in flight at a time per capturer.
    """

    def __init__(self, page: Page, config: CaptureConfig, label: str = ""):
        self.page = page
        self.config = config
        self.label = label

    async def capture(self, url: str, destination: Path) -> Path:
        """Capture ``url`` into ``destination``, retrying the whole sequence.

        Raises:
            CaptureError: When every attempt failed. Nothing is written.
        """
        destination = Path(destination)
        description = f"{self.label} {url}".strip()
        try:
            await retry_async(
                lambda: self._capture_once(url, destination),
                max_attempts=self.config.max_attempts,
                backoff_seconds=self.config.retry_backoff_seconds,
                backoff_factor=self.config.retry_backoff_factor,
                description=description,
            )
        except RetryExhaustedError as e:
            logger.error("Failed to load %s after %d attempts", url, e.attempts)
            raise CaptureError(url, e.attempts, str(e.last_error)) from e.last_error
        return destination

    async def _capture_once(self, url: str, destination: Path) -> None:
        await self.page.goto(
            url, wait_until="domcontentloaded", timeout=self.config.navigation_timeout_ms,
        )
        await self.dismiss_cookie_banner()
        await self.trigger_lazy_load()
        await self.wait_for_images()
        await self.page.wait_for_timeout(self.config.settle_delay_ms)

        # Nothing touches the destination until the screenshot succeeded
        image_bytes = await self.page.screenshot(full_page=self.config.full_page, type="png")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(image_bytes)
        logger.debug("Saved screenshot of %s to %s", url, destination)

    async def dismiss_cookie_banner(self) -> bool:
        """Click the first visible known consent control. Returns True if one was clicked."""
        for selector in self.config.cookie_dismiss_selectors:
            try:
                button = self.page.locator(selector).first
                if await button.is_visible():
                    await button.click(timeout=2000)
                    logger.debug("Dismissed cookie banner via %s", selector)
                    await self.page.wait_for_timeout(300)
                    return True
            except Exception as e:
                logger.debug("Cookie selector %s not usable: %s", selector, e)
        return False

    async def trigger_lazy_load(self) -> int:
        """Scroll top to bottom in fixed steps, then back to the top.

        The document height is re-read after every step because lazy content
        can grow the page. Returns the number of scroll steps taken.
        """
        step = self.config.scroll_step_px
        position = 0
        steps = 0
        metrics = await self.page.evaluate(_SCROLL_METRICS_JS)
        while position + metrics["viewport"] < metrics["height"] and steps < self.config.max_scroll_steps:
            position += step
            await self.page.evaluate(f"window.scrollTo(0, {position})")
            steps += 1
            if self.config.scroll_pause_ms:
                await self.page.wait_for_timeout(self.config.scroll_pause_ms)
            metrics = await self.page.evaluate(_SCROLL_METRICS_JS)
        await self.page.evaluate("window.scrollTo(0, 0)")
        logger.debug("Lazy-load scroll finished after %d steps (height=%s)", steps, metrics["height"])
        return steps

    async def wait_for_images(self) -> bool:
        """Wait until every <img> has loaded with a non-zero natural height.

        Returns False on timeout. The timeout is only raised when
        ``fail_on_image_timeout`` is set.
        """
        try:
            await self.page.wait_for_function(
                _IMAGES_LOADED_JS, timeout=self.config.image_load_timeout_ms,
            )
            return True
        except Exception as e:
            if self.config.fail_on_image_timeout:
                raise ImageTimeoutError(f"Images did not finish loading: {e}") from e
            logger.warning("Image load wait timed out on %s; capturing anyway", self.page.url)
            return False
