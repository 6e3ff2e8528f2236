"""Browser session helpers: launch Chromium and open per-environment contexts."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

from envdiff.models.config import HttpCredentials, ViewportConfig

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

# Runs before page scripts: masks the webdriver flag and disables CSS animation.
_SESSION_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => false });

Object.defineProperty(navigator, 'languages', {
    get: () => ['en-US', 'en'],
});

if (!window.chrome) {
    window.chrome = {};
}
if (!window.chrome.runtime) {
    window.chrome.runtime = {};
}

document.addEventListener('DOMContentLoaded', () => {
    const style = document.createElement('style');
    style.textContent = '*, *::before, *::after { transition: none !important; '
        + 'animation: none !important; caret-color: transparent !important; } '
        + 'html { scroll-behavior: auto !important; }';
    document.head.appendChild(style);
});
"""


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch Chromium with the automation-controlled blink feature disabled."""
    return await playwright.chromium.launch(
        headless=headless,
        args=[
            "--disable-blink-features=AutomationControlled",
        ],
    )


async def create_session_context(
    browser: Browser,
    viewport: ViewportConfig,
    http_credentials: Optional[HttpCredentials] = None,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create a browser context for one environment.

    Args:
        http_credentials: Optional HTTP basic-auth credentials. They are handed
            to Playwright untouched; the browser answers the auth challenge.
    """
    context_kwargs: dict = {
        "viewport": {"width": viewport.width, "height": viewport.height},
        "user_agent": user_agent or DEFAULT_USER_AGENT,
        "locale": "en-US",
        "timezone_id": "America/New_York",
        "extra_http_headers": {
            "Accept-Language": "en-US,en;q=0.9",
        },
    }
    if http_credentials:
        context_kwargs["http_credentials"] = {
            "username": http_credentials.username,
            "password": http_credentials.password,
        }

    context = await browser.new_context(**context_kwargs)
    await context.add_init_script(_SESSION_INIT_SCRIPT)
    return context
