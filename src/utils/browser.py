"""Browser session utilities — launch Chromium and open capture contexts."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError, Playwright

from src.errors import BrowserUnavailableError

logger = logging.getLogger(__name__)

# Freeze CSS transitions/animations and hide the caret so repeated captures match.
_STABILIZE_CSS = """
*, *::before, *::after {
    animation-duration: 0s !important;
    animation-delay: 0s !important;
    transition-duration: 0s !important;
    transition-delay: 0s !important;
    caret-color: transparent !important;
}
"""

_STABILIZE_INIT_SCRIPT = f"""
document.addEventListener('DOMContentLoaded', () => {{
    const style = document.createElement('style');
    style.setAttribute('data-vbm', 'stabilize');
    style.textContent = `{_STABILIZE_CSS}`;
    document.head.appendChild(style);
}});
"""


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    """Launch headless Chromium, or raise BrowserUnavailableError."""
    try:
        return await playwright.chromium.launch(
            headless=headless,
            args=["--hide-scrollbars", "--font-render-hinting=none"],
        )
    except PlaywrightError as e:
        logger.error("Chromium launch failed: %s", e)
        raise BrowserUnavailableError(f"Could not launch Chromium: {e}") from e


async def create_capture_context(
    browser: Browser,
    viewport: dict,
    reduce_motion: bool = True,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create a browser context sized to the viewport.

    Args:
        reduce_motion: Emulate ``prefers-reduced-motion`` and inject CSS that
            zeroes animation and transition durations.
    """
    context_kwargs: dict = {
        "viewport": viewport,
        "device_scale_factor": 1,
        "locale": "en-US",
        "timezone_id": "UTC",
    }
    if user_agent:
        context_kwargs["user_agent"] = user_agent
    if reduce_motion:
        context_kwargs["reduced_motion"] = "reduce"

    context = await browser.new_context(**context_kwargs)
    if reduce_motion:
        await context.add_init_script(_STABILIZE_INIT_SCRIPT)
    return context
