"""Capture service — renders a page at a viewport and returns a PNG snapshot."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import (
    Error as PlaywrightError,
    Page,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from src.errors import CaptureError
from src.models.config import ToolConfig, ViewportConfig
from src.models.snapshot import Snapshot
from src.url_utils import resolve_page_source
from src.utils.browser import create_capture_context, launch_browser

logger = logging.getLogger(__name__)


class CaptureService:
    """Drives Playwright to produce settled, full-page captures.

    Every call launches its own browser and closes it on all exit paths, so
    concurrent captures never share browser state.
    """

    def __init__(self, config: ToolConfig):
        self.config = config

    def resolve(self, page_source: str | None) -> str:
        return resolve_page_source(page_source or self.config.site_url)

    @asynccontextmanager
    async def open_page(
        self,
        page_source: str | None,
        viewport: ViewportConfig,
        settle_ms: int | None = None,
    ) -> AsyncIterator[Page]:
        """Yield a page that has reached network quiescence plus the settle delay."""
        url = self.resolve(page_source)
        settle = self.config.settle_ms if settle_ms is None else settle_ms
        timeout = self.config.navigation_timeout_ms

        async with async_playwright() as p:
            browser = await launch_browser(p, headless=self.config.headless)
            try:
                context = await create_capture_context(
                    browser,
                    viewport=viewport.as_playwright(),
                    reduce_motion=self.config.reduce_motion,
                )
                page = await context.new_page()
                page.set_default_timeout(timeout)
                logger.debug("Navigating to %s at %s (%dx%d)",
                             url, viewport.name, viewport.width, viewport.height)
                try:
                    response = await page.goto(url, wait_until="networkidle", timeout=timeout)
                except PlaywrightTimeoutError as e:
                    raise CaptureError(
                        f"Timed out after {timeout}ms waiting for {url} to settle"
                    ) from e
                except PlaywrightError as e:
                    raise CaptureError(f"Could not load {url}: {e}") from e
                if response is not None and response.status >= 400:
                    raise CaptureError(f"{url} returned HTTP {response.status}")

                if settle > 0:
                    await page.wait_for_timeout(settle)
                yield page
            finally:
                await browser.close()

    async def capture(
        self,
        page_source: str | None,
        viewport: ViewportConfig | str,
        settle_ms: int | None = None,
        full_page: bool = True,
        clip: Optional[dict] = None,
    ) -> Snapshot:
        """Capture a PNG snapshot of ``page_source`` at ``viewport``.

        ``clip`` bounds the capture to a region (``x``, ``y``, ``width``,
        ``height``) and implies a viewport-anchored screenshot.
        """
        if isinstance(viewport, str):
            viewport = self.config.resolve_viewport(viewport)

        start = time.time()
        async with self.open_page(page_source, viewport, settle_ms) as page:
            try:
                if clip is not None:
                    data = await page.screenshot(type="png", clip=clip)
                else:
                    data = await page.screenshot(type="png", full_page=full_page)
            except PlaywrightError as e:
                raise CaptureError(f"Screenshot failed: {e}") from e

        snapshot = Snapshot.from_png(data)
        logger.info("Captured %s at %s: %dx%d in %.1fs",
                    self.resolve(page_source), viewport.name,
                    snapshot.width, snapshot.height, time.time() - start)
        return snapshot

    async def capture_element(
        self,
        page_source: str | None,
        viewport: ViewportConfig | str,
        selector: str,
    ) -> Snapshot | None:
        """Capture a single element, or return None if the selector matches nothing."""
        if isinstance(viewport, str):
            viewport = self.config.resolve_viewport(viewport)

        async with self.open_page(page_source, viewport) as page:
            element = await page.query_selector(selector)
            if element is None:
                return None
            try:
                data = await element.screenshot(type="png")
            except PlaywrightError as e:
                raise CaptureError(f"Element screenshot failed for {selector}: {e}") from e
        return Snapshot.from_png(data)
