"""Page tools — screenshots and DOM queries against the site."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from src.errors import StoreIOError
from src.models.snapshot import Snapshot
from src.tools.registry import ToolContext, ToolInput, ToolRegistry

logger = logging.getLogger(__name__)

_BOUNDS_SCRIPT = """(sel) => {
    const el = document.querySelector(sel);
    if (!el) return null;
    const r = el.getBoundingClientRect();
    const s = window.getComputedStyle(el);
    return {
        rect: {top: r.top, left: r.left, width: r.width, height: r.height,
               right: r.right, bottom: r.bottom},
        styles: {position: s.position, display: s.display, zIndex: s.zIndex,
                 margin: s.margin, padding: s.padding,
                 flexDirection: s.flexDirection,
                 gridTemplateColumns: s.gridTemplateColumns},
    };
}"""

_RECTS_SCRIPT = """(selectors) => selectors.map((sel) => {
    const el = document.querySelector(sel);
    if (!el) return null;
    const r = el.getBoundingClientRect();
    return {top: r.top, left: r.left, width: r.width, height: r.height,
            right: r.right, bottom: r.bottom};
})"""

_TEXT_SCRIPT = """(sel) => {
    const root = sel ? document.querySelector(sel) : document.body;
    return root ? root.innerText : null;
}"""


class PageArgs(ToolInput):
    viewport: str = "desktop"
    source: Optional[str] = None


class HeroArgs(PageArgs):
    live: bool = False


class ElementScreenshotArgs(PageArgs):
    selector: str


class TextArgs(PageArgs):
    selector: Optional[str] = None


class SelectorArgs(PageArgs):
    selector: str


class CompareElementsArgs(PageArgs):
    selector1: str
    selector2: str


def compare_rects(rect1: dict, rect2: dict) -> dict:
    """Overlap and gap measurements between two bounding rects."""
    overlapping = not (
        rect1["right"] < rect2["left"]
        or rect1["left"] > rect2["right"]
        or rect1["bottom"] < rect2["top"]
        or rect1["top"] > rect2["bottom"]
    )
    overlap_area = 0.0
    if overlapping:
        overlap_area = (
            max(0, min(rect1["right"], rect2["right"]) - max(rect1["left"], rect2["left"]))
            * max(0, min(rect1["bottom"], rect2["bottom"]) - max(rect1["top"], rect2["top"]))
        )
    return {
        "overlapping": overlapping,
        "overlapArea": overlap_area,
        "verticalGap": rect2["top"] - rect1["bottom"],
        "horizontalGap": rect2["left"] - rect1["right"],
    }


def save_screenshot(directory: Path, prefix: str, snapshot: Snapshot) -> Path:
    """Write a screenshot with a millisecond timestamp suffix."""
    path = directory / f"{prefix}_{int(time.time() * 1000)}.png"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(snapshot.data)
    except OSError as e:
        raise StoreIOError(f"Failed to write screenshot {path}: {e}") from e
    return path


def register_page_tools(registry: ToolRegistry) -> None:
    @registry.register(
        "screenshot_hero", "Screenshot the hero section (above the fold)", HeroArgs,
    )
    async def screenshot_hero(ctx: ToolContext, args: HeroArgs) -> dict:
        source = args.source
        if args.live:
            if not ctx.config.live_url:
                raise ValueError("live_url is not configured")
            source = ctx.config.live_url
        vp = ctx.config.resolve_viewport(args.viewport)
        snapshot = await ctx.capture_service.capture(
            source, vp,
            settle_ms=ctx.config.hero_settle_ms,
            clip={"x": 0, "y": 0, "width": vp.width, "height": vp.height},
        )
        path = save_screenshot(ctx.config.screenshots_dir, f"hero_{vp.name}", snapshot)
        return {
            "success": True,
            "file": str(path),
            "viewport": vp.name,
            "message": f"Hero screenshot saved to {path}",
        }

    @registry.register("screenshot_full", "Take a full-page screenshot", PageArgs)
    async def screenshot_full(ctx: ToolContext, args: PageArgs) -> dict:
        vp = ctx.config.resolve_viewport(args.viewport)
        snapshot = await ctx.capture_service.capture(args.source, vp, full_page=True)
        path = save_screenshot(ctx.config.screenshots_dir, f"full_{vp.name}", snapshot)
        return {
            "success": True,
            "file": str(path),
            "viewport": vp.name,
            "width": snapshot.width,
            "height": snapshot.height,
            "message": f"Full page screenshot saved to {path}",
        }

    @registry.register(
        "screenshot_element", "Screenshot the element matching a CSS selector",
        ElementScreenshotArgs,
    )
    async def screenshot_element(ctx: ToolContext, args: ElementScreenshotArgs) -> dict:
        vp = ctx.config.resolve_viewport(args.viewport)
        snapshot = await ctx.capture_service.capture_element(args.source, vp, args.selector)
        if snapshot is None:
            return {"success": False, "error": f"Element not found: {args.selector}"}
        path = save_screenshot(ctx.config.screenshots_dir, "element", snapshot)
        return {
            "success": True,
            "file": str(path),
            "selector": args.selector,
            "message": f"Element screenshot saved to {path}",
        }

    @registry.register(
        "extract_text", "Extract visible text from the page or a selector", TextArgs,
    )
    async def extract_text(ctx: ToolContext, args: TextArgs) -> dict:
        vp = ctx.config.resolve_viewport(args.viewport)
        async with ctx.capture_service.open_page(args.source, vp) as page:
            text = await page.evaluate(_TEXT_SCRIPT, args.selector)
        if text is None:
            return {"success": False, "error": f"Element not found: {args.selector or 'body'}"}
        return {"success": True, "text": text, "selector": args.selector or "body"}

    @registry.register(
        "get_element_bounds", "Get the bounding box and layout styles of an element",
        SelectorArgs,
    )
    async def get_element_bounds(ctx: ToolContext, args: SelectorArgs) -> dict:
        vp = ctx.config.resolve_viewport(args.viewport)
        async with ctx.capture_service.open_page(args.source, vp) as page:
            bounds = await page.evaluate(_BOUNDS_SCRIPT, args.selector)
        if bounds is None:
            return {"success": False, "error": f"Element not found: {args.selector}"}
        return {"success": True, "selector": args.selector, "bounds": bounds}

    @registry.register(
        "compare_elements", "Compare two elements' positions for overlap and alignment",
        CompareElementsArgs,
    )
    async def compare_elements(ctx: ToolContext, args: CompareElementsArgs) -> dict:
        vp = ctx.config.resolve_viewport(args.viewport)
        async with ctx.capture_service.open_page(args.source, vp) as page:
            rect1, rect2 = await page.evaluate(_RECTS_SCRIPT, [args.selector1, args.selector2])
        if rect1 is None or rect2 is None:
            missing = args.selector1 if rect1 is None else args.selector2
            return {"success": False, "error": f"Element not found: {missing}"}
        logger.debug("Rects for %s / %s: %s %s", args.selector1, args.selector2, rect1, rect2)
        return {
            "success": True,
            "comparison": {
                "element1": {"selector": args.selector1, "rect": rect1},
                "element2": {"selector": args.selector2, "rect": rect2},
                **compare_rects(rect1, rect2),
            },
        }
