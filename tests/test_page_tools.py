"""Tests for the page screenshot and DOM query tools."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from src.tools.dispatch import create_registry
from src.tools.page_tools import compare_rects


def _rect(left, top, width, height):
    return {
        "left": left, "top": top, "width": width, "height": height,
        "right": left + width, "bottom": top + height,
    }


@pytest.fixture
def registry():
    return create_registry()


class TestCompareRects:
    """Pure geometry for compare_elements."""

    def test_overlapping_rects(self):
        result = compare_rects(_rect(0, 0, 100, 100), _rect(50, 50, 100, 100))
        assert result["overlapping"] is True
        assert result["overlapArea"] == 2500

    def test_separate_rects_report_gaps(self):
        result = compare_rects(_rect(0, 0, 100, 50), _rect(0, 80, 100, 50))
        assert result["overlapping"] is False
        assert result["overlapArea"] == 0
        assert result["verticalGap"] == 30
        assert result["horizontalGap"] == -100

    def test_touching_edges_count_as_overlapping_with_zero_area(self):
        result = compare_rects(_rect(0, 0, 10, 10), _rect(10, 0, 10, 10))
        assert result["overlapping"] is True
        assert result["overlapArea"] == 0


class TestScreenshotTools:
    """Screenshot tools write files under reports/screenshots."""

    @pytest.mark.asyncio
    async def test_screenshot_full(self, registry, tool_context, mock_capture_service, make_snapshot, tool_config):
        mock_capture_service.capture.return_value = make_snapshot(375, 2000)

        result = await registry.dispatch("screenshot_full", {"viewport": "mobile"}, tool_context)

        assert result["success"] is True
        assert result["viewport"] == "mobile"
        assert result["height"] == 2000
        path = Path(result["file"])
        assert path.exists()
        assert path.parent == tool_config.screenshots_dir
        assert path.name.startswith("full_mobile_")

    @pytest.mark.asyncio
    async def test_screenshot_hero_clips_to_viewport(self, registry, tool_context, mock_capture_service, make_snapshot):
        mock_capture_service.capture.return_value = make_snapshot(768, 1024)

        result = await registry.dispatch("screenshot_hero", {"viewport": "tablet"}, tool_context)

        assert result["success"] is True
        kwargs = mock_capture_service.capture.call_args.kwargs
        assert kwargs["clip"] == {"x": 0, "y": 0, "width": 768, "height": 1024}
        assert kwargs["settle_ms"] == tool_context.config.hero_settle_ms

    @pytest.mark.asyncio
    async def test_screenshot_hero_live_requires_live_url(self, registry, tool_context):
        result = await registry.dispatch("screenshot_hero", {"live": True}, tool_context)
        assert result["success"] is False
        assert "live_url" in result["error"]

    @pytest.mark.asyncio
    async def test_screenshot_hero_live_uses_live_url(self, registry, tool_context, mock_capture_service, make_snapshot):
        tool_context.config.live_url = "https://example.com"
        mock_capture_service.capture.return_value = make_snapshot()

        await registry.dispatch("screenshot_hero", {"live": True}, tool_context)

        assert mock_capture_service.capture.call_args.args[0] == "https://example.com"

    @pytest.mark.asyncio
    async def test_screenshot_element_not_found(self, registry, tool_context, mock_capture_service):
        mock_capture_service.capture_element.return_value = None

        result = await registry.dispatch("screenshot_element", {"selector": "#missing"}, tool_context)

        assert result == {"success": False, "error": "Element not found: #missing"}

    @pytest.mark.asyncio
    async def test_screenshot_element(self, registry, tool_context, mock_capture_service, make_snapshot):
        mock_capture_service.capture_element.return_value = make_snapshot(120, 40)

        result = await registry.dispatch("screenshot_element", {"selector": ".hero"}, tool_context)

        assert result["success"] is True
        assert result["selector"] == ".hero"
        assert Path(result["file"]).exists()


class TestDomQueryTools:
    """DOM query tools evaluate a snippet and shape the result."""

    @pytest.mark.asyncio
    async def test_extract_text_body(self, registry, tool_context, mock_capture_service, fake_open_page):
        page = AsyncMock()
        page.evaluate = AsyncMock(return_value="Hello\nWorld")
        mock_capture_service.open_page = fake_open_page(page)

        result = await registry.dispatch("extract_text", {}, tool_context)

        assert result == {"success": True, "text": "Hello\nWorld", "selector": "body"}
        assert page.evaluate.call_args.args[1] is None

    @pytest.mark.asyncio
    async def test_extract_text_missing_selector(self, registry, tool_context, mock_capture_service, fake_open_page):
        page = AsyncMock()
        page.evaluate = AsyncMock(return_value=None)
        mock_capture_service.open_page = fake_open_page(page)

        result = await registry.dispatch("extract_text", {"selector": "#nope"}, tool_context)

        assert result == {"success": False, "error": "Element not found: #nope"}

    @pytest.mark.asyncio
    async def test_get_element_bounds(self, registry, tool_context, mock_capture_service, fake_open_page):
        bounds = {"rect": _rect(0, 0, 10, 10), "styles": {"display": "block"}}
        page = AsyncMock()
        page.evaluate = AsyncMock(return_value=bounds)
        mock_capture_service.open_page = fake_open_page(page)

        result = await registry.dispatch("get_element_bounds", {"selector": "nav"}, tool_context)

        assert result == {"success": True, "selector": "nav", "bounds": bounds}

    @pytest.mark.asyncio
    async def test_compare_elements(self, registry, tool_context, mock_capture_service, fake_open_page):
        page = AsyncMock()
        page.evaluate = AsyncMock(return_value=[_rect(0, 0, 100, 40), _rect(0, 60, 100, 40)])
        mock_capture_service.open_page = fake_open_page(page)

        result = await registry.dispatch(
            "compare_elements", {"selector1": "header", "selector2": "main"}, tool_context,
        )

        comparison = result["comparison"]
        assert result["success"] is True
        assert comparison["element1"]["selector"] == "header"
        assert comparison["overlapping"] is False
        assert comparison["verticalGap"] == 20

    @pytest.mark.asyncio
    async def test_compare_elements_missing(self, registry, tool_context, mock_capture_service, fake_open_page):
        page = AsyncMock()
        page.evaluate = AsyncMock(return_value=[_rect(0, 0, 1, 1), None])
        mock_capture_service.open_page = fake_open_page(page)

        result = await registry.dispatch(
            "compare_elements", {"selector1": "header", "selector2": "#gone"}, tool_context,
        )

        assert result == {"success": False, "error": "Element not found: #gone"}
