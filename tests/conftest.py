"""Pytest configuration and shared fixtures."""

import io
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from PIL import Image, ImageDraw

from src.baselines.baseline_store import BaselineStore
from src.capture.capture_service import CaptureService
from src.models.config import ToolConfig
from src.models.snapshot import Snapshot
from src.regression_workflow import RegressionWorkflow
from src.tools.registry import ToolContext

WHITE = (255, 255, 255)
RED = (255, 0, 0)


# ============================================================================
# Image Fixtures
# ============================================================================


def render_png(
    width: int,
    height: int,
    color: tuple = WHITE,
    banner_height: int = 0,
    banner_color: tuple = RED,
    compress_level: int = 6,
) -> bytes:
    """Render a solid PNG, optionally with a colored banner across the top."""
    img = Image.new("RGB", (width, height), color)
    if banner_height:
        ImageDraw.Draw(img).rectangle([0, 0, width - 1, banner_height - 1], fill=banner_color)
    buf = io.BytesIO()
    img.save(buf, format="PNG", compress_level=compress_level)
    return buf.getvalue()


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    return render_png


@pytest.fixture
def make_snapshot() -> Callable[..., Snapshot]:
    """Factory for snapshots of solid pages with an optional top banner."""
    def _make(width: int = 64, height: int = 48, **kwargs) -> Snapshot:
        return Snapshot.from_png(render_png(width, height, **kwargs))
    return _make


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def tool_config(tmp_path: Path) -> ToolConfig:
    """Config with baselines and reports inside the test's temp directory."""
    return ToolConfig(
        site_url=str(tmp_path / "index.html"),
        baselines_dir=str(tmp_path / "baselines"),
        reports_dir=str(tmp_path / "reports"),
        settle_ms=0,
        hero_settle_ms=0,
    )


@pytest.fixture
def temp_config_file(tool_config: ToolConfig, tmp_path: Path) -> Path:
    config_file = tmp_path / "vbm-config.json"
    tool_config.save(config_file)
    return config_file


# ============================================================================
# Store / Capture / Workflow Fixtures
# ============================================================================


@pytest.fixture
def baseline_store(tool_config: ToolConfig) -> BaselineStore:
    return BaselineStore(Path(tool_config.baselines_dir), tool_config.viewport_names)


@pytest.fixture
def mock_capture_service() -> Mock:
    """Capture service stand-in; set ``capture.return_value`` or ``side_effect``."""
    service = Mock(spec=CaptureService)
    service.capture = AsyncMock()
    service.capture_element = AsyncMock()
    return service


@pytest.fixture
def workflow(tool_config, mock_capture_service, baseline_store) -> RegressionWorkflow:
    return RegressionWorkflow(
        tool_config, capture_service=mock_capture_service, store=baseline_store,
    )


@pytest.fixture
def tool_context(tool_config, mock_capture_service, workflow) -> ToolContext:
    return ToolContext(
        config=tool_config, capture_service=mock_capture_service, workflow=workflow,
    )


@pytest.fixture
def fake_open_page() -> Callable:
    """Factory for ``open_page`` replacements that yield a given page."""
    def _build(page):
        @asynccontextmanager
        async def _open_page(page_source, viewport, settle_ms=None):
            yield page
        return _open_page
    return _build


@pytest.fixture
def mock_page() -> AsyncMock:
    page = AsyncMock()
    page.set_default_timeout = Mock()
    page.goto = AsyncMock(return_value=Mock(status=200))
    page.wait_for_timeout = AsyncMock()
    page.screenshot = AsyncMock(return_value=render_png(40, 30))
    return page


@pytest.fixture
def playwright_mocks(mock_page):
    """Patchable ``async_playwright`` returning a browser that serves ``mock_page``.

    Returns (async_playwright_factory, playwright, browser, context).
    """
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=mock_page)
    context.add_init_script = AsyncMock()

    browser = AsyncMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = Mock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)
    factory = Mock(return_value=manager)
    return factory, playwright, browser, context
