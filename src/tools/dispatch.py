"""Tool dispatch — builds the default registry and runs tools from sync code."""

from __future__ import annotations

import asyncio
import logging

from src.models.config import ToolConfig
from src.tools.baseline_tools import register_baseline_tools
from src.tools.page_tools import register_page_tools
from src.tools.registry import ToolContext, ToolRegistry

logger = logging.getLogger(__name__)


def create_registry() -> ToolRegistry:
    """Registry with every baseline and page tool."""
    registry = ToolRegistry()
    register_baseline_tools(registry)
    register_page_tools(registry)
    return registry


async def call_tool(
    name: str,
    args: dict | None,
    config: ToolConfig,
    registry: ToolRegistry | None = None,
) -> dict:
    registry = registry or create_registry()
    context = ToolContext.from_config(config)
    return await registry.dispatch(name, args, context)


def run_tool(name: str, args: dict | None, config: ToolConfig) -> dict:
    """Run a tool to completion on a fresh event loop."""
    logger.debug("Running tool %s", name)
    return asyncio.run(call_tool(name, args, config))
