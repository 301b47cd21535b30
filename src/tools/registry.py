"""Tool registry — named operations with declared input schemas."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, ValidationError

from src.capture.capture_service import CaptureService
from src.errors import BrowserUnavailableError, VisualBaselineError
from src.models.config import ToolConfig
from src.regression_workflow import RegressionWorkflow

logger = logging.getLogger(__name__)


class ToolInput(BaseModel):
    """Base class for tool argument models. Unknown arguments are rejected."""

    model_config = ConfigDict(extra="forbid")


@dataclass
class ToolContext:
    config: ToolConfig
    capture_service: CaptureService
    workflow: RegressionWorkflow

    @classmethod
    def from_config(cls, config: ToolConfig) -> "ToolContext":
        capture_service = CaptureService(config)
        workflow = RegressionWorkflow(config, capture_service=capture_service)
        return cls(config=config, capture_service=capture_service, workflow=workflow)


Handler = Callable[[ToolContext, Any], Awaitable[dict]]


@dataclass
class Tool:
    name: str
    description: str
    input_model: type[ToolInput]
    handler: Handler

    def input_schema(self) -> dict:
        return self.input_model.model_json_schema()


def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


class ToolRegistry:
    """Maps tool names to handlers and converts failures into result objects."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, name: str, description: str, input_model: type[ToolInput]):
        """Decorator registering an async handler under ``name``."""
        def decorator(handler: Handler) -> Handler:
            if name in self._tools:
                raise ValueError(f"Tool already registered: {name}")
            self._tools[name] = Tool(name, description, input_model, handler)
            return handler
        return decorator

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    async def dispatch(self, name: str, args: dict | None, context: ToolContext) -> dict:
        """Run a tool and always return a result object.

        BrowserUnavailableError is the only exception that escapes: without a
        browser no tool can work, so callers treat it as fatal.
        """
        tool = self._tools.get(name)
        if tool is None:
            return {"error": f"Unknown tool: {name}"}

        try:
            params = tool.input_model.model_validate(args or {})
        except ValidationError as e:
            return {"success": False, "error": f"Invalid arguments for {name}: {_format_validation_error(e)}"}

        logger.debug("Dispatching %s with %s", name, params.model_dump())
        try:
            return await tool.handler(context, params)
        except BrowserUnavailableError:
            raise
        except VisualBaselineError as e:
            logger.error("%s failed: %s", name, e)
            return {"success": False, "error": str(e), "errorType": type(e).__name__}
        except ValueError as e:
            logger.error("%s rejected arguments: %s", name, e)
            return {"success": False, "error": str(e), "errorType": "ValueError"}
        except Exception as e:
            logger.exception("Unexpected error in %s", name)
            return {"success": False, "error": f"{type(e).__name__}: {e}", "errorType": type(e).__name__}
