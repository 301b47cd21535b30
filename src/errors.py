"""Error taxonomy for capture, storage, and comparison operations."""

from __future__ import annotations


class VisualBaselineError(Exception):
    """Base class for operation failures reported as structured results."""


class CaptureError(VisualBaselineError):
    """The page was unreachable or never settled within the timeout."""


class NotFoundError(VisualBaselineError):
    """A referenced baseline does not exist."""

    def __init__(self, name: str, viewport: str):
        super().__init__(f"No baseline found for '{name}' ({viewport})")
        self.name = name
        self.viewport = viewport


class StoreIOError(VisualBaselineError):
    """Reading or writing baseline storage failed."""


class BrowserUnavailableError(EnvironmentError):
    """The browser automation backend could not be started."""
