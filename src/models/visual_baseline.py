"""Visual baseline metadata stored next to each baseline image."""

from __future__ import annotations

from pydantic import BaseModel


class BaselineEntry(BaseModel):
    name: str
    viewport: str
    width: int
    height: int
    image_path: str  # file name relative to the baselines directory
    captured_at: str  # ISO timestamp
    image_hash: str  # SHA-256 hex digest

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.viewport)
