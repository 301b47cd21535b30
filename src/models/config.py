"""Configuration models for the visual baseline manager."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

_CUSTOM_VIEWPORT_RE = re.compile(r"^(\d{2,5})x(\d{2,5})$")


class ViewportConfig(BaseModel):
    width: int = 1440
    height: int = 900
    name: str = "desktop"

    def as_playwright(self) -> dict:
        return {"width": self.width, "height": self.height}


class ToolConfig(BaseModel):
    # Page sources
    site_url: str = "index.html"
    live_url: Optional[str] = None

    # Storage
    baselines_dir: str = "./baselines"
    reports_dir: str = "./reports"

    # Capture
    viewports: list[ViewportConfig] = Field(
        default_factory=lambda: [
            ViewportConfig(width=1440, height=900, name="desktop"),
            ViewportConfig(width=768, height=1024, name="tablet"),
            ViewportConfig(width=375, height=812, name="mobile"),
        ]
    )
    settle_ms: int = 1500  # entrance animations finish after network idle
    hero_settle_ms: int = 2000
    navigation_timeout_ms: int = 30000
    headless: bool = True
    reduce_motion: bool = True

    # Comparison
    default_threshold: float = 0.1
    pixel_tolerance: int = 0

    @field_validator("default_threshold")
    @classmethod
    def check_threshold(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError("default_threshold must be between 0 and 100")
        return v

    @field_validator("pixel_tolerance")
    @classmethod
    def check_pixel_tolerance(cls, v: int) -> int:
        if not 0 <= v <= 255:
            raise ValueError("pixel_tolerance must be between 0 and 255")
        return v

    @property
    def diffs_dir(self) -> Path:
        return Path(self.reports_dir) / "diffs"

    @property
    def screenshots_dir(self) -> Path:
        return Path(self.reports_dir) / "screenshots"

    @property
    def viewport_names(self) -> list[str]:
        return [v.name for v in self.viewports]

    def resolve_viewport(self, viewport: str) -> ViewportConfig:
        """Look up a preset by name, or parse a custom ``WIDTHxHEIGHT`` viewport."""
        for preset in self.viewports:
            if preset.name == viewport:
                return preset
        match = _CUSTOM_VIEWPORT_RE.match(viewport)
        if match:
            width, height = int(match.group(1)), int(match.group(2))
            return ViewportConfig(width=width, height=height, name=viewport)
        raise ValueError(
            f"Unknown viewport '{viewport}' "
            f"(expected one of {', '.join(self.viewport_names)} or WIDTHxHEIGHT)"
        )

    @classmethod
    def load(cls, path: str | Path) -> "ToolConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def load_or_default(cls, path: str | Path) -> "ToolConfig":
        """Load config if the file exists, otherwise use defaults."""
        if Path(path).exists():
            return cls.load(path)
        return cls()

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
