"""Snapshot and comparison result data structures."""

from __future__ import annotations

import hashlib
import io
import time
from functools import cached_property
from typing import Literal, Optional

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ComparisonStatus = Literal["baseline_created", "identical", "passed", "failed"]


def utc_timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class Snapshot(BaseModel):
    """An immutable PNG capture of a rendered page."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    width: int
    height: int
    captured_at: str = Field(default_factory=utc_timestamp)

    @classmethod
    def from_png(cls, data: bytes, captured_at: str | None = None) -> "Snapshot":
        """Build a snapshot from encoded image bytes, reading dimensions from the header."""
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
        if captured_at is None:
            return cls(data=data, width=width, height=height)
        return cls(data=data, width=width, height=height, captured_at=captured_at)

    @cached_property
    def content_hash(self) -> str:
        return hashlib.sha256(self.data).hexdigest()

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def to_image(self) -> Image.Image:
        """Decode to an RGBA Pillow image."""
        with Image.open(io.BytesIO(self.data)) as img:
            return img.convert("RGBA")


class ComparisonResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: ComparisonStatus
    diff_percentage: float = 0.0  # 0-100
    threshold: float
    size_diff: float = 0.0  # relative area delta, 0-1
    baseline_size: Optional[tuple[int, int]] = None
    current_size: Optional[tuple[int, int]] = None
    baseline_hash: str = ""
    current_hash: str = ""

    @property
    def passed(self) -> bool:
        return self.status != "failed"

    def to_output(self) -> dict:
        return self.model_dump(by_alias=True)
