"""Comparator — per-pixel comparison of two snapshots against a tolerance."""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageChops

from src.models.snapshot import ComparisonResult, Snapshot

logger = logging.getLogger(__name__)

DIFF_HIGHLIGHT = (255, 0, 0, 255)
MIN_REPORTED_DIFF = 0.0001


def compare(
    baseline: Snapshot,
    current: Snapshot,
    threshold: float,
    pixel_tolerance: int = 0,
) -> ComparisonResult:
    """Compare two snapshots and return a verdict.

    ``threshold`` and the reported ``diff_percentage`` are both percentages of
    the compared canvas. When sizes differ, the canvas is the union of both
    images and the area covered by only one of them counts as changed.
    """
    if not 0 <= threshold <= 100:
        raise ValueError(f"threshold must be between 0 and 100, got {threshold}")

    common = dict(
        threshold=threshold,
        baseline_size=baseline.size,
        current_size=current.size,
        baseline_hash=baseline.content_hash,
        current_hash=current.content_hash,
    )

    if baseline.content_hash == current.content_hash:
        return ComparisonResult(status="identical", diff_percentage=0.0, size_diff=0.0, **common)

    size_diff = _size_diff(baseline, current)
    differing, total = _count_differing_pixels(
        baseline.to_image(), current.to_image(), pixel_tolerance
    )
    exact = 100.0 * differing / total if total else 0.0
    status = "passed" if exact <= threshold else "failed"

    # Reported value is rounded, but a real change never rounds away to zero.
    diff_percentage = round(exact, 4)
    if differing and diff_percentage == 0.0:
        diff_percentage = MIN_REPORTED_DIFF

    logger.debug("Compared %dx%d vs %dx%d: %d/%d pixels differ (%.6f%%), size diff %.4f -> %s",
                 baseline.width, baseline.height, current.width, current.height,
                 differing, total, exact, size_diff, status)
    return ComparisonResult(
        status=status,
        diff_percentage=diff_percentage,
        size_diff=size_diff,
        **common,
    )


def _size_diff(baseline: Snapshot, current: Snapshot) -> float:
    area_a = baseline.width * baseline.height
    area_b = current.width * current.height
    largest = max(area_a, area_b)
    if largest == 0:
        return 0.0
    return round(abs(area_a - area_b) / largest, 4)


def _on_canvas(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    if img.size == size:
        return img
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.paste(img, (0, 0))
    return canvas


def _coverage_mask(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    """Single-band mask that is 255 where ``img`` has pixels on the canvas."""
    mask = Image.new("L", size, 0)
    mask.paste(255, (0, 0, img.width, img.height))
    return mask


def _difference_mask(
    baseline: Image.Image, current: Image.Image, pixel_tolerance: int
) -> Image.Image:
    """Single-band mask, 255 where pixels differ, over the union of both sizes."""
    size = (max(baseline.width, current.width), max(baseline.height, current.height))
    a = _on_canvas(baseline, size)
    b = _on_canvas(current, size)

    # Largest per-channel difference for each pixel
    bands = ImageChops.difference(a, b).split()
    channel_max = bands[0]
    for band in bands[1:]:
        channel_max = ImageChops.lighter(channel_max, band)
    mask = channel_max.point(lambda v: 255 if v > pixel_tolerance else 0)

    if baseline.size != current.size:
        # Pixels present in only one image always count as changed
        only_one = ImageChops.difference(
            _coverage_mask(baseline, size), _coverage_mask(current, size)
        )
        mask = ImageChops.lighter(mask, only_one)
    return mask


def _count_differing_pixels(
    baseline: Image.Image, current: Image.Image, pixel_tolerance: int
) -> tuple[int, int]:
    mask = _difference_mask(baseline, current, pixel_tolerance)
    total = mask.width * mask.height
    return mask.histogram()[255], total


def render_diff_image(baseline: Snapshot, current: Snapshot, pixel_tolerance: int = 0) -> bytes:
    """Render a PNG with differing pixels in red over a faded copy of ``current``."""
    base_img = baseline.to_image()
    cur_img = current.to_image()
    mask = _difference_mask(base_img, cur_img, pixel_tolerance)

    backdrop = Image.new("RGBA", mask.size, (255, 255, 255, 255))
    faded = Image.blend(_on_canvas(cur_img, mask.size), backdrop, 0.7)
    faded.paste(Image.new("RGBA", mask.size, DIFF_HIGHLIGHT), (0, 0), mask)

    buf = io.BytesIO()
    faded.convert("RGB").save(buf, format="PNG")
    return buf.getvalue()
