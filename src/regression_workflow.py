"""Regression workflow — coordinates capture, baseline lookup, comparison, and reporting."""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from src.baselines.baseline_store import BaselineStore
from src.capture.capture_service import CaptureService
from src.comparator.comparator import compare, render_diff_image
from src.errors import NotFoundError, StoreIOError
from src.models.config import ToolConfig
from src.models.snapshot import ComparisonResult, Snapshot
from src.models.visual_baseline import BaselineEntry
from src.reporter.json_report import generate_json_report

logger = logging.getLogger(__name__)


@dataclass
class RegressionRun:
    name: str
    viewport: str
    result: ComparisonResult
    baseline_path: Path
    artifacts: dict[str, str] = field(default_factory=dict)


@dataclass
class BaselineUpdate:
    entry: BaselineEntry
    path: Path
    replaced: bool


class RegressionWorkflow:
    """Runs visual regressions against named, viewport-scoped baselines.

    A failed comparison never touches the stored baseline; accepting a visual
    change is always an explicit ``update_baseline`` call.
    """

    def __init__(
        self,
        config: ToolConfig,
        capture_service: CaptureService | None = None,
        store: BaselineStore | None = None,
    ):
        self.config = config
        self.capture_service = capture_service or CaptureService(config)
        self.store = store or BaselineStore(Path(config.baselines_dir), config.viewport_names)
        self.diffs_dir = config.diffs_dir
        self._key_locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, name: str, viewport: str) -> asyncio.Lock:
        # Entries vanish once no coroutine holds or awaits the lock.
        lock = self._key_locks.get((name, viewport))
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[(name, viewport)] = lock
        return lock

    async def _capture(self, viewport: str, page_source: str | None) -> Snapshot:
        vp = self.config.resolve_viewport(viewport)
        return await self.capture_service.capture(page_source, vp, full_page=True)

    async def run_regression(
        self,
        name: str,
        viewport: str,
        page_source: str | None = None,
        threshold: float | None = None,
        create_missing: bool = True,
    ) -> RegressionRun:
        """Capture the page and compare it with the stored baseline.

        With no baseline stored, the capture becomes the baseline and the run
        reports ``baseline_created`` (or raises NotFoundError when
        ``create_missing`` is False).
        """
        if threshold is None:
            threshold = self.config.default_threshold
        if not 0 <= threshold <= 100:
            raise ValueError(f"threshold must be between 0 and 100, got {threshold}")
        baseline_path = self.store.path_for(name, viewport)

        logger.info("Running visual regression for %s/%s (threshold %.2f%%)",
                    name, viewport, threshold)
        current = await self._capture(viewport, page_source)

        async with self._lock_for(name, viewport):
            baseline = self.store.find(name, viewport)
            if baseline is None:
                if not create_missing:
                    raise NotFoundError(name, viewport)
                self.store.put(name, viewport, current)
                logger.info("No baseline for %s/%s; stored current capture", name, viewport)
                result = ComparisonResult(
                    status="baseline_created",
                    threshold=threshold,
                    current_size=current.size,
                    current_hash=current.content_hash,
                )
                return RegressionRun(name, viewport, result, baseline_path)

        result = compare(baseline, current, threshold, self.config.pixel_tolerance)
        run = RegressionRun(name, viewport, result, baseline_path)

        if result.status != "identical":
            run.artifacts = self._write_artifacts(name, viewport, baseline, current, result)

        if result.status == "failed":
            logger.warning("Visual regression FAILED for %s/%s: %.4f%% differ (threshold %.2f%%)",
                           name, viewport, result.diff_percentage, threshold)
        else:
            logger.info("Visual regression %s for %s/%s: %.4f%% differ",
                        result.status, name, viewport, result.diff_percentage)
        return run

    def _write_artifacts(
        self,
        name: str,
        viewport: str,
        baseline: Snapshot,
        current: Snapshot,
        result: ComparisonResult,
    ) -> dict[str, str]:
        """Keep the current capture, a diff image, and a JSON record for review."""
        stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        prefix = self.diffs_dir / f"{name}_{viewport}_{stamp}"
        current_path = prefix.with_name(prefix.name + "_current.png")
        diff_path = prefix.with_name(prefix.name + "_diff.png")
        report_path = prefix.with_name(prefix.name + "_result.json")

        try:
            self.diffs_dir.mkdir(parents=True, exist_ok=True)
            current_path.write_bytes(current.data)
            diff_path.write_bytes(
                render_diff_image(baseline, current, self.config.pixel_tolerance)
            )
            artifacts = {"current": str(current_path), "diff": str(diff_path)}
            generate_json_report(result, name, viewport, artifacts, report_path)
        except OSError as e:
            raise StoreIOError(f"Failed to write diff artifacts under {self.diffs_dir}: {e}") from e

        artifacts["report"] = str(report_path)
        logger.debug("Wrote diff artifacts to %s*", prefix)
        return artifacts

    async def save_baseline(
        self, name: str, viewport: str, page_source: str | None = None,
    ) -> BaselineUpdate:
        """Capture the page and store it as the baseline for (name, viewport)."""
        current = await self._capture(viewport, page_source)
        async with self._lock_for(name, viewport):
            replaced = self.store.exists(name, viewport)
            entry = self.store.put(name, viewport, current)
        return BaselineUpdate(entry, self.store.path_for(name, viewport), replaced)

    async def update_baseline(
        self, name: str, viewport: str, page_source: str | None = None,
    ) -> BaselineUpdate:
        """Accept the page's current rendering as the new baseline."""
        update = await self.save_baseline(name, viewport, page_source)
        if update.replaced:
            logger.info("Baseline %s/%s replaced", name, viewport)
        return update

    def list_baselines(self) -> list[BaselineEntry]:
        return self.store.list()

    def delete_baseline(self, name: str, viewport: str) -> bool:
        return self.store.delete(name, viewport)
