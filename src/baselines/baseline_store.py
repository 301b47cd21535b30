"""Baseline store — persists named, viewport-scoped baseline images."""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError

from src.errors import NotFoundError, StoreIOError
from src.models.snapshot import Snapshot
from src.models.visual_baseline import BaselineEntry
from src.url_utils import validate_baseline_name

logger = logging.getLogger(__name__)

_CUSTOM_VIEWPORT = re.compile(r"_(\d+x\d+)$")


class BaselineStore:
    """Stores each baseline as ``{name}_{viewport}.png`` plus a JSON sidecar.

    Every (name, viewport) key lives in its own pair of files, so writes to
    different keys never touch shared state. Writes to the same key are
    last-writer-wins.
    """

    def __init__(self, baselines_dir: Path, viewport_names: list[str] | None = None):
        self.baselines_dir = Path(baselines_dir)
        self.viewport_names = list(viewport_names or [])

    def _stem(self, name: str, viewport: str) -> str:
        validate_baseline_name(name)
        validate_baseline_name(viewport)
        return f"{name}_{viewport}"

    def path_for(self, name: str, viewport: str) -> Path:
        """Return the image path for a baseline key."""
        return self.baselines_dir / f"{self._stem(name, viewport)}.png"

    def _meta_path(self, name: str, viewport: str) -> Path:
        return self.baselines_dir / f"{self._stem(name, viewport)}.json"

    def exists(self, name: str, viewport: str) -> bool:
        return self.path_for(name, viewport).exists()

    def find(self, name: str, viewport: str) -> Snapshot | None:
        """Look up a baseline, returning None if it does not exist."""
        path = self.path_for(name, viewport)
        if not path.exists():
            return None
        try:
            data = path.read_bytes()
        except OSError as e:
            raise StoreIOError(f"Failed to read baseline {path}: {e}") from e

        entry = self._read_entry(name, viewport)
        captured_at = entry.captured_at if entry else None
        try:
            return Snapshot.from_png(data, captured_at=captured_at)
        except (OSError, ValueError) as e:
            raise StoreIOError(f"Unreadable baseline {path}: {e}") from e

    def get(self, name: str, viewport: str) -> Snapshot:
        """Look up a baseline, raising NotFoundError if it does not exist."""
        snapshot = self.find(name, viewport)
        if snapshot is None:
            raise NotFoundError(name, viewport)
        return snapshot

    def put(self, name: str, viewport: str, snapshot: Snapshot) -> BaselineEntry:
        """Write a baseline, replacing any previous one for the same key."""
        dest = self.path_for(name, viewport)
        entry = BaselineEntry(
            name=name,
            viewport=viewport,
            width=snapshot.width,
            height=snapshot.height,
            image_path=dest.name,
            captured_at=snapshot.captured_at,
            image_hash=snapshot.content_hash,
        )
        try:
            self.baselines_dir.mkdir(parents=True, exist_ok=True)
            _atomic_write(dest, snapshot.data)
            _atomic_write(
                self._meta_path(name, viewport),
                json.dumps(entry.model_dump(), indent=2).encode(),
            )
        except OSError as e:
            raise StoreIOError(f"Failed to write baseline {dest}: {e}") from e

        logger.info("Stored baseline %s/%s (%dx%d)",
                    name, viewport, snapshot.width, snapshot.height)
        return entry

    def delete(self, name: str, viewport: str) -> bool:
        """Remove a baseline. Returns False if there was nothing to remove."""
        image = self.path_for(name, viewport)
        meta = self._meta_path(name, viewport)
        if not image.exists():
            return False
        try:
            image.unlink()
            if meta.exists():
                meta.unlink()
        except OSError as e:
            raise StoreIOError(f"Failed to delete baseline {image}: {e}") from e
        logger.info("Deleted baseline %s/%s", name, viewport)
        return True

    def list(self) -> list[BaselineEntry]:
        """Enumerate stored baselines. Order is not significant."""
        if not self.baselines_dir.exists():
            return []
        entries = []
        for image in sorted(self.baselines_dir.glob("*.png")):
            entry = self._entry_from_sidecar(image.with_suffix(".json"))
            if entry is None:
                entry = self._entry_from_image(image)
            if entry is not None:
                entries.append(entry)
        return entries

    def _read_entry(self, name: str, viewport: str) -> BaselineEntry | None:
        return self._entry_from_sidecar(self._meta_path(name, viewport))

    def _entry_from_sidecar(self, meta: Path) -> BaselineEntry | None:
        if not meta.exists():
            return None
        try:
            with open(meta) as f:
                return BaselineEntry(**json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable baseline metadata %s: %s", meta, e)
            return None

    def _split_stem(self, stem: str) -> tuple[str, str] | None:
        """Split ``{name}_{viewport}`` by known viewport names, else only when unambiguous."""
        for viewport in sorted(self.viewport_names, key=len, reverse=True):
            if stem.endswith(f"_{viewport}") and len(stem) > len(viewport) + 1:
                return stem[: -len(viewport) - 1], viewport
        match = _CUSTOM_VIEWPORT.search(stem)
        if match and match.start() > 0:
            return stem[: match.start()], match.group(1)
        if stem.count("_") == 1:
            name, viewport = stem.split("_")
            if name and viewport:
                return name, viewport
        return None

    def _entry_from_image(self, image: Path) -> BaselineEntry | None:
        """Rebuild metadata for an image dropped in without a sidecar."""
        key = self._split_stem(image.stem)
        if key is None:
            logger.warning("Skipping baseline with ambiguous name: %s", image.name)
            return None
        name, viewport = key
        try:
            snapshot = Snapshot.from_png(image.read_bytes())
        except (OSError, ValueError) as e:
            logger.warning("Skipping unreadable baseline image %s: %s", image, e)
            return None
        return BaselineEntry(
            name=name,
            viewport=viewport,
            width=snapshot.width,
            height=snapshot.height,
            image_path=image.name,
            captured_at=snapshot.captured_at,
            image_hash=snapshot.content_hash,
        )


def _atomic_write(path: Path, data: bytes) -> None:
    """Write via a temp file in the same directory, then rename over the target."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
