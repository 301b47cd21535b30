"""Shared URL utilities — resolve page sources and validate baseline names."""

from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import urlparse

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def resolve_page_source(source: str, base_dir: str | Path | None = None) -> str:
    """Turn a page source into a URL the browser can navigate to.

    URLs with a scheme (``http``, ``https``, ``file``, ``about``, ``data``) are
    returned unchanged. Anything else is treated as a local path, resolved
    against ``base_dir`` when relative.
    """
    parsed = urlparse(source)
    if parsed.scheme and len(parsed.scheme) > 1:
        return source
    path = Path(source)
    if not path.is_absolute() and base_dir is not None:
        path = Path(base_dir) / path
    return path.resolve().as_uri()


def validate_baseline_name(name: str) -> str:
    """Reject names that cannot be used as a file name component."""
    if not _NAME_RE.match(name):
        raise ValueError(
            f"Invalid baseline name '{name}': use letters, digits, '.', '_' or '-'"
        )
    return name
