"""JSON report output for regression runs."""

from __future__ import annotations

import json
from pathlib import Path

from src.models.snapshot import ComparisonResult


def generate_json_report(
    result: ComparisonResult,
    name: str,
    viewport: str,
    artifacts: dict[str, str],
    output_path: Path,
) -> None:
    """Write a machine-readable record of a single comparison."""
    report = result.to_output()
    report["name"] = name
    report["viewport"] = viewport
    report["artifacts"] = artifacts

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)
