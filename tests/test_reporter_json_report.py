"""Tests for JSON report generation."""

import json
from pathlib import Path

from src.models.snapshot import ComparisonResult
from src.reporter.json_report import generate_json_report


class TestGenerateJsonReport:
    """Tests for generate_json_report function."""

    def test_generate_report(self, tmp_path: Path):
        result = ComparisonResult(
            status="failed",
            diff_percentage=5.5556,
            threshold=0.1,
            size_diff=0.0,
            baseline_size=(1440, 900),
            current_size=(1440, 900),
        )
        output_file = tmp_path / "diffs" / "home_desktop_result.json"

        generate_json_report(result, "home", "desktop", {"diff": "d.png"}, output_file)

        with open(output_file) as f:
            data = json.load(f)
        assert data["status"] == "failed"
        assert data["diffPercentage"] == 5.5556
        assert data["baselineSize"] == [1440, 900]
        assert data["name"] == "home"
        assert data["viewport"] == "desktop"
        assert data["artifacts"] == {"diff": "d.png"}
