"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from vrt.models.comparison import ComparisonReport


def generate_json_report(report: ComparisonReport, output_path: Path) -> None:
    """Write a machine-readable JSON report with camelCase keys."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report.to_dict(), f, indent=2, default=str)
