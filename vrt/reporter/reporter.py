"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from vrt.models.comparison import ComparisonReport

from .html_report import render_html
from .json_report import generate_json_report

logger = logging.getLogger(__name__)


class Reporter:
    """Writes comparison reports in the configured formats."""

    def __init__(self, formats: list[str] | None = None):
        self.formats = formats if formats is not None else ["html", "json"]

    def generate_reports(
        self,
        report: ComparisonReport,
        output_dir: Path,
        engine_label: str = "",
    ) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        generated = {}
        logger.debug("Report output directory: %s", output_dir)

        if "html" in self.formats:
            path = output_dir / "report.html"
            with open(path, "w", encoding="utf-8") as f:
                f.write(render_html(report, engine_label))
            generated["html"] = str(path)
            logger.info("HTML report: %s", path)

        if "json" in self.formats:
            path = output_dir / "report.json"
            generate_json_report(report, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        return generated
