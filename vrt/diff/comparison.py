"""Directory-level comparison of two capture sets."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from vrt.ai.analyzer import DisabledAnalyzer, ScreenshotAnalyzer
from vrt.diff.image_diff import diff_images
from vrt.models.comparison import ComparisonReport, DifferenceEntry, FileReport
from vrt.models.config import CompareOptions

if TYPE_CHECKING:
    from vrt.reporter.reporter import Reporter

logger = logging.getLogger(__name__)


def list_pngs(directory: Path) -> list[str]:
    """Sorted PNG basenames directly inside ``directory``; empty when it is missing.

    Callers that must not treat a missing directory as empty check it first.
    """
    if not directory.is_dir():
        return []
    return sorted(p.name for p in directory.iterdir() if p.is_file() and p.suffix.lower() == ".png")


class ComparisonRunner:
    """Diffs every PNG present in both directories and aggregates a report."""

    def __init__(
        self,
        analyzer: ScreenshotAnalyzer | None = None,
        reporter: Reporter | None = None,
        default_output_dir: str | Path = "./screenshots/comparison-results",
    ):
        self.analyzer = analyzer or DisabledAnalyzer()
        self.reporter = reporter
        self.default_output_dir = Path(default_output_dir)

    async def compare(
        self,
        before_dir: str | Path,
        after_dir: str | Path,
        options: CompareOptions | None = None,
    ) -> ComparisonReport:
        """Diff every PNG present in both directories.

        Raises:
            FileNotFoundError: either directory does not exist.
        """
        options = options or CompareOptions()
        before_dir, after_dir = Path(before_dir), Path(after_dir)
        for directory in (before_dir, after_dir):
            if not directory.is_dir():
                raise FileNotFoundError(f"Screenshot directory not found: {directory}")
        output_dir = Path(options.output_dir) if options.output_dir else self.default_output_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        before_files = list_pngs(before_dir)
        after_files = list_pngs(after_dir)
        after_set = set(after_files)
        before_set = set(before_files)
        common = [name for name in before_files if name in after_set]

        only_before = [name for name in before_files if name not in after_set]
        only_after = [name for name in after_files if name not in before_set]
        if only_before or only_after:
            logger.warning(
                "Unmatched screenshots: %d only in %s, %d only in %s",
                len(only_before), before_dir, len(only_after), after_dir,
            )

        report = ComparisonReport(
            total_images=len(common),
            only_in_before=only_before,
            only_in_after=only_after,
            threshold=options.threshold,
            output_dir=str(output_dir),
        )

        for name in common:
            entry = await self._compare_file(
                before_dir / name, after_dir / name, output_dir / f"diff-{name}", options,
            )
            report.report.append(entry)
            if not entry.passed:
                report.differences.append(
                    DifferenceEntry(file=name, difference=entry.difference, diff_path=entry.diff_path)
                )

        report.passed = not report.differences
        logger.info(
            "Compared %d screenshots: %d differences (threshold %.2f)",
            report.total_images, len(report.differences), options.threshold,
        )

        if options.generate_report and self.reporter is not None:
            try:
                self.reporter.generate_reports(report, output_dir, options.engine_label or "")
            except Exception as e:
                logger.warning("Report generation failed: %s", e)

        return report

    async def _compare_file(
        self, before: Path, after: Path, diff_path: Path, options: CompareOptions,
    ) -> FileReport:
        try:
            result = await asyncio.to_thread(diff_images, before, after, diff_path, options.threshold)
        except Exception as e:
            logger.error("Failed to compare %s: %s", before.name, e)
            return FileReport(file=before.name, difference=1.0, passed=False, error=str(e))

        entry = FileReport(
            file=before.name,
            difference=result.difference_ratio,
            passed=result.passed,
            dimension_mismatch=result.dimension_mismatch,
            diff_path=result.diff_path,
        )
        if result.passed or not options.ai_analysis:
            return entry

        try:
            analysis = await self.analyzer.analyze_difference(
                str(before), str(after), result.diff_path or "",
            )
            entry.ai_analysis = analysis.model_dump()
            if options.suggest_fixes:
                entry.suggested_fixes = await self.analyzer.suggest_css_fixes(analysis)
        except Exception as e:
            logger.warning("AI analysis failed for %s: %s", before.name, e)
        return entry
