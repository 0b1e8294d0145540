"""Tests for the directory comparison runner."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from vrt.ai.analyzer import DifferenceAnalysis
from vrt.diff.comparison import ComparisonRunner, list_pngs
from vrt.models.config import CompareOptions


@pytest.fixture
def capture_sets(png, tmp_path: Path):
    """before/ and after/ where a.png matches and b.png is half changed."""
    before, after = tmp_path / "before", tmp_path / "after"
    png(before / "a.png")
    png(after / "a.png")
    png(before / "b.png")
    png(after / "b.png", changed_rows=5)
    return before, after


def test_list_pngs_sorted_and_filtered(tmp_path: Path):
    for name in ("z.png", "a.PNG", "notes.txt"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "dir.png").mkdir()
    assert list_pngs(tmp_path) == ["a.PNG", "z.png"]
    assert list_pngs(tmp_path / "missing") == []


@pytest.mark.asyncio
class TestComparisonRunner:
    """Tests for ComparisonRunner.compare."""

    async def test_end_to_end(self, capture_sets, tmp_path: Path):
        before, after = capture_sets
        runner = ComparisonRunner()

        report = await runner.compare(
            before, after, CompareOptions(threshold=0.1, output_dir=str(tmp_path / "out")),
        )

        assert report.total_images == 2
        assert report.passed is False
        assert [d.file for d in report.differences] == ["b.png"]
        assert report.differences[0].difference == pytest.approx(0.5)
        assert (tmp_path / "out" / "diff-a.png").exists()
        assert (tmp_path / "out" / "diff-b.png").exists()

    async def test_report_uses_camel_case_keys(self, capture_sets, tmp_path: Path):
        before, after = capture_sets
        report = await ComparisonRunner().compare(
            before, after, CompareOptions(output_dir=str(tmp_path / "out")),
        )

        data = report.to_dict()
        assert {"passed", "totalImages", "differences", "report", "onlyInBefore", "onlyInAfter"} <= set(data)
        assert "diffPath" in data["differences"][0]

    async def test_all_identical_passes(self, png, tmp_path: Path):
        for side in ("before", "after"):
            png(tmp_path / side / "home.png")

        report = await ComparisonRunner(default_output_dir=tmp_path / "out").compare(
            tmp_path / "before", tmp_path / "after",
        )

        assert report.passed is True
        assert report.differences == []

    async def test_unmatched_files_listed_but_not_counted(self, png, tmp_path: Path):
        png(tmp_path / "before" / "shared.png")
        png(tmp_path / "after" / "shared.png")
        png(tmp_path / "before" / "removed.png")
        png(tmp_path / "after" / "added.png")

        report = await ComparisonRunner(default_output_dir=tmp_path / "out").compare(
            tmp_path / "before", tmp_path / "after",
        )

        assert report.total_images == 1
        assert report.passed is True
        assert report.only_in_before == ["removed.png"]
        assert report.only_in_after == ["added.png"]

    async def test_unreadable_file_is_isolated(self, png, tmp_path: Path):
        png(tmp_path / "before" / "good.png")
        png(tmp_path / "after" / "good.png")
        (tmp_path / "before" / "broken.png").write_bytes(b"not a png")
        png(tmp_path / "after" / "broken.png")

        report = await ComparisonRunner(default_output_dir=tmp_path / "out").compare(
            tmp_path / "before", tmp_path / "after",
        )

        assert report.total_images == 2
        broken = next(r for r in report.report if r.file == "broken.png")
        assert broken.difference == 1
        assert broken.error
        assert [d.file for d in report.differences] == ["broken.png"]
        assert next(r for r in report.report if r.file == "good.png").passed

    async def test_ai_analysis_on_failures_only(self, capture_sets, tmp_path: Path):
        before, after = capture_sets
        analyzer = Mock()
        analyzer.analyze_difference = AsyncMock(
            return_value=DifferenceAnalysis(summary="Header shifted", severity="medium")
        )
        analyzer.suggest_css_fixes = AsyncMock(return_value=["header { margin-top: 0; }"])

        report = await ComparisonRunner(analyzer=analyzer).compare(
            before, after,
            CompareOptions(output_dir=str(tmp_path / "out"), ai_analysis=True, suggest_fixes=True),
        )

        analyzer.analyze_difference.assert_awaited_once()
        failing = next(r for r in report.report if r.file == "b.png")
        assert failing.ai_analysis["summary"] == "Header shifted"
        assert failing.suggested_fixes == ["header { margin-top: 0; }"]

    async def test_ai_failure_is_not_fatal(self, capture_sets, tmp_path: Path):
        before, after = capture_sets
        analyzer = Mock()
        analyzer.analyze_difference = AsyncMock(side_effect=RuntimeError("rate limited"))

        report = await ComparisonRunner(analyzer=analyzer).compare(
            before, after, CompareOptions(output_dir=str(tmp_path / "out"), ai_analysis=True),
        )

        assert report.passed is False
        assert next(r for r in report.report if r.file == "b.png").ai_analysis is None

    async def test_generates_reports_when_requested(self, capture_sets, tmp_path: Path):
        before, after = capture_sets
        reporter = Mock()
        out = tmp_path / "out"

        report = await ComparisonRunner(reporter=reporter).compare(
            before, after, CompareOptions(output_dir=str(out), generate_report=True),
        )

        reporter.generate_reports.assert_called_once_with(report, out, "")

    async def test_report_label_passed_to_reporter(self, capture_sets, tmp_path: Path):
        before, after = capture_sets
        reporter = Mock()
        out = tmp_path / "out"

        report = await ComparisonRunner(reporter=reporter).compare(
            before, after, CompareOptions(output_dir=str(out), generate_report=True, engine_label="firefox"),
        )

        reporter.generate_reports.assert_called_once_with(report, out, "firefox")

    @pytest.mark.parametrize("missing", ["before", "after"])
    async def test_missing_directory_raises(self, png, tmp_path: Path, missing):
        for side in ("before", "after"):
            if side != missing:
                png(tmp_path / side / "home.png")

        with pytest.raises(FileNotFoundError, match=rf"{missing}$"):
            await ComparisonRunner(default_output_dir=tmp_path / "out").compare(
                tmp_path / "before", tmp_path / "after",
            )
