"""Top-level orchestrator: wires capture, comparison, batches and baselines."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Iterable, Union

from pydantic import TypeAdapter

from vrt.ai.analyzer import ScreenshotAnalyzer, create_analyzer
from vrt.ai.client import set_debug_dir
from vrt.baseline.selector import auto_select
from vrt.baseline.store import BaselineStore
from vrt.capture.orchestrator import CaptureOrchestrator
from vrt.capture.resource_governor import ResourceGovernor
from vrt.diff.comparison import ComparisonRunner
from vrt.models.baseline import BaselineCandidate
from vrt.models.capture import CaptureArtifact
from vrt.models.comparison import ComparisonReport
from vrt.models.config import (
    BatchItem,
    CaptureBatchItem,
    CaptureOptions,
    CompareOptions,
    ToolConfig,
)
from vrt.reporter.reporter import Reporter

logger = logging.getLogger(__name__)

BatchResult = Union[list[CaptureArtifact], ComparisonReport]

_batch_adapter = TypeAdapter(list[BatchItem])


def parse_batch(data: list[dict]) -> list[BatchItem]:
    """Validate raw batch items (``{"type": "capture" | "compare", ...}``)."""
    return _batch_adapter.validate_python(data)


class Orchestrator:
    """Owns the shared collaborators for one tool session."""

    def __init__(
        self,
        config: ToolConfig,
        analyzer: ScreenshotAnalyzer | None = None,
        capture_orchestrator: CaptureOrchestrator | None = None,
    ):
        self.config = config
        self.tool_dir = Path(".vrt")
        set_debug_dir(self.tool_dir / "debug")

        self.governor = ResourceGovernor(
            max_sessions=config.max_concurrent_sessions,
            memory_threshold=config.memory_threshold_bytes,
            poll_interval=config.slot_poll_interval_seconds,
        )
        self.analyzer = analyzer or create_analyzer(config)
        self.capturer = capture_orchestrator or CaptureOrchestrator(
            config, governor=self.governor, analyzer=self.analyzer,
        )
        self.comparison = ComparisonRunner(
            analyzer=self.analyzer,
            reporter=Reporter(config.report_formats),
            default_output_dir=Path(config.output_dir) / "comparison-results",
        )
        self.baselines = BaselineStore(config.baseline_dir)

    async def capture(self, source: str, options: CaptureOptions | None = None) -> list[CaptureArtifact]:
        return await self.capturer.capture(source, options)

    async def compare(
        self, before_dir: str | Path, after_dir: str | Path, options: CompareOptions | None = None,
    ) -> ComparisonReport:
        if options is None:
            options = CompareOptions(threshold=self.config.diff_threshold)
        return await self.comparison.compare(before_dir, after_dir, options)

    async def _process(self, item: BatchItem) -> BatchResult:
        if isinstance(item, CaptureBatchItem):
            return await self.capture(item.url, item.options)
        return await self.compare(item.before, item.after, item.options)

    async def batch(self, items: Iterable[BatchItem]) -> list[BatchResult]:
        """Run batch items in order, or in chunks of ``max_parallel`` when parallel.

        The first failing item aborts the batch.
        """
        items = list(items)
        start = time.time()
        logger.info("=== Batch: %d items (parallel=%s) ===", len(items), self.config.parallel)
        results: list[BatchResult] = []
        if self.config.parallel:
            size = self.config.max_parallel
            for offset in range(0, len(items), size):
                chunk = items[offset:offset + size]
                results.extend(await self._gather_chunk(chunk))
        else:
            for item in items:
                results.append(await self._process(item))
        logger.info("=== Batch complete in %.1fs ===", time.time() - start)
        return results

    async def _gather_chunk(self, chunk: list[BatchItem]) -> list[BatchResult]:
        tasks = [asyncio.ensure_future(self._process(item)) for item in chunk]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def auto_select_baseline(self, fresh_dir: str | Path, threshold: float = 0.8) -> BaselineCandidate:
        return auto_select(self.baselines, fresh_dir, threshold)

    def run_capture(self, source: str, options: CaptureOptions | None = None) -> list[CaptureArtifact]:
        """Synchronous entry point for ``capture``."""
        return asyncio.run(self.capture(source, options))

    def run_compare(
        self, before_dir: str | Path, after_dir: str | Path, options: CompareOptions | None = None,
    ) -> ComparisonReport:
        """Synchronous entry point for ``compare``."""
        return asyncio.run(self.compare(before_dir, after_dir, options))

    def run_batch(self, items: Iterable[BatchItem]) -> list[BatchResult]:
        """Synchronous entry point for ``batch``."""
        return asyncio.run(self.batch(items))
