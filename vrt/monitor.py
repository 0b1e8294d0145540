"""Continuous monitoring: periodic captures compared against the first one."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import time
from pathlib import Path
from typing import Any, Callable

from vrt.models.comparison import ComparisonReport
from vrt.models.config import CaptureOptions, CompareOptions, MonitorConfig
from vrt.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

DifferenceCallback = Callable[[ComparisonReport], None]


class MonitorAlreadyRunningError(RuntimeError):
    pass


class Monitor:
    """Re-captures a page on an interval and reports visual drift.

    The first check becomes the baseline. Stopping only prevents new checks
    from being scheduled; a check in progress always runs to completion.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        config: MonitorConfig,
        on_difference: DifferenceCallback | None = None,
    ):
        self.orchestrator = orchestrator
        self.config = config
        self.on_difference = on_difference
        self.baseline_dir: Path | None = None
        self.check_count = 0
        self.last_report: ComparisonReport | None = None
        self._running = False
        self._stop = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run checks until ``stop()`` is called."""
        if self._running:
            raise MonitorAlreadyRunningError("Monitor is already running")
        self._running = True
        self._stop.clear()
        logger.info("Monitoring %s every %ss", self.config.url, self.config.interval_seconds)
        try:
            await self.check()
            while not self._stop.is_set():
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stop.wait(), timeout=self.config.interval_seconds)
                if self._stop.is_set():
                    break
                try:
                    await self.check()
                except Exception as e:
                    logger.error("Monitor check #%d failed: %s", self.check_count, e)
        finally:
            self._running = False
            logger.info("Monitor stopped after %d checks", self.check_count)

    def stop(self) -> None:
        self._stop.set()

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Stop scheduling checks on SIGINT/SIGTERM."""
        loop = loop or asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, self.stop)

    async def check(self) -> ComparisonReport | None:
        """Capture once; compare against the baseline capture when there is one."""
        self.check_count += 1
        logger.info("Monitor check #%d", self.check_count)
        artifacts = await self.orchestrator.capture(
            self.config.url,
            CaptureOptions(output_dir=f"monitoring/check-{int(time.time() * 1000)}"),
        )
        if not artifacts:
            logger.warning("Check #%d produced no screenshots", self.check_count)
            return None
        capture_dir = Path(artifacts[0].path).parent

        if self.baseline_dir is None:
            self.baseline_dir = capture_dir
            logger.info("Monitor baseline set: %s", capture_dir)
            return None

        report = await self.orchestrator.compare(
            self.baseline_dir,
            capture_dir,
            CompareOptions(threshold=self.config.threshold, ai_analysis=self.config.ai_alerts),
        )
        self.last_report = report
        if report.passed:
            logger.info("No visual change detected")
        else:
            logger.warning("Visual change detected in %d screenshots", len(report.differences))
            if self.on_difference is not None:
                self.on_difference(report)
        return report

    def update_baseline(self, capture_dir: str | Path) -> None:
        self.baseline_dir = Path(capture_dir)
        logger.info("Monitor baseline updated: %s", self.baseline_dir)

    def get_status(self) -> dict[str, Any]:
        return {
            "isRunning": self._running,
            "checkCount": self.check_count,
            "url": self.config.url,
            "interval": self.config.interval_seconds,
            "threshold": self.config.threshold,
        }
