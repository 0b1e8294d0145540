"""Capture orchestrator: screenshots across engines, viewports and devices."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Awaitable, Callable

from playwright.async_api import Browser, Playwright, async_playwright

from vrt.ai.analyzer import DisabledAnalyzer, ScreenshotAnalyzer
from vrt.capture.interactions import run_interactions, validate_interactions
from vrt.capture.resource_governor import ResourceGovernor
from vrt.errors import TransientOperationError
from vrt.models.capture import CaptureArtifact, CaptureTarget
from vrt.models.config import CaptureOptions, ToolConfig
from vrt.utils.browser import create_context, launch_browser, resolve_device, setup_page
from vrt.utils.paths import device_file_stem, sanitize_path_component, sanitize_relative_dir
from vrt.utils.retry import with_retry

logger = logging.getLogger(__name__)

PlaywrightFactory = Callable[[], object]


def resolve_url(source: str, base_url: str) -> str:
    """Absolute http(s)/file URLs pass through; anything else joins ``base_url``."""
    if source.startswith(("http://", "https://", "file://")):
        return source
    path = Path(source)
    if path.is_absolute() and path.is_file():
        return path.as_uri()
    return f"{base_url.rstrip('/')}/{source.lstrip('/')}"


class CaptureOrchestrator:
    """Drives Playwright through every requested capture combination.

    Engines are processed one at a time so the governor's cap applies to
    the whole call. Within one engine every viewport and device gets its
    own browser context.
    """

    def __init__(
        self,
        config: ToolConfig,
        governor: ResourceGovernor | None = None,
        analyzer: ScreenshotAnalyzer | None = None,
        playwright_factory: PlaywrightFactory = async_playwright,
    ):
        self.config = config
        self.governor = governor or ResourceGovernor(
            max_sessions=config.max_concurrent_sessions,
            memory_threshold=config.memory_threshold_bytes,
            poll_interval=config.slot_poll_interval_seconds,
        )
        self.analyzer = analyzer or DisabledAnalyzer()
        self._playwright_factory = playwright_factory

    async def capture(
        self, source: str, options: CaptureOptions | None = None,
    ) -> list[CaptureArtifact]:
        """Capture ``source`` for every engine x viewport/device combination.

        The whole call is retried on transient failures. Security errors in
        the interaction script are raised before anything is launched.
        """
        options = options or CaptureOptions()
        validate_interactions(options.interact)
        engines = self.config.engine_types(options.engines)
        url = resolve_url(source, self.config.base_url)

        subdir = options.output_dir or f"capture-{time.strftime('%Y-%m-%dT%H-%M-%S')}"
        output_dir = Path(self.config.output_dir) / sanitize_relative_dir(subdir)
        output_dir.mkdir(parents=True, exist_ok=True)

        async def _attempt() -> list[CaptureArtifact]:
            return await self._capture_all(url, engines, options, output_dir)

        artifacts = await with_retry(
            _attempt,
            retries=self.config.retries,
            base_delay=self.config.retry_base_delay_seconds,
            max_delay=self.config.retry_max_delay_seconds,
        )
        logger.info("Captured %d screenshots of %s into %s", len(artifacts), url, output_dir)
        return artifacts

    async def _capture_all(
        self, url: str, engines: list[str], options: CaptureOptions, output_dir: Path,
    ) -> list[CaptureArtifact]:
        artifacts: list[CaptureArtifact] = []
        async with self._playwright_factory() as playwright:
            for engine in engines:
                logger.info("Launching %s...", engine)
                browser = await launch_browser(
                    playwright,
                    engine,
                    headless=self.config.headless,
                    slow_mo=self.config.slow_mo_ms,
                    timeout=self.config.timeout_ms,
                )
                try:
                    targets = self._targets(playwright, url, engine, options)
                    artifacts.extend(
                        await self._capture_engine(playwright, browser, targets, options, output_dir)
                    )
                finally:
                    try:
                        await browser.close()
                    except Exception as e:
                        logger.warning("Error closing %s: %s", engine, e)
        return artifacts

    def _targets(
        self, playwright: Playwright, url: str, engine: str, options: CaptureOptions,
    ) -> list[CaptureTarget]:
        targets: list[CaptureTarget] = []
        if not options.devices_only:
            targets.extend(
                CaptureTarget(source=url, engine=engine, viewport=viewport)
                for viewport in self.config.viewports
            )
        device_names = options.devices if options.devices is not None else self.config.devices
        for device_name in device_names:
            if resolve_device(playwright, device_name) is None:
                logger.warning('Device "%s" not found, skipping...', device_name)
                continue
            targets.append(CaptureTarget(source=url, engine=engine, device=device_name))
        return targets

    async def _capture_engine(
        self,
        playwright: Playwright,
        browser: Browser,
        targets: list[CaptureTarget],
        options: CaptureOptions,
        output_dir: Path,
    ) -> list[CaptureArtifact]:
        def _job(target: CaptureTarget) -> Awaitable[CaptureArtifact]:
            return self._capture_one(playwright, browser, target, options, output_dir)

        if not self.config.parallel:
            return [await _job(target) for target in targets]

        tasks = [asyncio.ensure_future(_job(target)) for target in targets]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # First failure aborts the rest of this engine's combinations
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _capture_one(
        self,
        playwright: Playwright,
        browser: Browser,
        target: CaptureTarget,
        options: CaptureOptions,
        output_dir: Path,
    ) -> CaptureArtifact:
        engine_name = sanitize_path_component(target.engine)
        if target.device:
            filename = f"{engine_name}-{device_file_stem(target.device)}.png"
        else:
            mode = "full" if options.full_page else "viewport"
            filename = f"{engine_name}-{sanitize_path_component(target.viewport.name)}-{mode}.png"
        screenshot_path = output_dir / filename

        async with self.governor.session(f"{target.engine}:{target.label}") as handle:
            context = await create_context(
                browser,
                viewport=target.viewport,
                device=resolve_device(playwright, target.device) if target.device else None,
                record_video_dir=str(output_dir / "videos") if self.config.record_video else None,
                engine=target.engine,
            )
            self.governor.attach(handle, context.close)
            try:
                await self.governor.check_memory()
                if self.config.tracing:
                    await context.tracing.start(screenshots=True, snapshots=True)

                page = await context.new_page()
                await setup_page(
                    page,
                    timeout=self.config.timeout_ms,
                    navigation_timeout=self.config.navigation_timeout_ms,
                    debug=self.config.debug,
                    block_ads=self.config.block_ads,
                )

                try:
                    await page.goto(
                        target.source,
                        wait_until=options.wait_until,
                        timeout=self.config.navigation_timeout_ms,
                    )
                except Exception as e:
                    raise TransientOperationError(f"Navigation to {target.source} failed: {e}") from e

                if options.wait_for:
                    await page.wait_for_selector(options.wait_for, timeout=options.wait_for_timeout_ms)

                if options.interact:
                    # Kept out of the capture set so comparisons never pick them up
                    await run_interactions(
                        page, options.interact, output_dir / "interactions", prefix=screenshot_path.stem,
                    )

                await page.wait_for_timeout(options.delay_ms)
                await page.screenshot(path=str(screenshot_path), full_page=options.full_page)
                logger.debug("Saved %s", screenshot_path)

                analysis = None
                if self.config.ai_enabled and options.analyze:
                    analysis = await self._analyze(screenshot_path, target, options)

                if self.config.tracing:
                    trace_name = f"trace-{engine_name}-{sanitize_path_component(target.label)}.zip"
                    await context.tracing.stop(path=str(output_dir / trace_name))
            finally:
                if not handle.evicted:
                    await context.close()

        return CaptureArtifact(
            engine=target.engine,
            viewport=target.viewport.name if target.viewport else None,
            device=target.device,
            path=str(screenshot_path),
            url=target.source,
            analysis=analysis,
        )

    async def _analyze(
        self, path: Path, target: CaptureTarget, options: CaptureOptions,
    ) -> dict | None:
        try:
            result = await self.analyzer.analyze_screenshot(
                str(path),
                browser=target.engine,
                viewport=target.viewport.name if target.viewport else None,
                device=target.device,
                url=target.source,
                detect_issues=options.detect_issues,
                check_accessibility=options.check_accessibility,
            )
            return result.model_dump()
        except Exception as e:
            logger.warning("AI analysis failed: %s", e)
            return None
