"""Browser helpers: engine launch, isolated contexts and per-page setup."""

from __future__ import annotations

import logging
from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, Route

from vrt.models.config import ENGINE_ALIASES, ViewportConfig

logger = logging.getLogger(__name__)

AD_HOSTS = ("doubleclick", "googlesyndication")


async def launch_browser(
    playwright: Playwright,
    engine: str,
    headless: bool = True,
    slow_mo: int = 0,
    timeout: int = 30000,
) -> Browser:
    """Launch the Playwright engine behind an engine name or alias."""
    kind = ENGINE_ALIASES.get(engine.lower(), "chromium")
    launch_kwargs: dict[str, Any] = {
        "headless": headless,
        "slow_mo": slow_mo,
        "timeout": timeout,
    }
    if engine.lower() == "edge":
        launch_kwargs["channel"] = "msedge"
    elif engine.lower() == "chrome":
        launch_kwargs["channel"] = "chrome"
    logger.debug("Launching %s (%s)", engine, kind)
    return await getattr(playwright, kind).launch(**launch_kwargs)


def resolve_device(playwright: Playwright, device_name: str) -> Optional[dict]:
    """Look up a device descriptor in Playwright's registry."""
    return playwright.devices.get(device_name)


async def create_context(
    browser: Browser,
    viewport: ViewportConfig | None = None,
    device: dict | None = None,
    record_video_dir: str | None = None,
    engine: str = "chromium",
) -> BrowserContext:
    """Create an isolated context for one viewport or device.

    ``device`` is a Playwright device descriptor and takes precedence over
    ``viewport``.
    """
    context_kwargs: dict[str, Any] = {}
    if device:
        context_kwargs.update(
            (key, value) for key, value in device.items() if key != "default_browser_type"
        )
        # Firefox rejects mobile emulation
        if ENGINE_ALIASES.get(engine.lower()) == "firefox":
            context_kwargs.pop("is_mobile", None)
    elif viewport:
        context_kwargs["viewport"] = {"width": viewport.width, "height": viewport.height}
        context_kwargs["device_scale_factor"] = viewport.device_scale_factor
    if record_video_dir:
        context_kwargs["record_video_dir"] = record_video_dir
    return await browser.new_context(**context_kwargs)


async def _block_ads(route: Route) -> None:
    url = route.request.url
    if any(host in url for host in AD_HOSTS):
        await route.abort()
    else:
        await route.continue_()


async def setup_page(
    page: Page,
    timeout: int = 30000,
    navigation_timeout: int = 30000,
    debug: bool = False,
    block_ads: bool = False,
) -> None:
    """Apply default timeouts, debug listeners and optional ad blocking."""
    page.set_default_timeout(timeout)
    page.set_default_navigation_timeout(navigation_timeout)

    if debug:
        page.on("console", lambda msg: logger.debug("PAGE LOG: %s", msg.text))
        page.on("pageerror", lambda err: logger.debug("PAGE ERROR: %s", err))

    if block_ads:
        await page.route("**/*", _block_ads)
