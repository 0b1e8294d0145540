"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from PIL import Image
from playwright.async_api import Browser, BrowserContext, Page

from vrt.models.config import ToolConfig, ViewportConfig


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def desktop_viewport() -> ViewportConfig:
    return ViewportConfig(name="desktop", width=1440, height=900, device_scale_factor=1)


@pytest.fixture
def tool_config(tmp_path: Path, desktop_viewport: ViewportConfig) -> ToolConfig:
    """Config with a single viewport, no delays and AI turned off."""
    return ToolConfig(
        base_url="https://example.com",
        output_dir=str(tmp_path / "screenshots"),
        baseline_dir=str(tmp_path),
        viewports=[desktop_viewport],
        retries=0,
        retry_base_delay_seconds=0,
        slot_poll_interval_seconds=0.01,
        ai_enabled=False,
    )


# ============================================================================
# Browser Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://example.com"
    page.screenshot = AsyncMock()
    page.goto = AsyncMock()
    page.click = AsyncMock()
    page.fill = AsyncMock()
    page.type = AsyncMock()
    page.press = AsyncMock()
    page.evaluate = AsyncMock()
    page.locator = MagicMock(return_value=AsyncMock())
    page.wait_for_selector = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.set_default_timeout = Mock()
    page.set_default_navigation_timeout = Mock()
    page.on = Mock()
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser context."""
    context = AsyncMock(spec=BrowserContext)
    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock()
    context.tracing = AsyncMock()
    return context


@pytest.fixture
def mock_browser(mock_context: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser."""
    browser = AsyncMock(spec=Browser)
    browser.new_context = AsyncMock(return_value=mock_context)
    browser.close = AsyncMock()
    return browser


@pytest.fixture
def mock_playwright(mock_browser: AsyncMock) -> MagicMock:
    """A Playwright driver whose engines all launch ``mock_browser``."""
    playwright = MagicMock()
    for engine in ("chromium", "firefox", "webkit"):
        getattr(playwright, engine).launch = AsyncMock(return_value=mock_browser)
    playwright.devices = {
        "iPhone 13": {
            "user_agent": "Mozilla/5.0 (iPhone)",
            "viewport": {"width": 390, "height": 844},
            "device_scale_factor": 3,
            "is_mobile": True,
            "has_touch": True,
            "default_browser_type": "webkit",
        },
    }
    return playwright


@pytest.fixture
def playwright_factory(mock_playwright: MagicMock):
    """Stand-in for ``async_playwright`` yielding ``mock_playwright``."""

    class _Manager:
        async def __aenter__(self):
            return mock_playwright

        async def __aexit__(self, *exc):
            return False

    return lambda: _Manager()


# ============================================================================
# Image Helpers
# ============================================================================


def write_png(
    path: Path,
    size: tuple[int, int] = (10, 10),
    color: tuple[int, int, int, int] = (255, 255, 255, 255),
    changed_rows: int = 0,
    changed_color: tuple[int, int, int, int] = (0, 0, 0, 255),
) -> Path:
    """Write a solid PNG, optionally recolouring the top ``changed_rows`` rows."""
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGBA", size, color)
    for y in range(min(changed_rows, size[1])):
        for x in range(size[0]):
            image.putpixel((x, y), changed_color)
    image.save(path)
    return path


@pytest.fixture
def png():
    """Fixture that provides the write_png helper."""
    return write_png


# ============================================================================
# AI Fixtures
# ============================================================================


@pytest.fixture
def mock_ai_client() -> Mock:
    """Mock AIClient whose JSON completions return a minor-change verdict."""
    client = Mock()
    client.complete_json = Mock(
        return_value={"summary": "Header moved", "severity": "low", "affected_areas": []}
    )
    return client
