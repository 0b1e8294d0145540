"""Configuration models for the visual regression tool."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from vrt.models.interaction import InteractionStep

ENGINE_ALIASES = {
    "chromium": "chromium",
    "chrome": "chromium",
    "edge": "chromium",
    "firefox": "firefox",
    "webkit": "webkit",
    "safari": "webkit",
}
ALL_ENGINES = ["chromium", "firefox", "webkit"]


class ViewportConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "desktop"
    width: int = 1440
    height: int = 900
    device_scale_factor: float = 1


DEFAULT_VIEWPORTS = [
    ViewportConfig(name="mobile", width=375, height=812, device_scale_factor=2),
    ViewportConfig(name="tablet", width=768, height=1024, device_scale_factor=2),
    ViewportConfig(name="desktop", width=1440, height=900, device_scale_factor=1),
    ViewportConfig(name="desktop-xl", width=1920, height=1080, device_scale_factor=1),
]


class CaptureOptions(BaseModel):
    """Per-call capture settings. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    # Engines to run; None means the configured default browser
    engines: Optional[list[str]] = None
    # Sub-directory of the output dir; None means capture-<timestamp>
    output_dir: Optional[str] = None
    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = "domcontentloaded"
    wait_for: Optional[str] = None
    wait_for_timeout_ms: int = 10000
    interact: list[InteractionStep] = Field(default_factory=list)
    delay_ms: int = 2000
    full_page: bool = False
    # Device presets; None means the configured default devices
    devices: Optional[list[str]] = None
    devices_only: bool = False
    analyze: bool = False
    detect_issues: bool = True
    check_accessibility: bool = False


class CompareOptions(BaseModel):
    """Per-call comparison settings. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    threshold: float = Field(default=0.1, ge=0)
    # Where diff rasters and reports go; None means <output_dir>/comparison-results
    output_dir: Optional[str] = None
    ai_analysis: bool = False
    suggest_fixes: bool = False
    generate_report: bool = False
    # Shown in the HTML report title, e.g. the browser the captures came from
    engine_label: Optional[str] = None


class CaptureBatchItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["capture"] = "capture"
    url: str
    options: CaptureOptions = Field(default_factory=CaptureOptions)


class CompareBatchItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["compare"] = "compare"
    before: str
    after: str
    options: CompareOptions = Field(default_factory=CompareOptions)


BatchItem = Annotated[Union[CaptureBatchItem, CompareBatchItem], Field(discriminator="type")]


class MonitorConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str
    interval_seconds: float = 300
    threshold: float = 0.1
    ai_alerts: bool = False


class ToolConfig(BaseModel):
    # Target
    base_url: str = "http://localhost:8000"
    output_dir: str = "./screenshots"
    baseline_dir: str = "./"

    # Capture matrix
    browser: str = "chromium"  # chromium, chrome, edge, firefox, webkit, safari, all
    viewports: list[ViewportConfig] = Field(default_factory=lambda: list(DEFAULT_VIEWPORTS))
    devices: list[str] = Field(default_factory=list)

    # Browser behaviour
    headless: bool = True
    slow_mo_ms: int = 0
    timeout_ms: int = 30000
    navigation_timeout_ms: int = 30000
    record_video: bool = False
    tracing: bool = False
    debug: bool = False
    block_ads: bool = False

    # Resource limits
    max_concurrent_sessions: int = Field(default=3, ge=1)
    memory_threshold_bytes: int = 1024 * 1024 * 1024
    slot_poll_interval_seconds: float = 1.0

    # Retry
    retries: int = Field(default=3, ge=0)
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 5.0

    # Parallelism
    parallel: bool = False
    max_parallel: int = Field(default=4, ge=1)

    # Comparison
    diff_threshold: float = 0.1

    # AI settings
    ai_enabled: bool = True
    ai_model: str = "claude-opus-4-6"
    ai_max_tokens: int = 4000

    # Reporting
    report_formats: list[str] = Field(default_factory=lambda: ["html", "json"])

    def engine_types(self, requested: list[str] | None = None) -> list[str]:
        """Resolve requested engine names, expanding ``all``."""
        names = requested or [self.browser]
        engines: list[str] = []
        for name in names:
            key = name.strip().lower()
            if key == "all":
                engines.extend(e for e in ALL_ENGINES if e not in engines)
            elif key not in ENGINE_ALIASES:
                raise ValueError(f"Unknown browser engine: {name}")
            elif key not in engines:
                engines.append(key)
        return engines

    @classmethod
    def load(cls, path: str | Path) -> "ToolConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
