"""Tests for configuration models."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from vrt.models.config import (
    DEFAULT_VIEWPORTS,
    CaptureOptions,
    CompareOptions,
    ToolConfig,
    ViewportConfig,
)
from vrt.orchestrator import parse_batch


class TestViewportConfig:
    def test_default_viewports(self):
        assert [(v.name, v.width, v.height, v.device_scale_factor) for v in DEFAULT_VIEWPORTS] == [
            ("mobile", 375, 812, 2),
            ("tablet", 768, 1024, 2),
            ("desktop", 1440, 900, 1),
            ("desktop-xl", 1920, 1080, 1),
        ]

    def test_frozen(self):
        viewport = ViewportConfig()
        with pytest.raises(ValidationError):
            viewport.width = 10


class TestToolConfig:
    """Tests for ToolConfig."""

    def test_defaults(self):
        config = ToolConfig()
        assert config.max_concurrent_sessions == 3
        assert config.memory_threshold_bytes == 1024 ** 3
        assert config.retries == 3
        assert config.diff_threshold == 0.1
        assert len(config.viewports) == 4

    def test_engine_types_default_browser(self):
        assert ToolConfig(browser="firefox").engine_types() == ["firefox"]

    def test_engine_types_all(self):
        assert ToolConfig().engine_types(["all"]) == ["chromium", "firefox", "webkit"]

    def test_engine_types_keeps_aliases_and_dedupes(self):
        assert ToolConfig().engine_types(["Edge", "safari", "edge"]) == ["edge", "safari"]

    def test_engine_types_unknown(self):
        with pytest.raises(ValueError, match="Unknown browser engine"):
            ToolConfig().engine_types(["netscape"])

    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "nested" / "vrt-config.json"
        ToolConfig(base_url="https://staging.example.com", retries=1).save(path)

        loaded = ToolConfig.load(path)
        assert loaded.base_url == "https://staging.example.com"
        assert loaded.retries == 1

    def test_load_missing(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            ToolConfig.load(tmp_path / "missing.json")


class TestOptions:
    def test_capture_options_reject_unknown(self):
        with pytest.raises(ValidationError):
            CaptureOptions(fullpage=True)

    def test_capture_options_parse_interactions(self):
        options = CaptureOptions(interact=[{"type": "click", "selector": "#a"}])
        assert options.interact[0].selector == "#a"

    def test_compare_threshold_non_negative(self):
        with pytest.raises(ValidationError):
            CompareOptions(threshold=-0.1)


class TestBatchItems:
    def test_parse_mixed_batch(self):
        items = parse_batch([
            {"type": "capture", "url": "/", "options": {"full_page": True}},
            {"type": "compare", "before": "a", "after": "b", "options": {"threshold": 0.2}},
        ])
        assert items[0].options.full_page is True
        assert items[1].options.threshold == 0.2

    def test_unknown_batch_type(self):
        with pytest.raises(ValidationError):
            parse_batch([{"type": "deploy"}])
