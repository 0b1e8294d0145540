"""Screenshot analysis collaborators.

The capture and comparison code only depend on the ``ScreenshotAnalyzer``
protocol. ``DisabledAnalyzer`` is the inert default; ``ClaudeAnalyzer``
sends screenshots to Claude.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field

from vrt.ai.client import AIClient
from vrt.ai.prompts.analysis import (
    DIFFERENCE_SYSTEM_PROMPT,
    FIX_SYSTEM_PROMPT,
    SCREENSHOT_SYSTEM_PROMPT,
    build_difference_prompt,
    build_fix_prompt,
    build_screenshot_prompt,
)
from vrt.models.config import ToolConfig

logger = logging.getLogger(__name__)

DISABLED_SUMMARY = "AI analysis disabled"


class ScreenshotAnalysis(BaseModel):
    summary: str = ""
    issues: list[dict[str, Any]] = Field(default_factory=list)
    score: int = 100


class DifferenceAnalysis(BaseModel):
    summary: str = ""
    severity: str = "none"
    affected_areas: list[dict[str, Any]] = Field(default_factory=list)


class ScreenshotAnalyzer(Protocol):
    async def analyze_screenshot(self, path: str, **context: Any) -> ScreenshotAnalysis: ...

    async def analyze_difference(self, before: str, after: str, diff: str) -> DifferenceAnalysis: ...

    async def suggest_css_fixes(self, analysis: DifferenceAnalysis) -> list[str]: ...


class DisabledAnalyzer:
    """Inert analyzer used when AI is off or unavailable."""

    async def analyze_screenshot(self, path: str, **context: Any) -> ScreenshotAnalysis:
        return ScreenshotAnalysis(summary=DISABLED_SUMMARY)

    async def analyze_difference(self, before: str, after: str, diff: str) -> DifferenceAnalysis:
        return DifferenceAnalysis(summary=DISABLED_SUMMARY)

    async def suggest_css_fixes(self, analysis: DifferenceAnalysis) -> list[str]:
        return []


def _encode_image(path: str) -> str:
    return base64.b64encode(Path(path).read_bytes()).decode()


class ClaudeAnalyzer:
    """Analyzer backed by Claude's vision input."""

    def __init__(self, ai_client: AIClient):
        self.ai_client = ai_client

    async def analyze_screenshot(self, path: str, **context: Any) -> ScreenshotAnalysis:
        data = await asyncio.to_thread(
            self.ai_client.complete_json,
            SCREENSHOT_SYSTEM_PROMPT,
            build_screenshot_prompt(context),
            [_encode_image(path)],
        )
        analysis = ScreenshotAnalysis.model_validate(data)
        if not context.get("detect_issues", True):
            analysis.issues = []
        return analysis

    async def analyze_difference(self, before: str, after: str, diff: str) -> DifferenceAnalysis:
        images = [_encode_image(p) for p in (before, after, diff) if p and Path(p).exists()]
        data = await asyncio.to_thread(
            self.ai_client.complete_json,
            DIFFERENCE_SYSTEM_PROMPT,
            build_difference_prompt(before, after),
            images,
        )
        return DifferenceAnalysis.model_validate(data)

    async def suggest_css_fixes(self, analysis: DifferenceAnalysis) -> list[str]:
        data = await asyncio.to_thread(
            self.ai_client.complete_json,
            FIX_SYSTEM_PROMPT,
            build_fix_prompt(json.dumps(analysis.model_dump(), indent=2)),
        )
        return [str(fix) for fix in data.get("fixes", [])]


def create_analyzer(config: ToolConfig) -> ScreenshotAnalyzer:
    """Return a Claude analyzer when possible, otherwise the inert one."""
    if not config.ai_enabled:
        return DisabledAnalyzer()
    try:
        return ClaudeAnalyzer(AIClient(model=config.ai_model, max_tokens=config.ai_max_tokens))
    except EnvironmentError as e:
        logger.warning("AI client unavailable: %s. Continuing without AI features.", e)
        return DisabledAnalyzer()
