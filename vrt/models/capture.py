"""Capture data structures."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from vrt.models.config import ViewportConfig


class CaptureTarget(BaseModel):
    """One engine x viewport/device combination of a capture call."""

    source: str
    engine: str
    viewport: Optional[ViewportConfig] = None
    device: Optional[str] = None

    @property
    def label(self) -> str:
        return self.device or (self.viewport.name if self.viewport else "")


class CaptureArtifact(BaseModel):
    model_config = ConfigDict(frozen=True)

    engine: str
    viewport: Optional[str] = None
    device: Optional[str] = None
    path: str
    url: str
    analysis: Optional[dict[str, Any]] = None
