"""Image comparison results."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DimensionDelta(_Camel):
    """Size of the before image minus the size of the after image."""

    width: int = 0
    height: int = 0


class DiffResult(_Camel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    difference_ratio: float = Field(ge=0, le=1)
    passed: bool
    dimension_mismatch: bool = False
    diff_path: Optional[str] = None
    diff_pixels: int = 0
    total_pixels: int = 0
    dimensions: DimensionDelta = Field(default_factory=DimensionDelta)


class DifferenceEntry(_Camel):
    file: str
    difference: float
    diff_path: Optional[str] = None


class FileReport(_Camel):
    file: str
    difference: float
    passed: bool
    dimension_mismatch: bool = False
    diff_path: Optional[str] = None
    error: Optional[str] = None
    ai_analysis: Optional[dict[str, Any]] = None
    suggested_fixes: list[str] = Field(default_factory=list)


class ComparisonReport(_Camel):
    passed: bool = True
    total_images: int = 0
    differences: list[DifferenceEntry] = Field(default_factory=list)
    report: list[FileReport] = Field(default_factory=list)
    only_in_before: list[str] = Field(default_factory=list)
    only_in_after: list[str] = Field(default_factory=list)
    threshold: float = 0.1
    output_dir: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the stable camelCase field names."""
        return self.model_dump(by_alias=True)
