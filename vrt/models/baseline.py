"""Baseline version-control data structures (persisted as metadata.json)."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_POINTER = "current"


class _Persisted(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BaselineVersion(_Persisted):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    description: str = ""
    timestamp: str  # ISO 8601, UTC
    git_branch: str = "unknown"
    git_commit: str = "unknown"
    snapshot_location: str  # relative to the baselines directory


class BaselineBranch(_Persisted):
    name: str
    created: str
    git_branch: str = "unknown"
    parent: str = DEFAULT_POINTER
    snapshot_location: str


class RollbackRecord(_Persisted):
    from_: str = Field(alias="from")
    to: str
    version_id: str
    timestamp: str


class BaselineMetadata(_Persisted):
    versions: list[BaselineVersion] = Field(default_factory=list)
    branches: dict[str, BaselineBranch] = Field(default_factory=dict)
    current: str = DEFAULT_POINTER
    last_update: Optional[str] = None
    last_rollback: Optional[RollbackRecord] = None

    def find_version(self, version_id: str) -> BaselineVersion | None:
        for version in self.versions:
            if version.id == version_id:
                return version
        return None


class BaselineCandidate(BaseModel):
    name: str
    kind: Literal["current", "branch", "version"]
    directory: str
    score: float = 0.0
