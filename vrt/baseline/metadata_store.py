"""Persistence port for the baseline metadata document."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from vrt.models.baseline import BaselineMetadata

logger = logging.getLogger(__name__)


class MetadataStore(Protocol):
    def load(self) -> BaselineMetadata: ...

    def save(self, metadata: BaselineMetadata) -> None: ...


class JsonMetadataStore:
    """Keeps the metadata document in a single JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> BaselineMetadata:
        """Load metadata from disk, or create and persist an empty document."""
        if self.path.exists():
            with open(self.path) as f:
                data = json.load(f)
            return BaselineMetadata.model_validate(data)
        metadata = BaselineMetadata()
        self.save(metadata)
        return metadata

    def save(self, metadata: BaselineMetadata) -> None:
        """Persist the whole document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(metadata.model_dump(by_alias=True, mode="json"), f, indent=2)
        logger.debug("Saved baseline metadata to %s", self.path)
