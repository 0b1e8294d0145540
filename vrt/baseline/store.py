"""Versioned baseline storage: snapshots, branches, rollback and retention.

Layout under ``<base_dir>/baselines/``::

    metadata.json
    current/
    branches/<name>/
    versions/<id>/
    backups/backup-<timestamp>/

Every operation reloads the metadata document, mutates it and persists it
in full. There is a single writer; nothing here takes locks.
"""

from __future__ import annotations

import logging
import shutil
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from vrt.baseline.metadata_store import JsonMetadataStore, MetadataStore
from vrt.errors import BaselineNotFoundError
from vrt.models.baseline import (
    DEFAULT_POINTER,
    BaselineBranch,
    BaselineCandidate,
    BaselineMetadata,
    BaselineVersion,
    RollbackRecord,
)
from vrt.utils.git_info import GitInfoProvider, SubprocessGitInfo
from vrt.utils.paths import sanitize_path_component

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _copy_tree(source: Path, dest: Path) -> None:
    """Replace ``dest`` with a copy of ``source`` (an empty dir if ``source`` is missing)."""
    if dest.exists():
        shutil.rmtree(dest)
    if source.is_dir():
        shutil.copytree(source, dest)
    else:
        dest.mkdir(parents=True, exist_ok=True)


class BaselineStore:
    """Manages the accepted reference screenshots and their history."""

    def __init__(
        self,
        base_dir: str | Path,
        metadata_store: MetadataStore | None = None,
        git_info: GitInfoProvider | None = None,
        clock: Clock = _utcnow,
    ):
        self.base_dir = Path(base_dir)
        self.baseline_dir = self.base_dir / "baselines"
        self.current_dir = self.baseline_dir / "current"
        self.metadata_store = metadata_store or JsonMetadataStore(self.baseline_dir / "metadata.json")
        self.git_info = git_info or SubprocessGitInfo()
        self._clock = clock

    def load(self) -> BaselineMetadata:
        self.baseline_dir.mkdir(parents=True, exist_ok=True)
        return self.metadata_store.load()

    def _now(self) -> str:
        return _isoformat(self._clock())

    def backup_current(self) -> Path | None:
        """Copy the current baseline into ``backups/``. Returns None when there is nothing to back up."""
        if not self.current_dir.is_dir():
            logger.warning("No current baseline to backup")
            return None
        stamp = self._clock().astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        backup_dir = self.baseline_dir / "backups" / f"backup-{stamp}"
        backup_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(self.current_dir, backup_dir, dirs_exist_ok=True)
        logger.debug("Backed up current baseline to %s", backup_dir)
        return backup_dir

    def create_version(self, name: str, description: str = "") -> BaselineVersion:
        """Snapshot the current baseline as a new immutable version."""
        metadata = self.load()
        version_id = str(uuid.uuid4())
        location = f"versions/{version_id}"
        _copy_tree(self.current_dir, self.baseline_dir / location)

        version = BaselineVersion(
            id=version_id,
            name=name,
            description=description,
            timestamp=self._now(),
            git_branch=self.git_info.branch(),
            git_commit=self.git_info.commit(),
            snapshot_location=location,
        )
        metadata.versions.append(version)
        self.metadata_store.save(metadata)
        logger.info("Created baseline version %s (%s)", name, version_id)
        return version

    def update_baseline(
        self,
        backup: bool = True,
        selective: bool = False,
        files: Iterable[str] = (),
        source_dir: str | Path | None = None,
    ) -> list[str]:
        """Copy fresh screenshots into the current baseline. Returns the updated file names."""
        metadata = self.load()
        source = Path(source_dir) if source_dir else self.base_dir / "latest-capture"
        if backup:
            self.backup_current()
        self.current_dir.mkdir(parents=True, exist_ok=True)

        updated: list[str] = []
        files = list(files)
        if selective and files:
            for file in files:
                src = Path(file)
                if not src.is_absolute():
                    src = source / file
                dest = self.current_dir / Path(file).name
                shutil.copy2(src, dest)
                updated.append(dest.name)
        else:
            if not source.is_dir():
                raise FileNotFoundError(f"Capture directory not found: {source}")
            for path in sorted(source.iterdir()):
                if path.is_file() and path.suffix.lower() == ".png":
                    shutil.copy2(path, self.current_dir / path.name)
                    updated.append(path.name)

        metadata.last_update = self._now()
        self.metadata_store.save(metadata)
        logger.info("Updated %d baseline files from %s", len(updated), source)
        return updated

    def create_branch(self, name: str) -> BaselineBranch:
        """Snapshot the current baseline under a named branch."""
        metadata = self.load()
        key = sanitize_path_component(name)
        location = f"branches/{key}"
        _copy_tree(self.current_dir, self.baseline_dir / location)

        branch = BaselineBranch(
            name=key,
            created=self._now(),
            git_branch=self.git_info.branch(),
            parent=metadata.current,
            snapshot_location=location,
        )
        metadata.branches[key] = branch
        self.metadata_store.save(metadata)
        logger.info("Created baseline branch %s from %s", key, branch.parent)
        return branch

    def switch_branch(self, name: str) -> BaselineBranch:
        """Make a branch snapshot the current baseline."""
        metadata = self.load()
        key = sanitize_path_component(name)
        branch = metadata.branches.get(key)
        if branch is None:
            raise BaselineNotFoundError(f"Branch {name} does not exist")

        self.backup_current()
        _copy_tree(self.baseline_dir / branch.snapshot_location, self.current_dir)
        metadata.current = key
        self.metadata_store.save(metadata)
        logger.info("Switched baseline to branch %s", key)
        return branch

    def rollback(self, version_id: str) -> RollbackRecord:
        """Restore a version snapshot into the current baseline."""
        metadata = self.load()
        version = metadata.find_version(version_id)
        if version is None:
            raise BaselineNotFoundError(f"Version {version_id} not found")

        self.backup_current()
        _copy_tree(self.baseline_dir / version.snapshot_location, self.current_dir)
        record = RollbackRecord(
            from_=metadata.current,
            to=version.name,
            version_id=version.id,
            timestamp=self._now(),
        )
        metadata.last_rollback = record
        self.metadata_store.save(metadata)
        logger.info("Rolled back baseline to %s (%s)", version.name, version.id)
        return record

    def cleanup_old_versions(self, days_to_keep: int = 30) -> int:
        """Delete versions older than ``days_to_keep`` days. Returns how many were removed."""
        metadata = self.load()
        cutoff = self._clock() - timedelta(days=days_to_keep)

        kept: list[BaselineVersion] = []
        removed = 0
        for version in metadata.versions:
            if _parse_timestamp(version.timestamp) < cutoff:
                shutil.rmtree(self.baseline_dir / version.snapshot_location, ignore_errors=True)
                removed += 1
            else:
                kept.append(version)

        metadata.versions = kept
        self.metadata_store.save(metadata)
        logger.info("Removed %d baseline versions older than %d days", removed, days_to_keep)
        return removed

    def get_history(self) -> dict[str, Any]:
        metadata = self.load()
        return {
            "versions": metadata.versions,
            "branches": metadata.branches,
            "current": metadata.current,
            "lastUpdate": metadata.last_update,
            "lastRollback": metadata.last_rollback,
        }

    def candidates(self) -> list[BaselineCandidate]:
        """Current, then branches in insertion order, then versions in creation order.

        Candidates whose snapshot directory is missing are left out.
        """
        metadata = self.load()
        found = [BaselineCandidate(name=DEFAULT_POINTER, kind="current", directory=str(self.current_dir))]
        found.extend(
            BaselineCandidate(
                name=f"branch:{key}",
                kind="branch",
                directory=str(self.baseline_dir / branch.snapshot_location),
            )
            for key, branch in metadata.branches.items()
        )
        found.extend(
            BaselineCandidate(
                name=f"version:{version.name}",
                kind="version",
                directory=str(self.baseline_dir / version.snapshot_location),
            )
            for version in metadata.versions
        )

        present = []
        for candidate in found:
            if Path(candidate.directory).is_dir():
                present.append(candidate)
            else:
                logger.debug("Skipping %s: %s is missing", candidate.name, candidate.directory)
        return present
