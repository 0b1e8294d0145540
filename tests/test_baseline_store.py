"""Tests for the baseline version store."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from vrt.baseline.metadata_store import JsonMetadataStore
from vrt.baseline.store import BaselineStore
from vrt.errors import BaselineNotFoundError


class FakeGit:
    def branch(self) -> str:
        return "feature/header"

    def commit(self) -> str:
        return "abc123"


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(tmp_path: Path, clock: FakeClock) -> BaselineStore:
    return BaselineStore(tmp_path, git_info=FakeGit(), clock=clock)


@pytest.fixture
def seeded_store(store: BaselineStore, png, tmp_path: Path) -> BaselineStore:
    """Store whose current baseline holds home.png and about.png."""
    png(tmp_path / "latest-capture" / "home.png")
    png(tmp_path / "latest-capture" / "about.png")
    store.update_baseline(backup=False)
    return store


def _names(directory: Path) -> set[str]:
    return {p.name for p in directory.iterdir()}


class TestMetadata:
    def test_load_creates_document(self, store: BaselineStore):
        metadata = store.load()
        assert metadata.current == "current"
        assert (store.baseline_dir / "metadata.json").exists()

    def test_round_trip_uses_camel_case(self, seeded_store: BaselineStore):
        seeded_store.create_version("v1")
        data = json.loads((seeded_store.baseline_dir / "metadata.json").read_text())
        assert "lastUpdate" in data
        assert "snapshotLocation" in data["versions"][0]
        assert JsonMetadataStore(seeded_store.baseline_dir / "metadata.json").load().versions[0].name == "v1"


class TestUpdateBaseline:
    """Tests for update_baseline and backups."""

    def test_copies_pngs_only(self, store: BaselineStore, png, tmp_path: Path):
        png(tmp_path / "latest-capture" / "home.png")
        (tmp_path / "latest-capture" / "notes.txt").write_text("x")

        updated = store.update_baseline(backup=False)

        assert updated == ["home.png"]
        assert _names(store.current_dir) == {"home.png"}
        assert store.load().last_update is not None

    def test_selective_uses_basenames(self, store: BaselineStore, png, tmp_path: Path):
        png(tmp_path / "captures" / "nested" / "home.png")
        png(tmp_path / "captures" / "about.png")

        store.update_baseline(
            backup=False, selective=True, files=["nested/home.png"], source_dir=tmp_path / "captures",
        )

        assert _names(store.current_dir) == {"home.png"}

    def test_backup_before_update(self, seeded_store: BaselineStore):
        seeded_store.update_baseline(backup=True)
        backups = list((seeded_store.baseline_dir / "backups").iterdir())
        assert len(backups) == 1
        assert backups[0].name.startswith("backup-")
        assert _names(backups[0]) == {"home.png", "about.png"}

    def test_missing_source(self, store: BaselineStore):
        with pytest.raises(FileNotFoundError):
            store.update_baseline(backup=False)


class TestVersions:
    """Tests for versions and rollback."""

    def test_create_version_snapshots_current(self, seeded_store: BaselineStore):
        version = seeded_store.create_version("release-1", "before redesign")

        assert version.git_branch == "feature/header"
        assert version.git_commit == "abc123"
        assert version.snapshot_location == f"versions/{version.id}"
        assert _names(seeded_store.baseline_dir / version.snapshot_location) == {"home.png", "about.png"}
        assert seeded_store.load().find_version(version.id) == version

    def test_version_ids_unique(self, seeded_store: BaselineStore):
        ids = {seeded_store.create_version(f"v{i}").id for i in range(5)}
        assert len(ids) == 5

    def test_rollback_restores_snapshot(self, seeded_store: BaselineStore, png, tmp_path: Path):
        version = seeded_store.create_version("v1")
        png(tmp_path / "latest-capture" / "contact.png")
        seeded_store.update_baseline(backup=False)
        assert "contact.png" in _names(seeded_store.current_dir)

        record = seeded_store.rollback(version.id)

        assert _names(seeded_store.current_dir) == {"home.png", "about.png"}
        assert record.from_ == "current"
        assert record.to == "v1"
        assert record.version_id == version.id
        saved = json.loads((seeded_store.baseline_dir / "metadata.json").read_text())
        assert saved["lastRollback"]["from"] == "current"

    def test_rollback_unknown_version(self, seeded_store: BaselineStore):
        with pytest.raises(BaselineNotFoundError, match="not found"):
            seeded_store.rollback("nope")

    def test_cleanup_old_versions(self, seeded_store: BaselineStore, clock: FakeClock):
        old = seeded_store.create_version("old")
        clock.now += timedelta(days=40)
        recent = seeded_store.create_version("recent")

        removed = seeded_store.cleanup_old_versions(days_to_keep=30)

        assert removed == 1
        assert [v.id for v in seeded_store.load().versions] == [recent.id]
        assert not (seeded_store.baseline_dir / old.snapshot_location).exists()
        assert (seeded_store.baseline_dir / recent.snapshot_location).exists()


class TestBranches:
    """Tests for branch creation and switching."""

    def test_branch_then_switch_restores_files(self, seeded_store: BaselineStore, png, tmp_path: Path):
        branch = seeded_store.create_branch("redesign")
        png(tmp_path / "latest-capture" / "pricing.png")
        seeded_store.update_baseline(backup=False)

        seeded_store.switch_branch("redesign")

        assert _names(seeded_store.current_dir) == {"home.png", "about.png"}
        assert seeded_store.load().current == "redesign"
        assert branch.parent == "current"

    def test_branch_name_is_sanitized(self, seeded_store: BaselineStore):
        branch = seeded_store.create_branch("../../outside")
        assert branch.name == "outside"
        assert (seeded_store.baseline_dir / "branches" / "outside").is_dir()

    def test_switch_unknown_branch(self, seeded_store: BaselineStore):
        with pytest.raises(BaselineNotFoundError):
            seeded_store.switch_branch("ghost")
        assert isinstance(BaselineNotFoundError("x"), LookupError)

    def test_history(self, seeded_store: BaselineStore):
        seeded_store.create_branch("redesign")
        seeded_store.create_version("v1")

        history = seeded_store.get_history()

        assert history["current"] == "current"
        assert list(history["branches"]) == ["redesign"]
        assert [v.name for v in history["versions"]] == ["v1"]
        assert history["lastRollback"] is None

    def test_candidates_order_and_missing_dirs(self, seeded_store: BaselineStore):
        seeded_store.create_branch("b1")
        version = seeded_store.create_version("v1")
        seeded_store.create_branch("b2")
        (seeded_store.baseline_dir / "branches" / "b2").rename(seeded_store.baseline_dir / "gone")

        names = [c.name for c in seeded_store.candidates()]

        assert names == ["current", "branch:b1", f"version:{version.name}"]
