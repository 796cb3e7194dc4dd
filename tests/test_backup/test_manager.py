"""Tests for codereel.backup.manager module."""

import base64
import zlib
from datetime import timedelta

import pytest

from codereel.backup.manager import (
    BackupItem,
    BackupManager,
    compress_payload,
    decompress_payload,
)
from codereel.core.config import Settings
from codereel.core.errors import BackupError
from codereel.core.storage import BACKUPS_KEY, write_json
from codereel.project.models import BackupReason, ProjectData

from tests.conftest import make_project_dict


def _item(backup_id, timestamp, reason=BackupReason.AUTO):
    return BackupItem(
        id=backup_id,
        timestamp=timestamp,
        reason=reason,
        data={},
        size=10,
        compressed=False,
    )


class TestPayload:

    def test_compress_roundtrip(self, project):
        wire = project.to_json_dict()
        payload = compress_payload(wire)
        assert isinstance(payload, str)
        assert decompress_payload(payload) == wire

    def test_corrupt_payload(self):
        with pytest.raises(ValueError, match="Corrupt backup payload"):
            decompress_payload("not base64 at all!")

    def test_non_object_payload(self):
        payload = base64.b64encode(zlib.compress(b"[1, 2]")).decode("ascii")
        with pytest.raises(ValueError, match="not an object"):
            decompress_payload(payload)


class TestCreateAndRestore:

    def test_create_and_restore(self, store, project):
        manager = BackupManager(store)
        item = manager.create_backup(BackupReason.MANUAL, project)
        assert item.id.startswith("backup-")
        assert item.compressed
        assert item.notes == "Manual backup created by user"
        assert item.size > 0

        restored = manager.restore(item.id)
        assert restored.metadata.id == project.metadata.id
        assert [s.id for s in restored.document.snapshots] == ["s1", "s2"]

    def test_uncompressed_backup(self, store, project):
        manager = BackupManager(store, settings=Settings(compress_backups=False))
        item = manager.create_backup("manual", project)
        assert isinstance(item.data, dict)
        assert manager.restore(item.id).metadata.name == "Demo"

    def test_uses_current_project(self, store, project):
        manager = BackupManager(store, current_project=lambda: project)
        item = manager.create_backup(BackupReason.BEFORE_IMPORT, original_filename="demo.json")
        stored = manager.get_backup(item.id)
        assert stored.original_filename == "demo.json"
        assert stored.reason == BackupReason.BEFORE_IMPORT

    def test_nothing_to_backup(self, store):
        with pytest.raises(BackupError, match="No project data to backup"):
            BackupManager(store, current_project=lambda: None).create_backup(BackupReason.MANUAL)

    def test_observer_called(self, store, project):
        created = []
        manager = BackupManager(store, on_backup_created=created.append)
        item = manager.create_backup(BackupReason.MANUAL, project)
        assert created == [item]

    def test_restore_missing(self, store):
        with pytest.raises(BackupError, match="Backup not found: nope"):
            BackupManager(store).restore("nope")

    def test_restore_not_restorable(self, store, fixed_now):
        item = _item("b1", fixed_now)
        item.restorable = False
        write_json(store, BACKUPS_KEY, [item.to_dict()])
        with pytest.raises(BackupError, match="not restorable"):
            BackupManager(store).restore("b1")

    def test_restore_without_snapshots(self, store):
        project = ProjectData.from_dict(make_project_dict(snapshots=[]))
        manager = BackupManager(store)
        item = manager.create_backup(BackupReason.MANUAL, project)
        with pytest.raises(BackupError, match="missing snapshots"):
            manager.restore(item.id)


class TestListing:

    def test_newest_first(self, store, fixed_now):
        items = [_item("old", fixed_now - timedelta(hours=2)), _item("new", fixed_now)]
        write_json(store, BACKUPS_KEY, [i.to_dict() for i in items])
        assert [b.id for b in BackupManager(store).list_backups()] == ["new", "old"]

    def test_malformed_entries_skipped(self, store, fixed_now):
        write_json(store, BACKUPS_KEY, [{"id": "broken"}, _item("ok", fixed_now).to_dict()])
        assert [b.id for b in BackupManager(store).list_backups()] == ["ok"]

    def test_delete(self, store, project):
        manager = BackupManager(store)
        first = manager.create_backup(BackupReason.MANUAL, project)
        manager.create_backup(BackupReason.MANUAL, project)
        manager.delete_backup(first.id)
        assert manager.get_backup(first.id) is None
        assert len(manager.list_backups()) == 1

    def test_delete_missing(self, store):
        with pytest.raises(BackupError, match="Backup not found"):
            BackupManager(store).delete_backup("nope")

    def test_delete_all(self, store, project):
        manager = BackupManager(store)
        manager.create_backup(BackupReason.MANUAL, project)
        manager.delete_all_backups()
        assert manager.list_backups() == []

    def test_stats(self, store, project):
        manager = BackupManager(store)
        manager.create_backup(BackupReason.MANUAL, project)
        manager.create_backup(BackupReason.AUTO, project)
        stats = manager.get_backup_stats()
        assert stats["totalBackups"] == 2
        assert stats["backupsByReason"] == {
            "before_import": 0,
            "manual": 1,
            "auto": 1,
            "before_update": 0,
        }
        assert stats["totalSize"] > 0
        assert stats["oldestBackup"] <= stats["newestBackup"]

    def test_stats_empty(self, store):
        stats = BackupManager(store).get_backup_stats()
        assert stats["totalBackups"] == 0
        assert stats["newestBackup"] is None


class TestRetention:

    def test_count_limit(self, store, project):
        manager = BackupManager(store, settings=Settings(max_backup_count=3))
        for _ in range(5):
            manager.create_backup(BackupReason.MANUAL, project)
        assert len(manager.list_backups()) == 3

    def test_age_limit_spares_manual(self, store, fixed_now):
        manager = BackupManager(store, settings=Settings(backup_retention_days=30))
        items = [
            _item("fresh", fixed_now - timedelta(days=1)),
            _item("stale-auto", fixed_now - timedelta(days=31)),
            _item("stale-manual", fixed_now - timedelta(days=31), BackupReason.MANUAL),
        ]
        kept = manager.apply_cleanup_rules(items, now=fixed_now)
        assert [b.id for b in kept] == ["fresh", "stale-manual"]

    def test_count_limit_applies_to_manual(self, store, fixed_now):
        manager = BackupManager(store, settings=Settings(max_backup_count=1))
        items = [
            _item("older", fixed_now - timedelta(days=1), BackupReason.MANUAL),
            _item("newer", fixed_now, BackupReason.MANUAL),
        ]
        assert [b.id for b in manager.apply_cleanup_rules(items, now=fixed_now)] == ["newer"]

    def test_cleanup_old_backups(self, store, fixed_now):
        items = [
            _item("fresh", fixed_now - timedelta(days=1)),
            _item("stale", fixed_now - timedelta(days=40), BackupReason.BEFORE_IMPORT),
        ]
        write_json(store, BACKUPS_KEY, [i.to_dict() for i in items])
        manager = BackupManager(store)
        removed = manager.cleanup_old_backups(now=fixed_now)
        assert [b.id for b in removed] == ["stale"]
        assert [b.id for b in manager.list_backups()] == ["fresh"]

    def test_cleanup_nothing_to_remove(self, store, fixed_now):
        write_json(store, BACKUPS_KEY, [_item("fresh", fixed_now).to_dict()])
        assert BackupManager(store).cleanup_old_backups(now=fixed_now) == []


class TestAutoBackup:

    def test_needed_without_auto_backups(self, store, project):
        manager = BackupManager(store)
        manager.create_backup(BackupReason.MANUAL, project)
        assert manager.should_create_auto_backup()

    def test_interval(self, store, project):
        manager = BackupManager(store, settings=Settings(auto_backup_interval_hours=24))
        item = manager.create_backup(BackupReason.AUTO, project)
        assert not manager.should_create_auto_backup(now=item.timestamp + timedelta(hours=1))
        assert manager.should_create_auto_backup(now=item.timestamp + timedelta(hours=24))

    def test_create_if_needed(self, store, project):
        manager = BackupManager(store, current_project=lambda: project)
        first = manager.create_auto_backup_if_needed()
        assert first is not None
        assert first.reason == BackupReason.AUTO
        assert manager.create_auto_backup_if_needed() is None
