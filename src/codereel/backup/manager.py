"""
Backup manager.

Keeps a bounded, retention-managed list of point-in-time project copies in
the key-value store under ``BACKUPS_KEY``. Entries are kept newest-first.

Retention rules (applied on every write):
  1. Keep at most ``max_backup_count`` entries (the newest).
  2. Drop non-manual entries older than ``backup_retention_days``.
Manual backups are never dropped by age.
"""

from __future__ import annotations

import base64
import json
import logging
import random
import string
import zlib
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from codereel.core.config import Settings
from codereel.core.errors import BackupError
from codereel.core.storage import BACKUPS_KEY, KeyValueStore, read_json_list, write_json
from codereel.core.timestamps import epoch_millis, parse_datetime, to_jsonable, utcnow
from codereel.project.models import BackupReason, ProjectData

logger = logging.getLogger(__name__)

REASON_NOTES = {
    BackupReason.BEFORE_IMPORT: "Automatic backup created before import operation",
    BackupReason.MANUAL: "Manual backup created by user",
    BackupReason.AUTO: "Automatic periodic backup",
    BackupReason.BEFORE_UPDATE: "Automatic backup created before update",
}

# Fields that can be regenerated and are left out of stored copies
_STRIPPED_FIELDS = ("versionHistory", "backupInfo")

CurrentProjectSource = Callable[[], "ProjectData | None"]


def generate_backup_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"backup-{epoch_millis()}-{suffix}"


def compress_payload(data: dict[str, Any]) -> str:
    """Encode a wire-form project as zlib-compressed, base64 JSON text."""
    raw = json.dumps(to_jsonable(data), separators=(",", ":")).encode("utf-8")
    return base64.b64encode(zlib.compress(raw)).decode("ascii")


def decompress_payload(payload: str) -> dict[str, Any]:
    """Reverse of ``compress_payload``.

    Raises:
        ValueError: If the payload is not valid compressed JSON.
    """
    try:
        raw = zlib.decompress(base64.b64decode(payload.encode("ascii")))
        data = json.loads(raw.decode("utf-8"))
    except (zlib.error, ValueError, UnicodeDecodeError) as e:
        raise ValueError(f"Corrupt backup payload: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Corrupt backup payload: not an object")
    return data


@dataclass
class BackupItem:
    """One stored backup."""

    id: str
    timestamp: datetime
    reason: BackupReason
    data: dict[str, Any] | str
    size: int
    compressed: bool = True
    restorable: bool = True
    original_filename: str | None = None
    notes: str | None = None

    @property
    def age_days(self) -> float:
        return (utcnow() - self.timestamp).total_seconds() / 86400

    def payload(self) -> dict[str, Any]:
        """The stored project in wire form, decompressed if needed."""
        if isinstance(self.data, str):
            return decompress_payload(self.data)
        return dict(self.data)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "reason": self.reason.value,
            "data": self.data,
            "size": self.size,
            "compressed": self.compressed,
            "restorable": self.restorable,
            "notes": self.notes,
        }
        if self.original_filename is not None:
            data["originalFilename"] = self.original_filename
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BackupItem:
        timestamp = parse_datetime(data.get("timestamp"))
        if timestamp is None:
            raise ValueError(f"Backup {data.get('id')!r} has no valid timestamp")
        return cls(
            id=str(data["id"]),
            timestamp=timestamp,
            reason=BackupReason(data.get("reason", BackupReason.MANUAL.value)),
            data=data.get("data") or {},
            size=int(data.get("size") or 0),
            compressed=bool(data.get("compressed", False)),
            restorable=bool(data.get("restorable", True)),
            original_filename=data.get("originalFilename"),
            notes=data.get("notes"),
        )


def _validate_restored(data: dict[str, Any]) -> None:
    if not data:
        raise BackupError("Restored data is empty")
    if not data.get("metadata"):
        raise BackupError("Restored data missing metadata")
    document = data.get("document")
    if not document:
        raise BackupError("Restored data missing document")
    if not isinstance(document, dict) or not document.get("snapshots"):
        raise BackupError("Restored data missing snapshots")


class BackupManager:
    """Creates, restores and prunes project backups.

    Args:
        store: Key-value store holding the backup list
        current_project: Returns the project to back up when ``create_backup``
            is called without data
        settings: Retention and compression settings
        on_backup_created: Called with every newly stored backup
    """

    def __init__(
        self,
        store: KeyValueStore,
        current_project: CurrentProjectSource | None = None,
        settings: Settings | None = None,
        on_backup_created: Callable[[BackupItem], None] | None = None,
    ):
        self.store = store
        self.current_project = current_project
        self.settings = settings or Settings()
        self.on_backup_created = on_backup_created

    # Storage

    def _load(self) -> list[BackupItem]:
        backups = []
        for entry in read_json_list(self.store, BACKUPS_KEY):
            try:
                backups.append(BackupItem.from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed backup entry: %s", e)
        return backups

    def _save(self, backups: list[BackupItem]) -> None:
        write_json(self.store, BACKUPS_KEY, [b.to_dict() for b in backups])

    # Operations

    def create_backup(
        self,
        reason: BackupReason | str,
        data: ProjectData | None = None,
        original_filename: str | None = None,
    ) -> BackupItem:
        """Store a copy of *data*, or of the current project when omitted.

        Raises:
            BackupError: If there is nothing to back up or the write fails
        """
        try:
            reason = BackupReason(reason)
            if data is None and self.current_project is not None:
                data = self.current_project()
            if data is None:
                raise BackupError("No project data to backup")

            wire = data.to_json_dict()
            for key in _STRIPPED_FIELDS:
                wire.pop(key, None)
            size = len(json.dumps(wire, separators=(",", ":")).encode("utf-8"))

            compressed = self.settings.compress_backups
            backup = BackupItem(
                id=generate_backup_id(),
                timestamp=utcnow(),
                reason=reason,
                data=compress_payload(wire) if compressed else wire,
                size=size,
                compressed=compressed,
                restorable=True,
                original_filename=original_filename,
                notes=REASON_NOTES.get(reason, "Backup created"),
            )

            backups = [backup, *self._load()]
            self._save(self.apply_cleanup_rules(backups))
        except Exception as e:
            raise BackupError(f"Backup creation failed: {e}") from e

        logger.debug("Created %s backup %s (%d bytes)", reason.value, backup.id, size)
        if self.on_backup_created:
            self.on_backup_created(backup)
        return backup

    def restore(self, backup_id: str) -> ProjectData:
        """Return the project stored in a backup.

        Raises:
            BackupError: If the backup is missing, not restorable or invalid
        """
        try:
            backup = self.get_backup(backup_id)
            if backup is None:
                raise BackupError(f"Backup not found: {backup_id}")
            if not backup.restorable:
                raise BackupError(f"Backup is not restorable: {backup_id}")

            data = backup.payload()
            _validate_restored(data)
            return ProjectData.from_dict(data)
        except Exception as e:
            raise BackupError(f"Restore failed: {e}") from e

    def list_backups(self) -> list[BackupItem]:
        """All backups, newest first."""
        return sorted(self._load(), key=lambda b: b.timestamp, reverse=True)

    def get_backup(self, backup_id: str) -> BackupItem | None:
        for backup in self._load():
            if backup.id == backup_id:
                return backup
        return None

    def delete_backup(self, backup_id: str) -> None:
        """
        Raises:
            BackupError: If the backup does not exist or the write fails
        """
        try:
            backups = self._load()
            remaining = [b for b in backups if b.id != backup_id]
            if len(remaining) == len(backups):
                raise BackupError(f"Backup not found: {backup_id}")
            self._save(remaining)
        except Exception as e:
            raise BackupError(f"Failed to delete backup: {e}") from e

    def delete_all_backups(self) -> None:
        try:
            self._save([])
        except Exception as e:
            raise BackupError(f"Failed to delete all backups: {e}") from e

    def get_backup_stats(self) -> dict[str, Any]:
        backups = self.list_backups()
        by_reason = {reason.value: 0 for reason in BackupReason}
        for backup in backups:
            by_reason[backup.reason.value] += 1
        return {
            "totalBackups": len(backups),
            "totalSize": sum(b.size for b in backups),
            "oldestBackup": backups[-1].timestamp if backups else None,
            "newestBackup": backups[0].timestamp if backups else None,
            "backupsByReason": by_reason,
        }

    def should_create_auto_backup(self, now: datetime | None = None) -> bool:
        """True when no automatic backup exists or the newest one is stale."""
        now = now or utcnow()
        auto = [b for b in self.list_backups() if b.reason == BackupReason.AUTO]
        if not auto:
            return True
        elapsed = now - auto[0].timestamp
        return elapsed >= timedelta(hours=self.settings.auto_backup_interval_hours)

    def create_auto_backup_if_needed(self, now: datetime | None = None) -> BackupItem | None:
        if self.should_create_auto_backup(now):
            return self.create_backup(BackupReason.AUTO)
        return None

    def apply_cleanup_rules(
        self,
        backups: list[BackupItem],
        now: datetime | None = None,
    ) -> list[BackupItem]:
        """Apply the count limit, then the age limit, to a backup list."""
        now = now or utcnow()
        kept = sorted(backups, key=lambda b: b.timestamp, reverse=True)
        kept = kept[: self.settings.max_backup_count]

        cutoff = now - timedelta(days=self.settings.backup_retention_days)
        return [b for b in kept if b.reason == BackupReason.MANUAL or b.timestamp >= cutoff]

    def cleanup_old_backups(self, now: datetime | None = None) -> list[BackupItem]:
        """Prune stored backups, returning the ones removed."""
        backups = self._load()
        kept = self.apply_cleanup_rules(backups, now)
        if len(kept) != len(backups):
            self._save(kept)
        kept_ids = {b.id for b in kept}
        removed = [b for b in backups if b.id not in kept_ids]
        if removed:
            logger.debug("Removed %d expired backup(s)", len(removed))
        return removed
