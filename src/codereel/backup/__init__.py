"""Project backups with count and age retention."""

from codereel.backup.manager import BackupItem, BackupManager

__all__ = ["BackupItem", "BackupManager"]
