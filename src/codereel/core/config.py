"""
Configuration and path management.

Provides workspace root detection, standard paths and the settings used by
the interchange engine. Uses a .codereel/ directory for engine data (store,
config).

Resolution order for the workspace root:
  1. CODEREEL_ROOT environment variable (highest priority)
  2. Walk up from cwd looking for .codereel/ directory
  3. Global config file (~/.config/codereel/config.yaml) root key
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

WORKSPACE_DIR = ".codereel"

# Engine limits and retention defaults
MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MiB
MAX_SNAPSHOTS = 10000
MAX_BACKUP_COUNT = 50
BACKUP_RETENTION_DAYS = 30
AUTO_BACKUP_INTERVAL_HOURS = 24
HISTORY_LIMIT = 100


@dataclass(frozen=True)
class WorkspacePaths:
    """Standard paths inside a codereel workspace."""

    root: Path
    data_dir: Path
    store_dir: Path
    config_file: Path
    exports_dir: Path


@dataclass(frozen=True)
class Settings:
    """Tunable limits for validation, backups and history."""

    max_backup_count: int = MAX_BACKUP_COUNT
    backup_retention_days: int = BACKUP_RETENTION_DAYS
    auto_backup_interval_hours: int = AUTO_BACKUP_INTERVAL_HOURS
    compress_backups: bool = True
    history_limit: int = HISTORY_LIMIT
    max_file_size: int = MAX_FILE_SIZE
    max_snapshots: int = MAX_SNAPSHOTS


# Dotted config key -> (Settings attribute, type, description)
SETTINGS_KEYS: dict[str, tuple[str, type, str]] = {
    "backup.max_count": ("max_backup_count", int, "Maximum number of backups kept"),
    "backup.retention_days": (
        "backup_retention_days",
        int,
        "Non-manual backups older than this many days are removed",
    ),
    "backup.auto_interval_hours": (
        "auto_backup_interval_hours",
        int,
        "Minimum hours between automatic backups",
    ),
    "backup.compress": ("compress_backups", bool, "Store backup payloads compressed"),
    "history.limit": ("history_limit", int, "Entries kept in import/export history"),
    "limits.max_file_size": ("max_file_size", int, "File size (bytes) above which a warning is raised"),
    "limits.max_snapshots": ("max_snapshots", int, "Snapshot count above which a warning is raised"),
}


def get_global_config_path() -> Path:
    """Return the path to the global codereel config file.

    Respects XDG_CONFIG_HOME if set, otherwise defaults to
    ~/.config/codereel/config.yaml.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "codereel" / "config.yaml"


def load_global_config() -> dict:
    """Load the global configuration.

    Returns:
        Configuration dict, or empty dict if file is missing or invalid.
    """
    config_path = get_global_config_path()
    if not config_path.is_file():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return data
        return {}
    except (OSError, yaml.YAMLError):
        return {}


def _walk_up_for_workspace(start_path: Path) -> Path | None:
    current = start_path.resolve()
    while current != current.parent:
        if (current / WORKSPACE_DIR).is_dir():
            return current
        current = current.parent
    return None


def find_workspace_root(start_path: Path | None = None) -> Path:
    """Find the workspace root using 3-tier resolution.

    Args:
        start_path: Starting path for the .codereel/ walk (defaults to cwd)

    Returns:
        Path to workspace root

    Raises:
        FileNotFoundError: If no .codereel/ directory is found by any method
    """
    env_root = os.environ.get("CODEREEL_ROOT")
    if env_root:
        env_path = Path(env_root).resolve()
        if (env_path / WORKSPACE_DIR).is_dir():
            return env_path
        raise FileNotFoundError(
            f"CODEREEL_ROOT={env_root} does not contain a {WORKSPACE_DIR}/ directory."
        )

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_workspace(Path(start_path))
    if result is not None:
        return result

    root_str = load_global_config().get("root")
    if root_str:
        global_path = Path(root_str).expanduser().resolve()
        if (global_path / WORKSPACE_DIR).is_dir():
            return global_path
        raise FileNotFoundError(
            f"Global config root={root_str} does not contain a {WORKSPACE_DIR}/ directory."
        )

    raise FileNotFoundError(
        f"Could not find {WORKSPACE_DIR}/ directory starting from {start_path}. "
        f"Run 'codereel init' to initialize, set CODEREEL_ROOT, or configure "
        f"root in {get_global_config_path()}."
    )


@lru_cache(maxsize=1)
def get_workspace_root() -> Path:
    """Get the cached workspace root path."""
    return find_workspace_root()


def get_paths(root: Path | None = None) -> WorkspacePaths:
    """Get all standard paths for the workspace.

    Args:
        root: Workspace root (uses cached default if not provided)
    """
    if root is None:
        root = get_workspace_root()

    root = Path(root)
    data_dir = root / WORKSPACE_DIR

    return WorkspacePaths(
        root=root,
        data_dir=data_dir,
        store_dir=data_dir / "store",
        config_file=data_dir / "config.yaml",
        exports_dir=root / "exports",
    )


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load the workspace configuration (YAML, or JSON for older files)."""
    if config_path is None:
        config_path = get_paths().config_file
    if not config_path.exists():
        return {}

    content = config_path.read_text(encoding="utf-8")
    if not content.strip():
        return {}

    if content.strip().startswith("{"):
        result: dict[str, Any] = json.loads(content)
        return result
    loaded = yaml.safe_load(content)
    if isinstance(loaded, dict):
        return loaded
    return {}


def save_config(config: dict[str, Any], config_path: Path | None = None) -> None:
    """Save the workspace configuration as YAML."""
    if config_path is None:
        config_path = get_paths().config_file
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.dump(config, default_flow_style=False, sort_keys=False))


def lookup_dotted(config: dict[str, Any], key: str, default: Any = None) -> Any:
    """Resolve a dotted key (``backup.max_count``) inside a nested dict."""
    current: Any = config
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return default
    return current


def assign_dotted(config: dict[str, Any], key: str, value: Any) -> None:
    """Set a dotted key inside a nested dict, creating parents as needed."""
    parts = key.split(".")
    current = config
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value


def settings_from_config(config: dict[str, Any]) -> Settings:
    """Build Settings from a loaded config dict, ignoring malformed values."""
    overrides: dict[str, Any] = {}
    for key, (attr, kind, _description) in SETTINGS_KEYS.items():
        value = lookup_dotted(config, key)
        if value is None:
            continue
        if kind is bool and isinstance(value, str):
            overrides[attr] = value.strip().lower() in ("true", "yes", "1", "on")
            continue
        try:
            overrides[attr] = kind(value)
        except (TypeError, ValueError):
            continue
    return Settings(**overrides)


def load_settings(root: Path | None = None) -> Settings:
    """Load Settings for a workspace, falling back to defaults outside one."""
    try:
        paths = get_paths(root)
    except FileNotFoundError:
        return Settings()
    return settings_from_config(load_config(paths.config_file))
