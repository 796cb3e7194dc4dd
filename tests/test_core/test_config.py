"""Tests for codereel.core.config module.

Covers:
  - get_global_config_path() with default and XDG_CONFIG_HOME
  - load_global_config() with missing, valid, and invalid files
  - find_workspace_root() 3-tier resolution (env var > local walk > global config)
  - get_paths(), dotted keys and Settings loading
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from codereel.core.config import (
    Settings,
    assign_dotted,
    find_workspace_root,
    get_global_config_path,
    get_paths,
    load_config,
    load_global_config,
    load_settings,
    lookup_dotted,
    save_config,
    settings_from_config,
)


# ---------------------------------------------------------------------------
# get_global_config_path
# ---------------------------------------------------------------------------

class TestGetGlobalConfigPath:
    """Tests for get_global_config_path()."""

    def test_default_path(self, monkeypatch):
        """Without XDG_CONFIG_HOME, returns ~/.config/codereel/config.yaml."""
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        result = get_global_config_path()
        assert result == Path.home() / ".config" / "codereel" / "config.yaml"

    def test_xdg_config_home(self, monkeypatch, tmp_path):
        """With XDG_CONFIG_HOME set, uses that directory."""
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "custom_config"))
        result = get_global_config_path()
        assert result == tmp_path / "custom_config" / "codereel" / "config.yaml"


# ---------------------------------------------------------------------------
# load_global_config
# ---------------------------------------------------------------------------

class TestLoadGlobalConfig:
    """Tests for load_global_config()."""

    def test_missing_file_returns_empty(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "nonexistent"))
        assert load_global_config() == {}

    def test_valid_yaml(self, monkeypatch, tmp_path):
        config_dir = tmp_path / "codereel"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text(yaml.dump({"root": "/some/path"}))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert load_global_config() == {"root": "/some/path"}

    def test_non_dict_yaml_returns_empty(self, monkeypatch, tmp_path):
        config_dir = tmp_path / "codereel"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("- just\n- a list\n")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert load_global_config() == {}

    def test_invalid_yaml_returns_empty(self, monkeypatch, tmp_path):
        config_dir = tmp_path / "codereel"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("key: [unclosed\n")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert load_global_config() == {}


# ---------------------------------------------------------------------------
# find_workspace_root
# ---------------------------------------------------------------------------

class TestFindWorkspaceRoot:
    """Tests for the 3-tier resolution in find_workspace_root()."""

    def test_env_var_takes_priority(self, monkeypatch, tmp_path):
        (tmp_path / ".codereel").mkdir()
        monkeypatch.setenv("CODEREEL_ROOT", str(tmp_path))
        assert find_workspace_root() == tmp_path.resolve()

    def test_env_var_without_workspace_raises(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CODEREEL_ROOT", str(tmp_path))
        with pytest.raises(FileNotFoundError, match="CODEREEL_ROOT"):
            find_workspace_root()

    def test_walks_up_from_start_path(self, monkeypatch, tmp_path):
        monkeypatch.delenv("CODEREEL_ROOT", raising=False)
        (tmp_path / ".codereel").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_workspace_root(nested) == tmp_path.resolve()

    def test_global_config_root(self, monkeypatch, tmp_path):
        monkeypatch.delenv("CODEREEL_ROOT", raising=False)
        workspace = tmp_path / "workspace"
        (workspace / ".codereel").mkdir(parents=True)
        config_home = tmp_path / "xdg"
        (config_home / "codereel").mkdir(parents=True)
        (config_home / "codereel" / "config.yaml").write_text(yaml.dump({"root": str(workspace)}))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))

        start = tmp_path / "elsewhere"
        start.mkdir()
        assert find_workspace_root(start) == workspace.resolve()

    def test_nothing_found_raises(self, monkeypatch, tmp_path):
        monkeypatch.delenv("CODEREEL_ROOT", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        start = tmp_path / "empty"
        start.mkdir()
        with pytest.raises(FileNotFoundError, match="codereel init"):
            find_workspace_root(start)


# ---------------------------------------------------------------------------
# get_paths
# ---------------------------------------------------------------------------

def test_get_paths_layout(tmp_path):
    paths = get_paths(tmp_path)
    assert paths.root == tmp_path
    assert paths.data_dir == tmp_path / ".codereel"
    assert paths.store_dir == tmp_path / ".codereel" / "store"
    assert paths.config_file == tmp_path / ".codereel" / "config.yaml"
    assert paths.exports_dir == tmp_path / "exports"


# ---------------------------------------------------------------------------
# dotted keys, config files and settings
# ---------------------------------------------------------------------------

class TestDottedKeys:

    def test_lookup_nested(self):
        assert lookup_dotted({"backup": {"max_count": 5}}, "backup.max_count") == 5

    def test_lookup_missing_returns_default(self):
        assert lookup_dotted({"backup": {}}, "backup.max_count", 7) == 7
        assert lookup_dotted({"backup": 3}, "backup.max_count") is None

    def test_assign_creates_parents(self):
        config = {}
        assign_dotted(config, "history.limit", 10)
        assert config == {"history": {"limit": 10}}

    def test_assign_replaces_scalar_parent(self):
        config = {"history": "oops"}
        assign_dotted(config, "history.limit", 10)
        assert config == {"history": {"limit": 10}}


class TestConfigFile:

    def test_save_and_load_yaml(self, tmp_path):
        path = tmp_path / ".codereel" / "config.yaml"
        save_config({"backup": {"max_count": 3}}, path)
        assert load_config(path) == {"backup": {"max_count": 3}}

    def test_load_json_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text('{"history": {"limit": 5}}')
        assert load_config(path) == {"history": {"limit": 5}}

    def test_load_missing_or_empty(self, tmp_path):
        path = tmp_path / "config.yaml"
        assert load_config(path) == {}
        path.write_text("   \n")
        assert load_config(path) == {}


class TestSettings:

    def test_defaults(self):
        settings = Settings()
        assert settings.max_backup_count == 50
        assert settings.backup_retention_days == 30
        assert settings.auto_backup_interval_hours == 24
        assert settings.compress_backups is True
        assert settings.history_limit == 100

    def test_settings_from_config(self):
        settings = settings_from_config(
            {"backup": {"max_count": "5", "compress": "no"}, "history": {"limit": 20}}
        )
        assert settings.max_backup_count == 5
        assert settings.compress_backups is False
        assert settings.history_limit == 20

    def test_malformed_values_ignored(self):
        settings = settings_from_config({"backup": {"max_count": "lots"}})
        assert settings.max_backup_count == 50

    def test_load_settings_from_workspace(self, tmp_path):
        save_config({"backup": {"retention_days": 7}}, tmp_path / ".codereel" / "config.yaml")
        assert load_settings(tmp_path).backup_retention_days == 7

    def test_load_settings_outside_workspace(self, monkeypatch, tmp_path):
        from codereel.core import config

        monkeypatch.setenv("CODEREEL_ROOT", str(tmp_path))
        config.get_workspace_root.cache_clear()
        try:
            assert load_settings() == Settings()
        finally:
            config.get_workspace_root.cache_clear()
