"""Shared test fixtures for codereel package."""

import json
from datetime import datetime, timezone

import pytest

from codereel.core.storage import MemoryStore
from codereel.project.models import ProjectData


def make_snapshot(snapshot_id="s1", code="x", duration=1000, transition_time=500):
    return {"id": snapshot_id, "code": code, "duration": duration, "transitionTime": transition_time}


def make_project_dict(project_id="p1", name="Demo", snapshots=None, **metadata):
    """Wire-form project with sensible defaults."""
    meta = {
        "id": project_id,
        "name": name,
        "version": "1.0.0",
        "createdAt": "2024-01-15T10:00:00.000Z",
        "updatedAt": "2024-01-15T10:00:00.000Z",
        "tags": [],
    }
    meta.update(metadata)
    return {
        "metadata": meta,
        "document": {
            "language": "javascript",
            "snapshots": snapshots if snapshots is not None else [make_snapshot()],
            "fontSize": 14,
            "lineHeight": 20,
            "width": 800,
            "height": 600,
            "theme": "default",
            "padding": {"top": 10, "left": 10, "bottom": 10},
        },
    }


@pytest.fixture
def project_dict():
    """A minimal valid project in wire form."""
    return make_project_dict(
        snapshots=[
            make_snapshot("s1", "const a = 1;"),
            make_snapshot("s2", "const a = 2;", duration=1500, transition_time=300),
        ]
    )


@pytest.fixture
def project(project_dict):
    """The same project as typed ProjectData."""
    return ProjectData.from_dict(project_dict)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def fixed_now():
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_json_file(tmp_path, project_dict):
    """A project export file on disk."""
    file_path = tmp_path / "demo.json"
    file_path.write_text(json.dumps(project_dict))
    return file_path


@pytest.fixture
def mock_workspace(tmp_path, monkeypatch):
    """Create a workspace with a .codereel/ directory and point discovery at it."""
    data_dir = tmp_path / ".codereel"
    (data_dir / "store").mkdir(parents=True)

    from codereel.core import config

    monkeypatch.setenv("CODEREEL_ROOT", str(tmp_path))
    config.get_workspace_root.cache_clear()
    yield tmp_path
    config.get_workspace_root.cache_clear()


@pytest.fixture
def no_workspace(tmp_path, monkeypatch):
    """Point discovery at a directory without .codereel/."""
    from codereel.core import config

    monkeypatch.setenv("CODEREEL_ROOT", str(tmp_path))
    config.get_workspace_root.cache_clear()
    yield tmp_path
    config.get_workspace_root.cache_clear()


@pytest.fixture
def workspace_with_project(mock_workspace, project):
    """Workspace whose store holds the fixture project as current."""
    from codereel.core.storage import JsonFileStore
    from codereel.transfer.workspace import ProjectWorkspace

    store = JsonFileStore(mock_workspace / ".codereel" / "store")
    ProjectWorkspace(store=store).replace(project)
    return mock_workspace
