"""Tests for codereel.project.models module."""

from datetime import datetime, timezone

import pytest

from codereel.project.models import (
    Document,
    ProjectData,
    ProjectMetadata,
    Snapshot,
    create_metadata,
    default_document_dict,
)


class TestSnapshot:

    def test_replace_returns_new_value(self):
        snapshot = Snapshot("s1", "x")
        changed = snapshot.replace(code="y")
        assert changed.code == "y"
        assert snapshot.code == "x"

    def test_wire_form(self):
        snapshot = Snapshot("s1", "x", duration=1200, transition_time=300)
        assert snapshot.to_dict() == {"id": "s1", "code": "x", "duration": 1200, "transitionTime": 300}

    def test_from_dict_requires_id(self):
        with pytest.raises(ValueError, match="id"):
            Snapshot.from_dict({"code": "x"})


class TestDocument:

    @pytest.fixture
    def document(self):
        return Document(
            snapshots=(Snapshot("a", "1"), Snapshot("b", "2", duration=2000), Snapshot("c", "3"))
        )

    def test_total_duration(self, document):
        assert document.total_duration == 4000

    def test_get_snapshot(self, document):
        assert document.get_snapshot("b").code == "2"
        assert document.get_snapshot("zzz") is None

    def test_move_snapshot(self, document):
        moved = document.move_snapshot(0, 2)
        assert [s.id for s in moved.snapshots] == ["b", "c", "a"]
        assert [s.id for s in document.snapshots] == ["a", "b", "c"]

    def test_move_snapshot_out_of_range(self, document):
        with pytest.raises(IndexError):
            document.move_snapshot(0, 3)

    def test_duplicate_snapshot_inserts_after_original(self, document):
        duplicated = document.duplicate_snapshot("a", new_id="a2")
        assert [s.id for s in duplicated.snapshots] == ["a", "a2", "b", "c"]
        assert duplicated.get_snapshot("a2").code == "1"

    def test_remove_snapshot(self, document):
        assert [s.id for s in document.remove_snapshot("b").snapshots] == ["a", "c"]
        with pytest.raises(KeyError):
            document.remove_snapshot("zzz")

    def test_replace_snapshot(self, document):
        assert document.replace_snapshot("c", code="new").get_snapshot("c").code == "new"

    def test_from_dict_defaults(self):
        document = Document.from_dict({"snapshots": [{"id": "s1"}]})
        assert document.language == "javascript"
        assert document.padding.top == 10
        assert document.snapshots[0].duration == 1000


class TestProjectData:

    def test_roundtrip(self, project_dict):
        project = ProjectData.from_dict(project_dict)
        again = ProjectData.from_dict(project.to_json_dict())
        assert again == project

    def test_datetimes_parsed(self, project):
        assert project.metadata.created_at == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_optional_sections_omitted(self, project):
        data = project.to_dict()
        assert "themes" not in data
        assert "versionHistory" not in data

    def test_requires_metadata_and_document(self, project_dict):
        with pytest.raises(ValueError, match="metadata"):
            ProjectData.from_dict({"document": project_dict["document"]})
        with pytest.raises(ValueError, match="document"):
            ProjectData.from_dict({"metadata": project_dict["metadata"]})

    def test_refresh_derived(self, project):
        project.refresh_derived()
        assert project.metadata.snapshot_count == 2
        assert project.metadata.total_duration == 2500
        assert project.metadata.file_size == project.serialized_size()

    def test_file_size_counts_its_own_digits(self, project):
        code = "x" * 9970
        project.document = project.document.replace_snapshot("s1", code=code)
        project.refresh_derived()
        assert project.metadata.file_size > 10000
        assert project.metadata.file_size == project.serialized_size()
        project.refresh_derived()
        assert project.metadata.file_size == project.serialized_size()

    def test_metadata_requires_name(self):
        with pytest.raises(ValueError, match="name"):
            ProjectMetadata.from_dict({"id": "p1", "name": ""})


def test_create_metadata_counts_snapshots():
    document = Document.from_dict(default_document_dict([{"id": "s1", "duration": 700}]))
    metadata = create_metadata(document, name="Imported")
    assert metadata.name == "Imported"
    assert metadata.id.startswith("project-")
    assert metadata.snapshot_count == 1
    assert metadata.total_duration == 700
