"""Tests for codereel.validation.validator module."""

import pytest

from codereel.core.config import Settings
from codereel.project.models import DataType
from codereel.validation.validator import DataValidator

from tests.conftest import make_snapshot


@pytest.fixture
def validator():
    return DataValidator()


def _fields(items):
    return [item.field for item in items]


class TestProject:

    def test_valid_project(self, validator, project_dict):
        result = validator.validate(project_dict, DataType.PROJECT)
        assert result.valid
        assert result.errors == []

    def test_accepts_string_data_type(self, validator, project_dict):
        assert validator.validate(project_dict, "project").valid

    def test_missing_sections(self, validator):
        result = validator.validate({}, DataType.PROJECT)
        assert not result.valid
        assert {"metadata", "document"} <= set(_fields(result.errors))

    def test_not_an_object(self, validator):
        result = validator.validate([1, 2], DataType.PROJECT)
        assert _fields(result.errors) == ["project"]

    def test_unknown_data_type(self, validator, project_dict):
        result = validator.validate(project_dict, "spreadsheet")
        assert not result.valid
        assert result.errors[0].field == "dataType"

    def test_metadata_required_fields(self, validator, project_dict):
        project_dict["metadata"]["name"] = ""
        del project_dict["metadata"]["createdAt"]
        result = validator.validate(project_dict, DataType.PROJECT)
        assert "metadata.name" in _fields(result.errors)
        assert "metadata.createdAt" in _fields(result.errors)

    def test_metadata_types(self, validator, project_dict):
        project_dict["metadata"]["updatedAt"] = "last tuesday"
        project_dict["metadata"]["fileSize"] = -1
        project_dict["metadata"]["tags"] = ["ok", 3]
        result = validator.validate(project_dict, DataType.PROJECT)
        messages = {e.field: e.message for e in result.errors}
        assert messages["metadata.updatedAt"] == "updatedAt must be a valid date"
        assert messages["metadata.fileSize"] == "fileSize must be a non-negative number"
        assert messages["metadata.tags[1]"] == "Item must be a string"

    def test_oversized_metadata_warns(self, project_dict):
        validator = DataValidator(Settings(max_file_size=10, max_snapshots=1))
        project_dict["metadata"]["fileSize"] = 11
        project_dict["metadata"]["snapshotCount"] = 2
        result = validator.validate(project_dict, DataType.PROJECT)
        assert result.valid
        assert {"metadata.fileSize", "metadata.snapshotCount"} <= set(_fields(result.warnings))

    def test_catalogues_checked(self, validator, project_dict):
        project_dict["themes"] = [{"id": "t1", "name": "Dark"}, {"id": "t1", "name": "Again"}]
        project_dict["presets"] = [{"id": "p"}]
        result = validator.validate(project_dict, DataType.PROJECT)
        messages = [e.message for e in result.errors]
        assert "Duplicate theme ID: t1" in messages
        assert "presets[0].name" in _fields(result.errors)

    def test_version_history_checked(self, validator, project_dict):
        project_dict["versionHistory"] = [{"id": "v1", "version": "1.0.0"}]
        result = validator.validate(project_dict, DataType.PROJECT)
        assert "versionHistory[0].timestamp" in _fields(result.errors)


class TestDocument:

    def test_dimensions_must_be_positive(self, validator, project_dict):
        document = project_dict["document"]
        document["width"] = 0
        result = validator.validate(document, DataType.DOCUMENT)
        assert any(e.message == "width must be a positive number" for e in result.errors)

    def test_padding_checked(self, validator, project_dict):
        document = project_dict["document"]
        document["padding"] = {"top": -1, "left": 0}
        result = validator.validate(document, DataType.DOCUMENT)
        fields = _fields(result.errors)
        assert "document.padding.top" in fields
        assert "document.padding.bottom" in fields

    def test_missing_snapshots_and_padding(self, validator, project_dict):
        document = project_dict["document"]
        del document["snapshots"]
        del document["padding"]
        fields = _fields(validator.validate(document, DataType.DOCUMENT).errors)
        assert "document.snapshots" in fields
        assert "document.padding" in fields

    def test_advisory_warnings(self, validator, project_dict):
        document = project_dict["document"]
        document["language"] = "cobol"
        document["fontSize"] = 100
        document["width"] = 4000
        document["height"] = 100
        result = validator.validate(document, DataType.DOCUMENT)
        assert result.valid
        assert {"document.language", "document.fontSize", "document.dimensions"} <= set(
            _fields(result.warnings)
        )


class TestSnapshots:

    def test_duplicate_ids_rejected(self, validator):
        snapshots = [make_snapshot("dup"), make_snapshot("dup")]
        result = validator.validate(snapshots, DataType.SNAPSHOTS)
        assert not result.valid
        assert any("Duplicate snapshot ID" in e.message for e in result.errors)

    def test_transition_longer_than_duration(self, validator):
        result = validator.validate([make_snapshot(duration=1000, transition_time=1001)], DataType.SNAPSHOTS)
        assert not result.valid
        assert result.errors[0].message == "Transition time cannot exceed duration"

    def test_transition_equal_to_duration_allowed(self, validator):
        assert validator.validate([make_snapshot(duration=1000, transition_time=1000)], DataType.SNAPSHOTS).valid

    def test_empty_sequence(self, validator):
        result = validator.validate([], DataType.SNAPSHOTS)
        assert result.errors[0].message == "At least one snapshot is required"

    def test_not_a_list(self, validator):
        assert not validator.validate({"id": "s1"}, DataType.SNAPSHOTS).valid

    def test_zero_duration_rejected(self, validator):
        result = validator.validate([make_snapshot(duration=0, transition_time=0)], DataType.SNAPSHOTS)
        assert "snapshots[0].duration" in _fields(result.errors)

    def test_code_warnings(self, validator):
        snapshots = [
            make_snapshot("a", "x" * 201),
            make_snapshot("b", "   "),
        ]
        warnings = [w.message for w in validator.validate(snapshots, DataType.SNAPSHOTS).warnings]
        assert "Long line (201 chars) at line 1" in warnings
        assert "Empty code snapshot" in warnings

    def test_total_duration_warnings(self, validator):
        short = validator.validate([make_snapshot(duration=500, transition_time=0)], DataType.SNAPSHOTS)
        assert any("Very short total duration" in w.message for w in short.warnings)
        long = validator.validate(
            [make_snapshot(str(i), duration=60000, transition_time=0) for i in range(6)],
            DataType.SNAPSHOTS,
        )
        assert any("Very long total duration" in w.message for w in long.warnings)

    def test_too_many_snapshots_warns(self):
        validator = DataValidator(Settings(max_snapshots=1))
        result = validator.validate([make_snapshot("a"), make_snapshot("b")], DataType.SNAPSHOTS)
        assert result.valid
        assert result.warnings[0].field == "snapshots"


def test_settings_must_be_object(validator):
    assert not validator.validate([], DataType.SETTINGS).valid
    assert validator.validate({"fps": 30}, DataType.SETTINGS).valid
