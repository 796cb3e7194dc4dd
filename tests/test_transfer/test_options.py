"""Tests for codereel.transfer.options module."""

import pytest

from codereel.conflicts.models import ConflictResolutionStrategy
from codereel.core.errors import ConflictError
from codereel.formats.base import ImportExportFormat
from codereel.project.models import DataType
from codereel.transfer.options import (
    ExportFilters,
    ExportOptions,
    ImportOptions,
    export_options,
    import_options,
)


def test_import_defaults():
    options = import_options()
    assert options.format is None
    assert options.data_type == DataType.PROJECT
    assert options.conflict_resolution == ConflictResolutionStrategy.INTERACTIVE
    assert options.validate_data
    assert options.create_backup


def test_import_overrides_normalized():
    options = import_options({"format": "csv", "data_type": "snapshots", "conflict_resolution": "skip"})
    assert options.format == ImportExportFormat.CSV
    assert options.data_type == DataType.SNAPSHOTS
    assert options.conflict_resolution == ConflictResolutionStrategy.SKIP


def test_import_options_passed_through():
    options = ImportOptions(validate_data=False)
    assert import_options(options) is options


def test_unknown_strategy():
    with pytest.raises(ConflictError):
        import_options({"conflict_resolution": "replace"})


def test_unknown_option():
    with pytest.raises(ValueError, match="Unknown option\\(s\\): colour"):
        import_options({"colour": "red"})


def test_export_defaults():
    options = export_options()
    assert options.format == ImportExportFormat.JSON
    assert options.include_metadata
    assert options.filename_prefix == "codereel-export"


def test_export_to_dict():
    options = ExportOptions(format="zip", filters=ExportFilters(snapshot_indices=[0]))
    data = options.to_dict()
    assert data["format"] == "zip"
    assert data["filters"]["snapshotIndices"] == [0]
    assert data["filters"]["dateRange"] is None


def test_serialize_options_carry_compression():
    assert not ExportOptions(compression=False).serialize_options().compression
