"""Tests for codereel.transfer.results and cancellation modules."""

from datetime import timedelta

import pytest

from codereel.core.errors import ErrorType, OperationCancelledError
from codereel.formats.base import ImportExportFormat
from codereel.transfer.cancellation import CancellationToken
from codereel.transfer.results import (
    ExportResult,
    ImportProgress,
    ImportResult,
    ImportStage,
    empty_counts,
)


def test_empty_counts_cover_every_data_type():
    assert empty_counts() == {
        "project": 0,
        "document": 0,
        "snapshots": 0,
        "themes": 0,
        "presets": 0,
        "settings": 0,
    }


def test_progress_percentage():
    assert ImportProgress(1, 4, ImportStage.VALIDATING, "").percentage == 25.0
    assert ImportProgress(0, 0, ImportStage.INITIALIZING, "").percentage == 0.0


def test_import_failure_shape(fixed_now):
    result = ImportResult.failure("boom", ErrorType.FILE_ERROR, start_time=fixed_now)
    assert not result.success
    assert result.stats.error_count == 1
    assert result.errors[0].type == ErrorType.FILE_ERROR
    assert result.duration >= 0


def test_import_result_to_dict(fixed_now):
    result = ImportResult(True, fixed_now, fixed_now + timedelta(milliseconds=250))
    data = result.to_dict()
    assert data["duration"] == 250.0
    assert data["startTime"] == "2024-06-01T12:00:00.000Z"
    assert data["stats"]["itemsByType"]["project"] == 0


def test_export_failure_shape():
    result = ExportResult.failure("out.csv", ImportExportFormat.CSV, "boom")
    assert not result.success
    assert result.size == 0
    assert result.mime_type == "text/csv"
    assert result.errors[0].type == ErrorType.SYSTEM_ERROR
    assert result.to_dict()["errors"][0]["message"] == "boom"
    assert result.to_dict()["warnings"] == []


def test_cancellation_token():
    token = CancellationToken("Import")
    token.check("reading_file")
    token.cancel()
    assert token.is_cancelled
    with pytest.raises(OperationCancelledError, match="Import operation was cancelled"):
        token.check("reading_file")


@pytest.mark.asyncio
async def test_checkpoint_raises_after_cancel():
    token = CancellationToken()
    await token.checkpoint()
    token.cancel()
    with pytest.raises(OperationCancelledError):
        await token.checkpoint("parsing_data")
