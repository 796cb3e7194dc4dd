"""Tests for codereel.transfer.exporter module."""

import json
from datetime import datetime, timezone

import pytest

from codereel.core.errors import ExportError
from codereel.formats.base import ImportExportFormat
from codereel.project.models import ProjectData
from codereel.transfer.cancellation import CancellationToken
from codereel.transfer.exporter import DocumentExporter, apply_field_selection, collect_data
from codereel.transfer.options import ExportFilters, ExportOptions, FieldSelection
from codereel.transfer.results import ExportStage

from tests.conftest import make_project_dict


@pytest.fixture
def wire(project_dict):
    project_dict["themes"] = [{"id": "t1", "name": "Dark"}]
    project_dict["exportSettings"] = {"fps": 30}
    project_dict["metadata"]["tags"] = ["intro"]
    project_dict["metadata"]["author"] = "ann"
    return project_dict


class TestCollectData:

    def test_without_filters_includes_everything(self, wire):
        collected = collect_data(wire, ExportOptions())
        assert set(collected) == {"metadata", "document", "themes", "exportSettings"}

    def test_without_metadata(self, wire):
        assert "metadata" not in collect_data(wire, ExportOptions(include_metadata=False))

    def test_catalogues_need_flags_when_filtering(self, wire):
        collected = collect_data(wire, ExportOptions(filters=ExportFilters()))
        assert set(collected) == {"metadata", "document"}
        collected = collect_data(wire, ExportOptions(filters=ExportFilters(include_themes=True)))
        assert "themes" in collected

    def test_snapshot_indices(self, wire):
        options = ExportOptions(filters=ExportFilters(snapshot_indices=[1, 7]))
        snapshots = collect_data(wire, options)["document"]["snapshots"]
        assert [s["id"] for s in snapshots] == ["s2"]
        assert len(wire["document"]["snapshots"]) == 2

    def test_date_range(self, wire):
        inside = (datetime(2024, 1, 1, tzinfo=timezone.utc), datetime(2024, 2, 1, tzinfo=timezone.utc))
        outside = (datetime(2023, 1, 1, tzinfo=timezone.utc), datetime(2023, 2, 1, tzinfo=timezone.utc))
        assert collect_data(wire, ExportOptions(filters=ExportFilters(date_range=inside)))
        assert collect_data(wire, ExportOptions(filters=ExportFilters(date_range=outside))) == {}

    def test_content_filters(self, wire):
        def run(**filters):
            return collect_data(wire, ExportOptions(filters=ExportFilters(**filters)))

        assert run(language_filter=["javascript"])
        assert run(language_filter=["python"]) == {}
        assert run(tag_filter=["intro", "other"])
        assert run(tag_filter=["other"]) == {}
        assert run(author_filter=["ann"])
        assert run(author_filter=["bob"]) == {}


def test_field_selection(wire):
    selection = FieldSelection(
        metadata={"tags": False},
        document={"theme": False, "snapshots": False},
        snapshots={"transitionTime": False},
    )
    selected = apply_field_selection(collect_data(wire, ExportOptions()), selection)
    assert "tags" not in selected["metadata"]
    assert "theme" not in selected["document"]
    assert len(selected["document"]["snapshots"]) == 2
    assert all("transitionTime" not in s for s in selected["document"]["snapshots"])
    assert selected["themes"] == wire["themes"]


class TestExport:

    @pytest.mark.asyncio
    async def test_json_export(self, project):
        result = await DocumentExporter().export(project)
        assert result.success
        assert result.format == ImportExportFormat.JSON
        assert result.filename.startswith("codereel-export")
        assert result.filename.endswith(".json")
        assert result.mime_type == "application/json"

        data = json.loads(result.content)
        assert data["metadata"]["id"] == "p1"
        assert "exportedAt" in data
        assert result.stats.items_by_type["snapshots"] == 2
        assert [i.type.value for i in result.exported_items] == ["project", "document"]

    @pytest.mark.asyncio
    async def test_accepts_wire_form_and_overrides(self, project_dict):
        result = await DocumentExporter().export(project_dict, {"format": "csv", "filename_prefix": "clip"})
        assert result.filename.startswith("clip")
        assert result.filename.endswith(".csv")
        assert result.content.decode("utf-8").splitlines()[0] == '"id","code","duration","transitionTime"'

    @pytest.mark.asyncio
    async def test_zip_export(self, project):
        result = await DocumentExporter().export(project, {"format": "zip"})
        assert result.content[:2] == b"PK"

    @pytest.mark.asyncio
    async def test_progress_stages(self, project):
        seen = []
        await DocumentExporter(on_progress=seen.append).export(project)
        assert [p.stage for p in seen] == list(ExportStage)

    @pytest.mark.asyncio
    async def test_csv_without_snapshots_fails(self):
        project = ProjectData.from_dict(make_project_dict(snapshots=[]))
        with pytest.raises(ExportError, match="No snapshots to export as CSV"):
            await DocumentExporter().export(project, {"format": "csv"})

    @pytest.mark.asyncio
    async def test_cancelled(self, project):
        token = CancellationToken("Export")
        token.cancel()
        with pytest.raises(ExportError, match="cancelled"):
            await DocumentExporter().export(project, token=token)

    @pytest.mark.asyncio
    async def test_unknown_option(self, project):
        with pytest.raises(ValueError, match="Unknown option"):
            await DocumentExporter().export(project, {"colour": "red"})
