"""Tests for the codereel command line entry point."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from codereel import __version__
from codereel.cli import main
from codereel.core.storage import JsonFileStore
from codereel.transfer.workspace import ProjectWorkspace

from tests.conftest import make_project_dict, make_snapshot


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_lists_commands(runner):
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    for name in ("init", "import", "export", "preview", "history", "backup", "config"):
        assert name in result.output


class TestInit:

    def test_creates_workspace(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["init"])
            assert result.exit_code == 0
            assert "Done!" in result.output
            assert Path(".codereel/store").is_dir()

    def test_existing_workspace(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            runner.invoke(main, ["init"])
            result = runner.invoke(main, ["init"])
            assert result.exit_code == 0
            assert "already exists" in result.output

            result = runner.invoke(main, ["init", "--force"])
            assert "Done!" in result.output


class TestImport:

    def test_import_file(self, runner, mock_workspace, sample_json_file):
        result = runner.invoke(main, ["import", str(sample_json_file)])
        assert result.exit_code == 0, result.output
        assert "Imported demo.json" in result.output

        store = JsonFileStore(mock_workspace / ".codereel" / "store")
        assert ProjectWorkspace(store=store).current.metadata.id == "p1"

    def test_import_backs_up_current_project(self, runner, workspace_with_project, sample_json_file):
        result = runner.invoke(main, ["import", str(sample_json_file), "--strategy", "overwrite"])
        assert result.exit_code == 0, result.output
        assert "Backup:backup-" in "".join(result.output.split())

    def test_import_invalid_file(self, runner, mock_workspace, tmp_path):
        bad = tmp_path / "dup.json"
        bad.write_text(json.dumps(make_project_dict(snapshots=[make_snapshot("dup"), make_snapshot("dup")])))
        result = runner.invoke(main, ["import", str(bad)])
        assert result.exit_code == 1
        assert "Import of dup.json failed" in result.output
        assert "1 of 1 import(s) failed" in result.output

    def test_import_csv(self, runner, mock_workspace, tmp_path):
        csv_file = tmp_path / "steps.csv"
        csv_file.write_text("id;code;duration;transitionTime\na;x;1000;0\nb;y;1000;0")
        result = runner.invoke(main, ["import", str(csv_file), "--delimiter", ";"])
        assert result.exit_code == 0, result.output

        store = JsonFileStore(mock_workspace / ".codereel" / "store")
        project = ProjectWorkspace(store=store).current
        assert project.metadata.name == "steps"
        assert [s.id for s in project.document.snapshots] == ["a", "b"]

    def test_outside_workspace(self, runner, no_workspace, sample_json_file):
        result = runner.invoke(main, ["import", str(sample_json_file)])
        assert result.exit_code != 0
        assert "Not in a codereel workspace" in result.output


class TestExport:

    def test_export_csv(self, runner, workspace_with_project):
        result = runner.invoke(main, ["export", "--format", "csv"])
        assert result.exit_code == 0, result.output
        files = list((workspace_with_project / "exports").glob("codereel-export-*.csv"))
        assert len(files) == 1
        assert files[0].read_text().startswith('"id","code","duration","transitionTime"')

    def test_export_to_directory_with_filters(self, runner, workspace_with_project, tmp_path):
        out = tmp_path / "dist"
        result = runner.invoke(
            main,
            ["export", "-o", str(out), "--prefix", "clip", "--snapshot", "1",
             "--exclude-field", "metadata.tags"],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(next(out.glob("clip-*.json")).read_text())
        assert [s["id"] for s in data["document"]["snapshots"]] == ["s2"]
        assert "tags" not in data["metadata"]

    def test_bad_exclude_field(self, runner, workspace_with_project):
        result = runner.invoke(main, ["export", "--exclude-field", "tags"])
        assert result.exit_code == 2
        assert "Expected section.field" in result.output

    def test_nothing_to_export(self, runner, mock_workspace):
        result = runner.invoke(main, ["export"])
        assert result.exit_code != 0
        assert "No project to export" in result.output

    def test_failed_export_writes_nothing(self, runner, workspace_with_project):
        result = runner.invoke(main, ["export", "--format", "csv", "--snapshot", "99"])
        assert result.exit_code == 1
        assert "No snapshots to export as CSV" in result.output
        assert not list((workspace_with_project / "exports").glob("*.csv"))


def test_preview(runner, workspace_with_project, tmp_path):
    incoming = tmp_path / "other.json"
    incoming.write_text(json.dumps(make_project_dict(name="Other")))
    result = runner.invoke(main, ["preview", str(incoming)])
    assert result.exit_code == 0, result.output
    assert "Preview: other.json" in result.output
    assert "valid" in result.output
    assert "Conflicts" in result.output

    store = JsonFileStore(workspace_with_project / ".codereel" / "store")
    assert ProjectWorkspace(store=store).current.metadata.name == "Demo"


def test_history(runner, mock_workspace, sample_json_file):
    result = runner.invoke(main, ["history"])
    assert "No import history" in result.output

    runner.invoke(main, ["import", str(sample_json_file)])
    result = runner.invoke(main, ["history"])
    assert result.exit_code == 0
    assert "Import History" in result.output

    result = runner.invoke(main, ["history", "--clear"])
    assert "Cleared import history" in result.output
    assert "No import history" in runner.invoke(main, ["history"]).output
