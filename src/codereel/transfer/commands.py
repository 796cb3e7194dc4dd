"""
Import, export and preview CLI commands.

These commands drive ``ProjectImportExportManager`` against the on-disk
store of the current workspace. Library errors are reported here and turned
into ``click.Abort``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from codereel.conflicts.models import ConflictResolutionStrategy
from codereel.conflicts.prompts import ask_strategy
from codereel.core.config import get_paths
from codereel.core.errors import CodereelError
from codereel.formats.base import ImportExportFormat
from codereel.formats.files import FileSource, format_file_size, sanitize_filename
from codereel.project.models import DataType
from codereel.transfer.manager import ProjectImportExportManager
from codereel.transfer.options import ExportFilters, ExportOptions, FieldSelection, ImportOptions
from codereel.transfer.results import ImportResult
from codereel.transfer.workspace import TransferContext, open_workspace_context

console = Console()

FORMAT_CHOICES = [f.value for f in ImportExportFormat]
DATA_TYPE_CHOICES = [t.value for t in DataType]
STRATEGY_CHOICES = [s.value for s in ConflictResolutionStrategy]


def _open_context(**observers: Any) -> TransferContext:
    try:
        return open_workspace_context(**observers)
    except FileNotFoundError:
        console.print("[red]Error: Not in a codereel workspace.[/red]")
        console.print("[dim]Run 'codereel init' to initialize, or run from a directory with .codereel/[/dim]")
        raise click.Abort() from None


def _progress_bar(enabled: bool = True) -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
        disable=not enabled,
    )


def _tracker(progress: Progress, task_id: Any) -> Callable[[Any], None]:
    def update(event: Any) -> None:
        progress.update(task_id, completed=event.percentage, description=event.message)

    return update


def _print_import_result(filename: str, result: ImportResult) -> None:
    if result.success:
        console.print(
            f"[green]Imported {filename}[/green] "
            f"[dim]({len(result.imported_items)} imported, {len(result.skipped_items)} skipped, "
            f"{result.duration:.0f} ms)[/dim]"
        )
    else:
        console.print(f"[red]Import of {filename} failed[/red]")
        for error in result.errors:
            console.print(f"  [red]x[/red] {error.message}")

    if result.imported_items:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Type")
        table.add_column("ID")
        table.add_column("Name")
        table.add_column("Action", style="green")
        for item in result.imported_items:
            table.add_row(item.type.value, item.id, item.name or "-", item.action.value)
        console.print(table)

    for skipped in result.skipped_items:
        console.print(f"  [yellow]-[/yellow] skipped {skipped.type.value} {skipped.id}: {skipped.reason}")
    for warning in result.warnings:
        console.print(f"  [yellow]![/yellow] {warning.message}")
    if result.backup_id:
        console.print(f"  [dim]Backup: {result.backup_id}[/dim]")


@click.command(name="import")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "fmt", type=click.Choice(FORMAT_CHOICES), help="Force a format (default: detect)")
@click.option(
    "--type", "data_type", type=click.Choice(DATA_TYPE_CHOICES), default="project", show_default=True,
    help="What the file holds",
)
@click.option(
    "--strategy", "-s", type=click.Choice(STRATEGY_CHOICES), default="merge", show_default=True,
    help="Conflict resolution strategy",
)
@click.option("--no-validate", is_flag=True, help="Import even if validation reports errors")
@click.option("--no-backup", is_flag=True, help="Skip the pre-import backup")
@click.option("--delimiter", default=",", show_default=True, help="CSV field delimiter")
def import_cmd(
    files: tuple[Path, ...],
    fmt: str | None,
    data_type: str,
    strategy: str,
    no_validate: bool,
    no_backup: bool,
    delimiter: str,
):
    """Import one or more files into the current project.

    Examples:
        codereel import demo.json
        codereel import snippets.csv --strategy overwrite
        codereel import bundle.zip -s interactive
    """
    options: dict[str, Any] = {
        "format": fmt,
        "data_type": data_type,
        "conflict_resolution": strategy,
        "validate_data": not no_validate,
        "create_backup": not no_backup,
    }

    async def run() -> list[ImportResult]:
        # Prompts and a live progress display do not mix
        with _progress_bar(enabled=strategy != "interactive") as progress:
            task_id = progress.add_task("Importing...", total=100)
            context = _open_context(on_import_progress=_tracker(progress, task_id))
            parsed = ImportOptions(**options)
            parsed.csv.delimiter = delimiter
            async with ProjectImportExportManager(context, interactive_handler=ask_strategy) as manager:
                results = []
                for path in files:
                    progress.reset(task_id)
                    results.append(await manager.import_project(path, parsed))
                return results

    results = asyncio.run(run())
    for path, result in zip(files, results):
        _print_import_result(path.name, result)

    failed = sum(1 for r in results if not r.success)
    if failed:
        console.print(f"\n[red]{failed} of {len(results)} import(s) failed[/red]")
        raise SystemExit(1)


@click.command(name="export")
@click.option("--format", "fmt", type=click.Choice(FORMAT_CHOICES), default="json", show_default=True)
@click.option(
    "--type", "data_type", type=click.Choice(DATA_TYPE_CHOICES), default="project", show_default=True,
    help="What to export",
)
@click.option("-o", "--output", type=click.Path(file_okay=False, path_type=Path), help="Output directory")
@click.option("--prefix", default=None, help="Filename prefix")
@click.option("--no-metadata", is_flag=True, help="Leave project metadata out")
@click.option("--no-compression", is_flag=True, help="Store ZIP members uncompressed")
@click.option("--snapshot", "snapshot_indices", type=int, multiple=True, help="Only export these snapshot indices")
@click.option("--include-themes", is_flag=True, help="Include themes")
@click.option("--include-presets", is_flag=True, help="Include presets")
@click.option("--include-settings", is_flag=True, help="Include export settings")
@click.option(
    "--exclude-field", "excluded", multiple=True,
    help="Drop a field, as section.field (metadata, document or snapshots)",
)
@click.option("--delimiter", default=",", show_default=True, help="CSV field delimiter")
def export_cmd(
    fmt: str,
    data_type: str,
    output: Path | None,
    prefix: str | None,
    no_metadata: bool,
    no_compression: bool,
    snapshot_indices: tuple[int, ...],
    include_themes: bool,
    include_presets: bool,
    include_settings: bool,
    excluded: tuple[str, ...],
    delimiter: str,
):
    """Export the current project to a file.

    Examples:
        codereel export --format csv
        codereel export --format zip --include-themes -o dist/
        codereel export --exclude-field snapshots.transitionTime
    """
    selection = FieldSelection()
    for entry in excluded:
        section, _, name = entry.partition(".")
        if section not in ("metadata", "document", "snapshots") or not name:
            raise click.BadParameter(f"Expected section.field, got '{entry}'", param_hint="--exclude-field")
        getattr(selection, section)[name] = False

    filters = None
    if snapshot_indices or include_themes or include_presets or include_settings:
        filters = ExportFilters(
            snapshot_indices=list(snapshot_indices) or None,
            include_themes=include_themes,
            include_presets=include_presets,
            include_settings=include_settings,
        )

    options = ExportOptions(
        format=fmt,
        data_type=data_type,
        include_metadata=not no_metadata,
        compression=not no_compression,
        filters=filters,
        field_selection=selection if excluded else None,
    )
    options.csv.delimiter = delimiter
    if prefix:
        options.filename_prefix = sanitize_filename(prefix)

    async def run():
        with _progress_bar() as progress:
            task_id = progress.add_task("Exporting...", total=100)
            context = _open_context(on_export_progress=_tracker(progress, task_id))
            async with ProjectImportExportManager(context) as manager:
                return await manager.export_project(options=options)

    try:
        result = asyncio.run(run())
    except CodereelError as e:
        console.print(f"[red]{e}[/red]")
        raise click.Abort() from e

    if not result.success:
        for error in result.errors:
            console.print(f"[red]{error.message}[/red]")
        raise SystemExit(1)

    if output is None:
        output = get_paths().exports_dir
    output.mkdir(parents=True, exist_ok=True)
    target = output / result.filename
    target.write_bytes(result.content)

    console.print(f"[green]Exported[/green] {target} [dim]({format_file_size(result.size)})[/dim]")
    for warning in result.warnings:
        console.print(f"  [yellow]![/yellow] {warning.message}")


@click.command(name="preview")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "fmt", type=click.Choice(FORMAT_CHOICES), help="Force a format (default: detect)")
@click.option("--type", "data_type", type=click.Choice(DATA_TYPE_CHOICES), default="project", show_default=True)
def preview_cmd(file: Path, fmt: str | None, data_type: str):
    """Show what importing a file would do, without changing anything."""
    context = _open_context()

    async def run():
        async with ProjectImportExportManager(context) as manager:
            return await manager.preview_import(
                FileSource.from_path(file),
                {"format": fmt, "data_type": data_type},
            )

    preview = asyncio.run(run())

    document = preview.preview.get("document") or {}
    metadata = preview.preview.get("metadata") or {}
    snapshots = document.get("snapshots") or []
    status = "[green]valid[/green]" if preview.valid else "[red]invalid[/red]"
    console.print(Panel(
        f"[bold]Status:[/bold] {status}\n"
        f"[bold]Project:[/bold] {metadata.get('name', '-')}\n"
        f"[bold]Language:[/bold] {document.get('language', '-')}\n"
        f"[bold]Snapshots:[/bold] {len(snapshots)}\n"
        f"[bold]Conflicts:[/bold] {len(preview.conflicts)}",
        title=f"Preview: {file.name}",
    ))

    for error in preview.errors:
        console.print(f"  [red]x[/red] {error.field}: {error.message}")
    for warning in preview.warnings:
        console.print(f"  [yellow]![/yellow] {warning.field}: {warning.message}")

    if preview.conflicts:
        table = Table(title="Conflicts", show_header=True, header_style="bold cyan")
        table.add_column("Type")
        table.add_column("ID")
        table.add_column("Kind")
        table.add_column("Fields")
        for conflict in preview.conflicts:
            table.add_row(
                conflict.type.value,
                conflict.id,
                conflict.conflict_type.value,
                ", ".join(d.field for d in conflict.differences),
            )
        console.print(table)


@click.command(name="history")
@click.option("--exports", "show_exports", is_flag=True, help="Show export history instead of imports")
@click.option("-n", "--limit", type=int, default=20, help="Maximum number of entries to show")
@click.option("--clear", is_flag=True, help="Clear the selected history")
def history_cmd(show_exports: bool, limit: int, clear: bool):
    """Show recent imports (or exports with --exports)."""
    kind = "export" if show_exports else "import"
    manager = ProjectImportExportManager(_open_context())

    if clear:
        manager.clear_history(kind)
        console.print(f"[green]Cleared {kind} history[/green]")
        return

    entries = manager.get_export_history() if show_exports else manager.get_import_history()
    if not entries:
        console.print(f"[dim]No {kind} history[/dim]")
        return

    table = Table(title=f"{kind.capitalize()} History", show_header=True, header_style="bold cyan")
    table.add_column("Date", style="green")
    table.add_column("File")
    table.add_column("Format")
    table.add_column("Type")
    table.add_column("Result")
    for entry in entries[:limit]:
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            entry.filename or "-",
            entry.format or "-",
            entry.data_type,
            "[green]ok[/green]" if entry.success else "[red]failed[/red]",
        )
    console.print(table)
