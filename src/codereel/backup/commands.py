"""
Backup management CLI commands.

Provides commands for listing, creating, restoring and cleaning project
backups kept in the workspace store.
"""

from __future__ import annotations

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from codereel.backup.manager import BackupItem, BackupManager
from codereel.core.errors import BackupError
from codereel.formats.files import format_file_size
from codereel.project.models import BackupReason
from codereel.transfer.workspace import TransferContext, open_workspace_context

console = Console()


def _open_context() -> TransferContext:
    try:
        return open_workspace_context()
    except FileNotFoundError:
        console.print("[red]Error: Not in a codereel workspace.[/red]")
        console.print("[dim]Run 'codereel init' to initialize, or run from a directory with .codereel/[/dim]")
        raise click.Abort() from None


def _manager(context: TransferContext) -> BackupManager:
    return BackupManager(
        context.store,
        current_project=lambda: context.workspace.current,
        settings=context.settings,
    )


def _format_age(days: float) -> str:
    """Format age in human-readable form."""
    if days < 1:
        hours = days * 24
        if hours < 1:
            return f"{int(hours * 60)}m ago"
        return f"{int(hours)}h ago"
    elif days < 7:
        return f"{int(days)}d ago"
    elif days < 30:
        return f"{int(days / 7)}w ago"
    else:
        return f"{int(days / 30)}mo ago"


def _describe(backup: BackupItem) -> str:
    return (
        f"[bold]ID:[/bold] {backup.id}\n"
        f"[bold]Reason:[/bold] {backup.reason.value}\n"
        f"[bold]Created:[/bold] {backup.timestamp.strftime('%Y-%m-%d %H:%M:%S')} "
        f"({_format_age(backup.age_days)})\n"
        f"[bold]Size:[/bold] {format_file_size(backup.size)}\n"
        f"[bold]Notes:[/bold] {backup.notes or '-'}"
    )


@click.group()
def backup():
    """Manage project backups.

    Backups are created automatically before imports and can be created
    manually at any time. Manual backups are never removed for age.
    """
    pass


@backup.command(name="list")
@click.option("-n", "--limit", type=int, default=10, help="Maximum number of backups to show")
@click.option("--all", "show_all", is_flag=True, help="Show all backups (no limit)")
def list_cmd(limit: int, show_all: bool):
    """List available backups, newest first."""
    backups = _manager(_open_context()).list_backups()

    if not backups:
        console.print("[dim]No backups found[/dim]")
        return

    display = backups if show_all else backups[:limit]
    hidden = len(backups) - len(display)

    table = Table(
        title=f"[bold]Backups[/bold] ({len(backups)})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("ID")
    table.add_column("Date", style="green")
    table.add_column("Age", style="yellow", justify="right")
    table.add_column("Reason")
    table.add_column("Size", style="blue", justify="right")

    for i, item in enumerate(display):
        table.add_row(
            str(i),
            item.id,
            item.timestamp.strftime("%Y-%m-%d %H:%M"),
            _format_age(item.age_days),
            item.reason.value,
            format_file_size(item.size),
        )

    console.print(table)
    if hidden > 0:
        console.print(f"  [dim]... and {hidden} older backups (use --all to see all)[/dim]")


@backup.command(name="status")
def status_cmd():
    """Show backup statistics and the retention policy."""
    context = _open_context()
    stats = _manager(context).get_backup_stats()
    settings = context.settings

    table = Table(title="Backup Status", show_header=True, header_style="bold cyan")
    table.add_column("Reason")
    table.add_column("Count", justify="right")
    for reason, count in stats["backupsByReason"].items():
        table.add_row(reason, str(count) if count else "[dim]0[/dim]")
    console.print(table)

    newest = stats["newestBackup"]
    oldest = stats["oldestBackup"]
    console.print()
    console.print(Panel(
        f"[bold]Total:[/bold] {stats['totalBackups']} backups, {format_file_size(stats['totalSize'])}\n"
        f"[bold]Newest:[/bold] {newest.strftime('%Y-%m-%d %H:%M') if newest else '-'}\n"
        f"[bold]Oldest:[/bold] {oldest.strftime('%Y-%m-%d %H:%M') if oldest else '-'}\n\n"
        f"[bold]Retention Policy[/bold]\n"
        f"Keep at most: [cyan]{settings.max_backup_count}[/cyan] backups\n"
        f"Delete non-manual backups older than: [cyan]{settings.backup_retention_days}[/cyan] days\n\n"
        f"[dim]Use 'codereel config set backup.retention_days N' to change retention.[/dim]",
        title="Settings",
    ))


@backup.command(name="create")
def create_cmd():
    """Create a manual backup of the current project."""
    manager = _manager(_open_context())
    try:
        item = manager.create_backup(BackupReason.MANUAL)
    except BackupError as e:
        console.print(f"[red]{e}[/red]")
        raise click.Abort() from e
    console.print(f"[green]Created backup {item.id}[/green] [dim]({format_file_size(item.size)})[/dim]")


@backup.command(name="restore")
@click.argument("backup_id")
@click.option("--dry-run", "-n", is_flag=True, help="Preview without making changes")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def restore_cmd(backup_id: str, dry_run: bool, force: bool):
    """Make a backup the current project.

    The current project is backed up first (reason: before_update).

    Examples:
        codereel backup restore backup-1700000000000-abc123def
        codereel backup restore backup-1700000000000-abc123def -n
    """
    context = _open_context()
    manager = _manager(context)

    item = manager.get_backup(backup_id)
    if item is None:
        console.print(f"[red]Backup not found: {backup_id}[/red]")
        raise click.Abort()

    console.print(Panel(_describe(item), title="Restore Preview"))

    if dry_run:
        console.print("\n[yellow]DRY RUN - no changes made[/yellow]")
        return

    if not force and not click.confirm("Proceed with restore?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    try:
        project = manager.restore(backup_id)
        if context.workspace.current is not None:
            manager.create_backup(BackupReason.BEFORE_UPDATE)
        context.workspace.replace(project)
    except BackupError as e:
        console.print(f"[red]{e}[/red]")
        raise click.Abort() from e

    console.print(f"\n[green]Restored project '{project.metadata.name}' from {backup_id}[/green]")


@backup.command(name="delete")
@click.argument("backup_id", required=False)
@click.option("--all", "delete_all", is_flag=True, help="Delete every backup")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def delete_cmd(backup_id: str | None, delete_all: bool, force: bool):
    """Delete one backup, or all of them with --all."""
    if not backup_id and not delete_all:
        console.print("[red]Specify a backup ID or use --all[/red]")
        return

    manager = _manager(_open_context())
    prompt = "Delete ALL backups?" if delete_all else f"Delete backup {backup_id}?"
    if not force and not click.confirm(prompt):
        console.print("[yellow]Cancelled[/yellow]")
        return

    try:
        if delete_all:
            manager.delete_all_backups()
        else:
            manager.delete_backup(backup_id)
    except BackupError as e:
        console.print(f"[red]{e}[/red]")
        raise click.Abort() from e

    console.print("[green]Deleted all backups[/green]" if delete_all else f"[green]Deleted {backup_id}[/green]")


@backup.command(name="clean")
@click.option("--dry-run", "-n", is_flag=True, help="Preview what would be deleted")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def clean_cmd(dry_run: bool, force: bool):
    """Apply the retention policy now.

    Examples:
        codereel backup clean        # Delete expired backups
        codereel backup clean -n     # Preview what would be deleted
    """
    manager = _manager(_open_context())
    backups = manager.list_backups()
    kept = {b.id for b in manager.apply_cleanup_rules(backups)}
    to_delete = [b for b in backups if b.id not in kept]

    if not to_delete:
        console.print("[green]No old backups to clean up.[/green]")
        return

    console.print(f"[bold]Found {len(to_delete)} backup(s) to delete:[/bold]")
    for item in to_delete[:10]:
        console.print(
            f"  [red]x[/red] {item.id} "
            f"[dim]({item.reason.value}, {_format_age(item.age_days)}, {format_file_size(item.size)})[/dim]"
        )
    if len(to_delete) > 10:
        console.print(f"  [dim]... and {len(to_delete) - 10} more[/dim]")

    if dry_run:
        console.print("\n[yellow]DRY RUN - no backups deleted[/yellow]")
        return

    if not force and not click.confirm("\nProceed with deletion?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    removed = manager.cleanup_old_backups()
    console.print(f"\n[green]Deleted {len(removed)} backup(s)[/green]")
