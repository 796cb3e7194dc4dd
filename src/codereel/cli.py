"""
Main CLI dispatcher for codereel.

Usage:
    codereel init                        # Initialize .codereel/ directory
    codereel import FILE...
    codereel export [--format json|csv|xml|zip]
    codereel preview FILE
    codereel backup [list|status|create|restore|delete|clean]
    codereel config [show|get|set|reset|path]
"""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from codereel import __version__

console = Console()


class Context:
    """Shared context for all commands."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.console = console


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.version_option(version=__version__, prog_name="codereel")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Import, export and back up animated code projects.

    Projects live in a .codereel/ workspace; files move in and out as
    JSON, CSV, XML or ZIP.
    """
    ctx.obj = Context(verbose=verbose)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@main.command()
@click.option("--force", "-f", is_flag=True, help="Reinitialize an existing .codereel/ directory")
@pass_context
def init(ctx: Context, force: bool) -> None:
    """Initialize .codereel/ directory structure.

    Creates the .codereel/ directory in the current directory, with the
    store that holds the current project, backups and history.
    """
    from codereel.core.config import WORKSPACE_DIR, get_workspace_root

    root = Path.cwd()
    data_dir = root / WORKSPACE_DIR

    if data_dir.exists() and not force:
        console.print(f"[yellow]{WORKSPACE_DIR}/ directory already exists at {data_dir}[/yellow]")
        console.print("[dim]Use --force to reinitialize.[/dim]")
        return

    console.print(f"[cyan]Initializing {WORKSPACE_DIR}/ directory at {root}[/cyan]")

    for dir_path in (data_dir, data_dir / "store"):
        dir_path.mkdir(parents=True, exist_ok=True)
        console.print(f"  [green]Created[/green] {dir_path.relative_to(root)}")

    get_workspace_root.cache_clear()

    console.print()
    console.print(f"[green]Done![/green] {WORKSPACE_DIR}/ directory initialized.")


# Import and register commands (imports after main definition intentional)
from codereel.backup.commands import backup  # noqa: E402
from codereel.config.commands import config  # noqa: E402
from codereel.transfer.commands import (  # noqa: E402
    export_cmd,
    history_cmd,
    import_cmd,
    preview_cmd,
)

main.add_command(import_cmd)
main.add_command(export_cmd)
main.add_command(preview_cmd)
main.add_command(history_cmd)
main.add_command(backup)
main.add_command(config)


if __name__ == "__main__":
    main()
