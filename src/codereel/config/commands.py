"""
Configuration management CLI commands.

Manages codereel settings stored in .codereel/config.yaml.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from codereel.core.config import (
    SETTINGS_KEYS,
    Settings,
    assign_dotted,
    get_paths,
    load_config,
    lookup_dotted,
    save_config,
)
from codereel.core.fields import FieldDef, FieldType, coerce_value

console = Console()

_DEFAULTS = Settings()


def get_config_path() -> Path:
    """Get path to config file."""
    try:
        return get_paths().config_file
    except FileNotFoundError:
        console.print("[red]Error: Not in a codereel workspace.[/red]")
        console.print("[dim]Run 'codereel init' to initialize, or run from a directory with .codereel/[/dim]")
        raise click.Abort() from None


def default_for(key: str) -> Any:
    attr, _kind, _description = SETTINGS_KEYS[key]
    return getattr(_DEFAULTS, attr)


def convert_value(key: str, value: str) -> int | bool | str:
    """Convert a command-line string to the setting's type.

    Raises:
        ValueError: If the value does not parse as the setting's type
    """
    kind = SETTINGS_KEYS[key][1]
    if kind is bool:
        field_type = FieldType.BOOL
    elif kind is int:
        field_type = FieldType.INT
    else:
        field_type = FieldType.STRING

    typed = coerce_value(value.strip(), FieldDef(field_type, key))
    if kind is int and typed < 0:
        raise ValueError(value)
    return typed


def _unknown(key: str) -> None:
    console.print(f"[red]Unknown setting: {key}[/red]")
    console.print("\nAvailable settings:")
    for k in SETTINGS_KEYS:
        console.print(f"  - {k}")


@click.group()
def config():
    """Manage codereel configuration.

    Settings are stored in .codereel/config.yaml.
    """
    pass


@config.command(name="show")
@click.option("--all", "show_all", is_flag=True, help="Show all settings including defaults")
def show_cmd(show_all: bool):
    """Show current configuration.

    Without --all, only shows settings that differ from defaults.
    """
    config_path = get_config_path()
    data = load_config(config_path)

    if not data and not show_all:
        console.print("[dim]No custom configuration set. Using defaults.[/dim]")
        console.print(f"[dim]Config file: {config_path}[/dim]")
        console.print("\n[dim]Use 'codereel config show --all' to see all settings.[/dim]")
        return

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value", style="green")
    table.add_column("Default", style="dim")
    table.add_column("Description", style="dim")

    for key, (_attr, _kind, description) in SETTINGS_KEYS.items():
        current = lookup_dotted(data, key)
        default = default_for(key)
        is_custom = current is not None and current != default

        if show_all or is_custom:
            display_value = str(current) if current is not None else f"[dim]{default}[/dim]"
            table.add_row(key, display_value, str(default), description)

    console.print(table)
    console.print(f"\n[dim]Config file: {config_path}[/dim]")


@config.command(name="get")
@click.argument("key")
def get_cmd(key: str):
    """Get a configuration value.

    Examples:
        codereel config get backup.max_count
        codereel config get history.limit
    """
    if key not in SETTINGS_KEYS:
        _unknown(key)
        return

    value = lookup_dotted(load_config(get_config_path()), key)
    if value is None:
        console.print(f"{key} = {default_for(key)} [dim](default)[/dim]")
    else:
        console.print(f"{key} = {value}")


@config.command(name="set")
@click.argument("key")
@click.argument("value")
def set_cmd(key: str, value: str):
    """Set a configuration value.

    Examples:
        codereel config set backup.retention_days 14
        codereel config set backup.compress false
    """
    if key not in SETTINGS_KEYS:
        _unknown(key)
        return

    try:
        typed_value = convert_value(key, value)
    except ValueError:
        expected = SETTINGS_KEYS[key][1].__name__
        console.print(f"[red]Invalid value type. Expected {expected}[/red]")
        return

    config_path = get_config_path()
    data = load_config(config_path)
    assign_dotted(data, key, typed_value)
    save_config(data, config_path)
    console.print(f"[green]Set {key} = {typed_value}[/green]")


@config.command(name="reset")
@click.argument("key", required=False)
@click.option("--all", "reset_all", is_flag=True, help="Reset all settings to defaults")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def reset_cmd(key: str | None, reset_all: bool, force: bool):
    """Reset configuration to defaults.

    Examples:
        codereel config reset history.limit   # Reset single setting
        codereel config reset --all           # Reset all settings
    """
    if not key and not reset_all:
        console.print("[red]Specify a key or use --all to reset all settings[/red]")
        return

    config_path = get_config_path()

    if reset_all:
        if not force and not click.confirm("Reset all settings to defaults?"):
            console.print("[yellow]Cancelled[/yellow]")
            return
        if config_path.exists():
            config_path.unlink()
        console.print("[green]All settings reset to defaults[/green]")
        return

    if key not in SETTINGS_KEYS:
        console.print(f"[red]Unknown setting: {key}[/red]")
        return

    data = load_config(config_path)
    *parents, leaf = key.split(".")
    current: Any = data
    for part in parents:
        current = current.get(part) if isinstance(current, dict) else None
    if not isinstance(current, dict) or leaf not in current:
        console.print(f"[dim]{key} is already at default[/dim]")
        return

    del current[leaf]
    save_config(data, config_path)
    console.print(f"[green]Reset {key} to default ({default_for(key)})[/green]")


@config.command(name="path")
def path_cmd():
    """Show path to config file."""
    console.print(str(get_config_path()))
