"""
Interactive conflict prompts.

Shows one conflict as a field-by-field table and asks which strategy should
resolve it. Used as the ``interactive_handler`` of the import command.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from codereel.conflicts.models import ConflictItem, ConflictResolutionStrategy

console = Console()

# Strategies offered for a single conflict, in menu order
CHOICES = [
    ConflictResolutionStrategy.OVERWRITE,
    ConflictResolutionStrategy.MERGE,
    ConflictResolutionStrategy.SKIP,
    ConflictResolutionStrategy.CREATE_NEW,
]

MAX_CELL = 40


def preview_value(value: Any, limit: int = MAX_CELL) -> str:
    """Short single-line rendering of a field value."""
    if value is None:
        return "-"
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    text = " ".join(text.split())
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def conflict_table(conflict: ConflictItem) -> Table:
    table = Table(title=f"{conflict.type.value} {conflict.id} ({conflict.conflict_type.value})")
    table.add_column("Field", style="cyan")
    table.add_column("Existing")
    table.add_column("Incoming", style="green")
    for diff in conflict.differences:
        table.add_row(diff.field, preview_value(diff.existing_value), preview_value(diff.incoming_value))
    return table


def ask_strategy(conflict: ConflictItem) -> ConflictResolutionStrategy:
    """Let the user pick how to resolve one conflict.

    Entering 'q' keeps what is already there (SKIP).
    """
    if conflict.differences:
        console.print(conflict_table(conflict))
    else:
        console.print(f"\n[yellow]Conflict[/yellow] on {conflict.type.value} [bold]{conflict.id}[/bold]")

    for i, strategy in enumerate(CHOICES, 1):
        console.print(f"  {i}. {strategy.value}")
    console.print("  q. Keep existing")

    valid = [str(i) for i in range(1, len(CHOICES) + 1)]
    while True:
        choice = Prompt.ask("Resolve with", default="2", console=console).strip().lower()
        if choice == "q":
            return ConflictResolutionStrategy.SKIP
        if choice in valid:
            return CHOICES[int(choice) - 1]
        by_name = [s for s in CHOICES if s.value == choice]
        if by_name:
            return by_name[0]
        console.print(f"[red]Enter 1-{len(CHOICES)}, a strategy name, or 'q'[/red]")
