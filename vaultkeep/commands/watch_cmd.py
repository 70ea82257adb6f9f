"""Watch and history commands."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..audit_log import format_audit_entry, read_audit_log
from ..dispatcher import EventDispatcher
from ..events import VaultEvent, format_event
from ..watcher import run_watch_loop
from .common import open_vault


def run_watch(vault_path: Path, *, auto_collect: bool | None = None) -> int:
    """
    Keep the vault consistent while other programs edit it.

    This is a blocking command that runs until interrupted (Ctrl+C).
    Renames and deletes made outside vaultkeep run the same cascades as
    `mv` and `rm`.
    """
    console = Console(stderr=True)
    vault = open_vault(vault_path, auto_collect_attachments=auto_collect)
    dispatcher = EventDispatcher(vault)

    console.print(f"[bold]Watching[/bold] {vault_path}")
    console.print(f"  Attachment folder: {vault.settings.attachment_folder}")
    console.print(f"  Auto-collect: {'on' if vault.settings.auto_collect_attachments else 'off'}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    event_count = 0

    def on_event(event: VaultEvent) -> None:
        dispatcher.post(event)

    def on_tick() -> None:
        nonlocal event_count
        handled = dispatcher.drain()
        event_count += len(handled)
        timestamp = datetime.now().strftime("%H:%M:%S")
        for event in handled:
            console.print(f"[dim]{timestamp}[/dim] {format_event(event)}")

    run_watch_loop(vault_path, on_event=on_event, on_tick=on_tick)
    console.print()
    console.print(f"[bold]Stopped.[/bold] Handled {event_count} events.")
    return 0


def run_history(vault_path: Path, last_n: int | None = None) -> int:
    """Print audit log entries. Returns the number shown."""
    console = Console()

    entries = read_audit_log(vault_path, last_n=last_n)
    if not entries:
        console.print("[dim]No operations logged yet.[/dim]")
        return 0

    for entry in entries:
        console.print(format_audit_entry(entry), highlight=False)
        console.print()
    return len(entries)
