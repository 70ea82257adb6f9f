"""
Vault change notifications.

This module provides:
- VaultEvent, a vault-relative file event
- Event kinds for created, modified, deleted and renamed files
- One-line formatting for the watch command
"""

from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    """Types of file system events."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class VaultEvent:
    """A change to one file, with vault-relative paths."""

    kind: EventKind
    path: str
    rename_from: str | None = None  # Original path for renames

    @property
    def key(self) -> tuple[str, str, str | None]:
        return (self.kind.value, self.path, self.rename_from)


def format_event(event: VaultEvent) -> str:
    """Format an event for human-readable display."""
    icon = {
        EventKind.CREATED: "[green]+[/green]",
        EventKind.MODIFIED: "[yellow]~[/yellow]",
        EventKind.DELETED: "[red]-[/red]",
        EventKind.RENAMED: "[blue]>[/blue]",
    }.get(event.kind, "?")

    if event.kind == EventKind.RENAMED and event.rename_from:
        return f"{icon} {event.rename_from} -> {event.path}"
    return f"{icon} {event.path}"
