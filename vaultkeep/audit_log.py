"""
Audit log of state-changing vault operations.

This module provides:
- One JSON Lines entry per operation in .vaultkeep/audit.log
- Counts of files removed and files written or moved
- A plain-text rendering for the `history` command
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import CONFIG_DIR

AUDIT_LOG_FILE = "audit.log"


@dataclass
class RemovalSummary:
    """What an operation removed from the vault."""
    files: int = 0
    folders: int = 0
    paths: list[str] = field(default_factory=list)


@dataclass
class ChangeSummary:
    """What an operation wrote, moved or rewrote."""
    files: int = 0
    links: int = 0
    paths: list[str] = field(default_factory=list)


@dataclass
class AuditEntry:
    """A single audit log entry."""
    timestamp: str
    operation: str
    removed: RemovalSummary
    changed: ChangeSummary
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "removed": asdict(self.removed),
            "changed": asdict(self.changed),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            removed=RemovalSummary(**data.get("removed", {})),
            changed=ChangeSummary(**data.get("changed", {})),
            metadata=data.get("metadata", {}),
        )


def get_audit_log_path(vault_path: Path) -> Path:
    return vault_path / CONFIG_DIR / AUDIT_LOG_FILE


def log_operation(
    vault_path: Path,
    operation: str,
    removed: RemovalSummary | None = None,
    changed: ChangeSummary | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    """
    Append an operation to the audit log.

    Args:
        vault_path: Vault root
        operation: Name of the operation (e.g. "collect", "mv")
        removed: Files and folders the operation deleted
        changed: Files the operation wrote or moved
        metadata: Additional context (arguments, error count)

    Returns:
        The appended entry
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        removed=removed or RemovalSummary(),
        changed=changed or ChangeSummary(),
        metadata=metadata or {},
    )

    log_path = get_audit_log_path(vault_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict()) + "\n")

    return entry


def read_audit_log(vault_path: Path, last_n: int | None = None) -> list[AuditEntry]:
    """Entries oldest first; with `last_n`, only the newest N."""
    log_path = get_audit_log_path(vault_path)
    if not log_path.exists():
        return []

    entries = []
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(AuditEntry.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, TypeError):
                    continue  # Skip malformed lines

    if last_n is not None:
        return entries[-last_n:]
    return entries


def format_audit_entry(entry: AuditEntry) -> str:
    """Format an audit entry for human-readable display."""
    lines = [f"[{entry.timestamp}] {entry.operation}"]

    if entry.removed.files or entry.removed.folders:
        parts = []
        if entry.removed.files:
            parts.append(f"{entry.removed.files} files")
        if entry.removed.folders:
            parts.append(f"{entry.removed.folders} folders")
        lines.append(f"  Removed: {', '.join(parts)}")

    if entry.changed.files or entry.changed.links:
        parts = []
        if entry.changed.files:
            parts.append(f"{entry.changed.files} files")
        if entry.changed.links:
            parts.append(f"{entry.changed.links} links")
        lines.append(f"  Changed: {', '.join(parts)}")

    for key, value in entry.metadata.items():
        lines.append(f"  {key}: {value}")

    return "\n".join(lines)
