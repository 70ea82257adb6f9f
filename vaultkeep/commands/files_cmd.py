"""mv / rm commands - file operations that run the full cascade."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..audit_log import ChangeSummary, RemovalSummary, log_operation
from .common import open_vault, vault_relative


def run_move(vault_path: Path, old: str, new: str) -> int:
    """Rename a document, carrying its attachments and fixing every link."""
    console = Console(stderr=True)
    vault = open_vault(vault_path)
    old_path = vault_relative(vault, old)
    new_path = vault_relative(vault, new)

    ctx = vault.rename(old_path, new_path)
    if ctx is None:
        console.print(f"{old_path} is ignored; nothing moved", style="yellow")
        return 0

    for src, dest in ctx.applied.items():
        console.print(f"  {src} [dim]->[/dim] {dest}")
    for error in ctx.errors:
        console.print(error, style="red")

    log_operation(
        vault.path,
        "mv",
        changed=ChangeSummary(files=len(ctx.applied), paths=[f"{a} -> {b}" for a, b in ctx.applied.items()]),
        metadata={"errors": len(ctx.errors)} if ctx.errors else {},
    )
    return 1 if ctx.errors else 0


def run_remove(vault_path: Path, path: str) -> int:
    """Delete a document and the attachments only it referenced."""
    console = Console(stderr=True)
    vault = open_vault(vault_path)
    rel = vault_relative(vault, path)

    orphans = vault.delete(rel)
    console.print(f"Deleted {rel}", style="green")
    for orphan in orphans:
        console.print(f"  [dim]-[/dim] {orphan}")

    log_operation(
        vault.path,
        "rm",
        removed=RemovalSummary(files=1 + len(orphans), paths=[rel, *orphans]),
    )
    return 0
