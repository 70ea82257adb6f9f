"""Helpers shared by the command modules."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.console import Console

from .. import paths
from ..audit_log import ChangeSummary, RemovalSummary, log_operation
from ..bulk import BulkResult
from ..config import load_settings
from ..errors import VaultkeepError
from ..vault.loader import Vault, load_vault


def open_vault(vault_path: Path, **overrides: Any) -> Vault:
    """Load settings, apply command-line overrides (None = keep), index the vault."""
    settings = load_settings(vault_path).with_overrides(**overrides)
    return load_vault(vault_path, settings)


def vault_relative(vault: Vault, path: str) -> str:
    """Accept a vault-relative path or a filesystem path inside the vault."""
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        try:
            path = candidate.resolve().relative_to(vault.path.resolve()).as_posix()
        except ValueError:
            raise VaultkeepError(f"{path} is not inside the vault {vault.path}") from None
    return paths.normalize(path)


def note_scope(vault: Vault, note: str | None, folder: bool = False) -> list[str] | None:
    """Notes to process: one note, every note under its folder, or None for all."""
    if note is None:
        return None
    note = vault_relative(vault, note)
    if not vault.tree.is_file(note):
        raise VaultkeepError(f"No such note: {note}")
    if not folder:
        return [note]
    parent = paths.parent(note)
    return [n for n in vault.markdown_notes() if paths.is_under(n, parent)]


def print_result(console: Console, result: BulkResult) -> None:
    style = "yellow" if result.errors or result.cancelled else "green"
    console.print(result.summary(), style=style)


def audit(vault: Vault, operation: str, results: list[BulkResult], removed: list[str] | None = None, **metadata: Any) -> None:
    changed = ChangeSummary()
    for result in results:
        changed.files += len(result.changed_paths)
        changed.links += result.items
        changed.paths.extend(result.changed_paths)
    errors = sum(r.errors for r in results)
    if errors:
        metadata["errors"] = errors
    log_operation(
        vault.path,
        operation,
        removed=RemovalSummary(folders=len(removed or []), paths=list(removed or [])),
        changed=changed,
        metadata=metadata,
    )
