"""Collect, convert, reorganize and delete-empty-folders commands."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..bulk import (
    collect_attachments,
    convert_links_to_relative,
    convert_wikilinks_to_markdown,
    delete_empty_folders,
    reorganize,
)
from ..models import LinkRelation
from .common import audit, note_scope, open_vault, print_result


def _relation(embeds_only: bool, links_only: bool) -> LinkRelation | None:
    if embeds_only and not links_only:
        return LinkRelation.EMBED
    if links_only and not embeds_only:
        return LinkRelation.LINK
    return None


def run_collect(
    vault_path: Path,
    note: str | None = None,
    *,
    folder: bool = False,
    delete_existing: bool | None = None,
    content_addressed: bool | None = None,
) -> int:
    """
    Move attachments into their notes' attachment folders.

    With NOTE, only that note (or, with `folder`, every note under its
    folder); otherwise the whole vault.
    """
    console = Console(stderr=True)
    vault = open_vault(
        vault_path,
        delete_existing_on_collision=delete_existing,
        content_addressed=content_addressed,
    )
    notes = note_scope(vault, note, folder)

    result = collect_attachments(vault, notes)
    print_result(console, result)
    audit(vault, "collect", [result], scope=note or "vault")
    return 1 if result.errors else 0


def run_convert(
    vault_path: Path,
    target: str,
    note: str | None = None,
    *,
    embeds_only: bool = False,
    links_only: bool = False,
) -> int:
    """Rewrite links as relative paths (`relative`) or Markdown links (`markdown`)."""
    console = Console(stderr=True)
    vault = open_vault(vault_path)
    notes = note_scope(vault, note)
    relation = _relation(embeds_only, links_only)

    if target == "relative":
        result = convert_links_to_relative(vault, notes, relation)
    else:
        result = convert_wikilinks_to_markdown(vault, notes, relation)

    print_result(console, result)
    audit(vault, f"convert-{target}", [result], scope=note or "vault")
    return 1 if result.errors else 0


def run_reorganize(
    vault_path: Path,
    *,
    delete_existing: bool | None = None,
    content_addressed: bool | None = None,
) -> int:
    """Markdown links, relative paths, attachment collection, empty folders: in that order."""
    console = Console(stderr=True)
    vault = open_vault(
        vault_path,
        delete_existing_on_collision=delete_existing,
        content_addressed=content_addressed,
    )

    results = reorganize(vault)
    for result in results:
        print_result(console, result)

    # a cancelled run ends before the folder sweep
    pruned = results[-1] if results[-1].operation == "delete-empty-folders" else None
    stages = results[:-1] if pruned else results
    audit(vault, "reorganize", stages, removed=pruned.changed_paths if pruned else [])
    return 1 if any(r.errors for r in results) else 0


def run_delete_empty_folders(vault_path: Path) -> int:
    console = Console(stderr=True)
    vault = open_vault(vault_path)

    removed = delete_empty_folders(vault)
    for folder in removed:
        console.print(f"  [dim]-[/dim] {folder}")
    console.print(f"Deleted {len(removed)} empty folders", style="green")
    audit(vault, "delete-empty-folders", [], removed=removed)
    return 0
