"""Whole-vault operations, one note at a time in path order.

Each operation polls `should_cancel` between notes. A note's edits are
computed first and written in one batch, so cancelling never leaves a note
half-rewritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .checker import ConsistencyReport, check_note
from .context import CascadeContext
from .errors import VaultkeepError
from .models import LinkOccurrence, LinkRelation
from .pruning import delete_empty_folders as _delete_empty_folders
from .rewriter import apply_patches, patches_for
from .vault.loader import Vault

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


@dataclass
class BulkResult:
    """Aggregate outcome: notes processed, notes changed, items changed."""

    operation: str
    processed: int = 0
    changed: int = 0
    items: int = 0
    errors: int = 0
    cancelled: bool = False
    changed_paths: list[str] = field(default_factory=list)

    def summary(self) -> str:
        text = f"{self.operation}: {self.items} changed in {self.changed} of {self.processed} notes"
        if self.errors:
            text += f", {self.errors} errors"
        if self.cancelled:
            text += " (cancelled)"
        return text


def _note_list(vault: Vault, notes: Iterable[str] | None) -> list[str]:
    if notes is None:
        return vault.markdown_notes()
    return sorted(n for n in notes if not vault.settings.is_path_ignored(n))


def _run(
    vault: Vault,
    operation: str,
    notes: Iterable[str] | None,
    per_note: Callable[[str], int],
    should_cancel: CancelCheck | None,
) -> BulkResult:
    result = BulkResult(operation)
    for note in _note_list(vault, notes):
        if should_cancel is not None and should_cancel():
            result.cancelled = True
            break
        try:
            count = per_note(note)
        except (VaultkeepError, OSError) as e:
            logger.error("%s failed for %s: %s", operation, note, e)
            result.errors += 1
            count = 0
        result.processed += 1
        if count:
            result.changed += 1
            result.items += count
            result.changed_paths.append(note)
    logger.info("%s", result.summary())
    return result


def _rewrite_note(
    vault: Vault,
    note: str,
    transform: Callable[[LinkOccurrence], str | None],
    relation: LinkRelation | None,
) -> int:
    if not vault.tree.is_file(note):
        return 0
    occurrences = [o for o in vault.index.links_of(note) if relation is None or o.relation is relation]
    patches = patches_for(occurrences, transform)
    if not patches:
        return 0
    text = vault.tree.read_text(note)
    vault.tree.write_text(note, apply_patches(text, patches))
    return len(patches)


def convert_links_to_relative(
    vault: Vault,
    notes: Iterable[str] | None = None,
    relation: LinkRelation | None = None,
    should_cancel: CancelCheck | None = None,
    session: CascadeContext | None = None,
) -> BulkResult:
    """Rewrite resolved link paths relative to each note's folder."""

    def per_note(note: str) -> int:
        files = vault.tree.file_set()
        return _rewrite_note(vault, note, lambda o: vault.rewriter.to_relative(o, note, files, session), relation)

    return _run(vault, "convert-relative", notes, per_note, should_cancel)


def convert_wikilinks_to_markdown(
    vault: Vault,
    notes: Iterable[str] | None = None,
    relation: LinkRelation | None = None,
    should_cancel: CancelCheck | None = None,
    session: CascadeContext | None = None,
) -> BulkResult:
    """Rewrite resolved wikilinks (and wiki embeds) as Markdown links."""

    def per_note(note: str) -> int:
        files = vault.tree.file_set()
        return _rewrite_note(vault, note, lambda o: vault.rewriter.to_markdown(o, note, files, session), relation)

    return _run(vault, "convert-markdown", notes, per_note, should_cancel)


def collect_attachments(
    vault: Vault,
    notes: Iterable[str] | None = None,
    should_cancel: CancelCheck | None = None,
    session: CascadeContext | None = None,
) -> BulkResult:
    """Move every attachment into its note's attachment folder.

    Items counted are attachments moved, copied or redirected.
    """
    session = session if session is not None else CascadeContext()

    def per_note(note: str) -> int:
        return len(vault.collector.collect_for_note(note, session).moved)

    return _run(vault, "collect", notes, per_note, should_cancel)


def check_consistency(
    vault: Vault,
    should_cancel: CancelCheck | None = None,
    report_path: str | None = None,
) -> tuple[ConsistencyReport, BulkResult]:
    """Scan every note and write the report, overwriting any previous one."""
    report_path = report_path or vault.settings.consistency_report_file
    report = ConsistencyReport()

    def per_note(note: str) -> int:
        before = report.total
        check_note(report, vault.index, note)
        return report.total - before

    notes = [n for n in vault.markdown_notes() if n != report_path]
    result = _run(vault, "check", notes, per_note, should_cancel)
    if not result.cancelled:
        vault.tree.write_text(report_path, report.render())
    return report, result


def delete_empty_folders(vault: Vault, folder: str = "") -> list[str]:
    return _delete_empty_folders(vault.tree, folder, vault.settings.is_path_ignored)


def reorganize(
    vault: Vault,
    notes: Iterable[str] | None = None,
    should_cancel: CancelCheck | None = None,
) -> list[BulkResult]:
    """Normalize links, make them relative, collect attachments, prune folders.

    Stages run in that fixed order; a cancelled stage stops the rest. All
    stages share one rename map.
    """
    notes = list(notes) if notes is not None else None
    session = CascadeContext()
    stages: list[Callable[[], BulkResult]] = [
        lambda: convert_wikilinks_to_markdown(vault, notes, LinkRelation.LINK, should_cancel, session),
        lambda: convert_wikilinks_to_markdown(vault, notes, LinkRelation.EMBED, should_cancel, session),
        lambda: convert_links_to_relative(vault, notes, LinkRelation.EMBED, should_cancel, session),
        lambda: convert_links_to_relative(vault, notes, LinkRelation.LINK, should_cancel, session),
        lambda: collect_attachments(vault, notes, should_cancel, session),
    ]
    results: list[BulkResult] = []
    for stage in stages:
        result = stage()
        results.append(result)
        if result.cancelled:
            return results

    pruned = BulkResult("delete-empty-folders")
    if vault.settings.delete_empty_folders:
        removed = delete_empty_folders(vault)
        pruned.items = len(removed)
        pruned.changed_paths = removed
    results.append(pruned)
    return results
