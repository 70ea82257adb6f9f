"""Rename and delete cascades.

A rename of one document becomes a rename map (the document plus, for a
note, everything in its attachment folder). The executor then walks the map
in order: rewrite every backlink, fix canvases and the note's own links,
move the file, prune the folder it left behind.
"""

from __future__ import annotations

import logging
from typing import Iterable

from . import paths
from .config import Settings
from .context import CascadeContext
from .errors import ContainerParseError, VaultkeepError
from .models import DocumentKind, LinkOccurrence
from .pruning import prune_empty_hierarchy
from .rewriter import LinkRewriter, TextPatch, apply_patches, patches_for
from .vault.attachment_folder import AttachmentFolderPolicy
from .vault.index import LinkIndex
from .vault.parser import parse_canvas, serialize_canvas
from .vault.tree import FileSet, FileTree

logger = logging.getLogger(__name__)


def rewrite_canvas(tree: FileTree, path: str, ctx: CascadeContext, only: set[str] | None = None) -> bool:
    """Point canvas file nodes at their final paths. Other fields are untouched.

    With `only`, just nodes referencing those paths are rewritten.
    """
    data = parse_canvas(tree.read_text(path), path)
    changed = False
    for node in data.get("nodes", []):
        if not isinstance(node, dict) or node.get("type") != "file":
            continue
        ref = node.get("file")
        if not isinstance(ref, str) or (only is not None and ref not in only):
            continue
        final = ctx.final_path(ref)
        if final != ref:
            node["file"] = final
            changed = True
    if changed:
        tree.write_text(path, serialize_canvas(data))
    return changed


class RenameDeleteHandler:
    """Builds and executes cascades for renamed and deleted documents."""

    def __init__(
        self,
        tree: FileTree,
        index: LinkIndex,
        policy: AttachmentFolderPolicy,
        rewriter: LinkRewriter,
        settings: Settings,
    ):
        self.tree = tree
        self.index = index
        self.policy = policy
        self.rewriter = rewriter
        self.settings = settings
        self.context: CascadeContext | None = None

    # -- entry points ----------------------------------------------------

    def handle_rename(self, old_path: str, new_path: str) -> CascadeContext | None:
        """Run the cascade for one rename.

        Works both for a file still at `old_path` (the engine moves it) and
        for one already at `new_path` (the move was observed). A rename that
        arrives while a cascade runs is folded into that cascade.
        """
        if self.context is not None and self.context.active:
            if self.context.final_path(old_path) != new_path:
                self.context.add(old_path, new_path)
            return None

        if self.settings.is_path_ignored(old_path) and self.settings.is_path_ignored(new_path):
            return None

        ctx = CascadeContext(in_progress=True)
        self.context = ctx
        try:
            self.build_rename_map(ctx, old_path, new_path)
            self.execute(ctx)
        finally:
            ctx.in_progress = False
            self.context = None
        return ctx

    def handle_delete(self, path: str, snapshot: Iterable[LinkOccurrence]) -> list[str]:
        """Remove what a deleted note leaves orphaned.

        Attachments the note linked to are deleted when nothing else links to
        them. The note's private attachment folder is swept the same way, then
        pruned. Files still referenced by a surviving document always stay.
        """
        if (
            not self.settings.delete_attachments_with_note
            or not DocumentKind.for_path(path).is_note
            or self.settings.is_path_ignored(path)
        ):
            return []

        removed: list[str] = []
        for occ in snapshot:
            target = occ.target
            if not target or target == path or DocumentKind.for_path(target).is_note:
                continue
            if self.tree.is_file(target) and not self.index.is_referenced(target, {path}):
                removed.append(self._delete_attachment(target))

        folder = self.policy.folder_for(path)
        if self.policy.is_private and folder and self.tree.is_folder(folder):
            for child in list(self.tree.iter_files(folder)):
                if DocumentKind.for_path(child).is_note or self.index.is_referenced(child, {path}):
                    continue
                removed.append(self._delete_attachment(child))
            prune_empty_hierarchy(self.tree, folder)

        return removed

    def _delete_attachment(self, path: str) -> str:
        folder = paths.parent(path)
        self.tree.delete(path)
        logger.info("Deleted orphan attachment %s", path)
        if self.settings.delete_empty_folders:
            prune_empty_hierarchy(self.tree, folder)
        return path

    # -- builder ---------------------------------------------------------

    def build_rename_map(self, ctx: CascadeContext, old_path: str, new_path: str) -> CascadeContext:
        """Fill `ctx` with `old -> new` plus the note's attachment folder contents."""
        ctx.add(old_path, new_path)

        if not DocumentKind.for_path(new_path).is_note:
            return ctx
        if not self.settings.move_attachments_with_note or not self.policy.is_private:
            return ctx

        old_folder = self.policy.folder_for(old_path)
        new_folder = self.policy.folder_for(new_path)
        if old_folder == new_folder or not old_folder or not self.tree.is_folder(old_folder):
            return ctx

        for child in list(self.tree.iter_files(old_folder)):
            if DocumentKind.for_path(child).is_note:
                continue
            candidate = paths.join(new_folder, paths.relative(child, old_folder))
            if candidate == child:
                continue
            ctx.add(child, self._available(ctx, candidate))
        return ctx

    def _available(self, ctx: CascadeContext, candidate: str) -> str:
        """First sibling name that is free once the whole map is applied."""

        def taken(p: str) -> bool:
            if p in ctx.claimed():
                return True
            return self.tree.exists(p) and not ctx.is_moving(p)

        if not taken(candidate):
            return candidate
        folder = paths.parent(candidate)
        stem = paths.stem(candidate)
        suffix = paths.name(candidate)[len(stem) :]
        n = 1
        while True:
            option = paths.join(folder, f"{stem} {n}{suffix}")
            if not taken(option):
                return option
            n += 1

    # -- executor --------------------------------------------------------

    def execute(self, ctx: CascadeContext) -> CascadeContext:
        """Apply every entry of the map in insertion order, draining it."""
        while ctx.rename_map:
            old_path, new_path = next(iter(ctx.rename_map.items()))
            try:
                self._process(ctx, old_path, new_path)
            except (VaultkeepError, OSError) as e:
                logger.error("Failed to apply rename %s -> %s: %s", old_path, new_path, e)
                ctx.errors.append(f"{old_path}: {e}")
            finally:
                ctx.complete(old_path)
        return ctx

    def _final_files(self, ctx: CascadeContext) -> FileSet:
        return FileSet(ctx.final_path(p) for p in self.tree.file_set())

    def _patch(self, path: str, patches: list[TextPatch]) -> bool:
        if not patches:
            return False
        text = self.tree.read_text(path)
        self.tree.write_text(path, apply_patches(text, patches))
        return True

    def _process(self, ctx: CascadeContext, old_path: str, new_path: str) -> None:
        if self.tree.is_file(old_path):
            live, pending_move = old_path, True
        elif self.tree.is_file(new_path):
            live, pending_move = new_path, False
            # already moved outside the engine: let the index follow it
            self.index.rename(old_path, new_path)
        else:
            logger.warning("Skipping rename %s -> %s: file not found", old_path, new_path)
            return

        kind = DocumentKind.for_path(live)

        if self.settings.update_links:
            files = self._final_files(ctx)
            self._update_backlinks(ctx, live, old_path, files)

            if kind is DocumentKind.CANVAS:
                try:
                    rewrite_canvas(self.tree, live, ctx)
                except ContainerParseError as e:
                    logger.error("%s", e)
                    ctx.errors.append(str(e))
            elif kind is DocumentKind.NOTE:
                self._update_own_links(ctx, live, old_path, files)

        if pending_move:
            old_folder = paths.parent(old_path)
            self.tree.create_folder(paths.parent(new_path))
            self.tree.move(old_path, new_path)
            logger.info("Moved %s -> %s", old_path, new_path)
            ctx.complete(old_path)
            if self.settings.delete_empty_folders:
                prune_empty_hierarchy(self.tree, old_folder)

    def _update_backlinks(self, ctx: CascadeContext, live: str, old_path: str, files: FileSet) -> None:
        for source, occurrences in self.index.backlinks_of(live).items():
            if source == live:
                continue  # handled with the note's own links
            if not self.tree.is_file(source):
                logger.warning("Backlink holder %s not found", source)
                continue
            source_final = ctx.final_path(source)
            patches = patches_for(
                occurrences,
                lambda occ: self.rewriter.update_link(
                    occ,
                    written_at=source,
                    source_final=source_final,
                    ctx=ctx,
                    files=files,
                ),
            )
            try:
                self._patch(source, patches)
            except VaultkeepError as e:
                logger.error("Could not update links in %s: %s", source, e)
                ctx.errors.append(f"{source}: {e}")

        for canvas in self.index.canvases_referencing(live):
            try:
                rewrite_canvas(self.tree, canvas, ctx, only={live, old_path})
            except ContainerParseError as e:
                logger.error("%s", e)
                ctx.errors.append(str(e))

    def _update_own_links(self, ctx: CascadeContext, live: str, old_path: str, files: FileSet) -> None:
        """Rewrite the moved note's own links for its new folder."""
        source_final = ctx.final_path(live)
        patches = patches_for(
            self.index.links_of(live),
            lambda occ: self.rewriter.update_link(
                occ,
                written_at=old_path,
                source_final=source_final,
                ctx=ctx,
                files=files,
            ),
        )
        self._patch(live, patches)
