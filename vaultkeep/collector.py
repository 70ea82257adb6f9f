"""Attachment collection: move a note's attachments into its attachment folder."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field

import frontmatter

from . import paths
from .config import Settings
from .context import CascadeContext
from .errors import MissingNoteIdError
from .models import DocumentKind, LinkOccurrence, MoveAction, MoveDecision, PathChange
from .pruning import prune_empty_hierarchy
from .rewriter import LinkRewriter, apply_patches, patches_for
from .vault.attachment_folder import AttachmentFolderPolicy
from .vault.index import LinkIndex
from .vault.tree import FileTree

logger = logging.getLogger(__name__)


@dataclass
class CollectResult:
    note: str
    moved: dict[str, str] = field(default_factory=dict)  # original -> path the link now uses
    redirects: list[PathChange] = field(default_factory=list)
    decisions: list[MoveDecision] = field(default_factory=list)
    links_updated: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.moved) or self.links_updated > 0


class AttachmentCollector:
    """Decides and carries out where each attachment of a note goes.

    Whether an attachment is shared (linked from another document) and
    whether its target path is already taken select one of six outcomes;
    see `resolve`.
    """

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

    # -- targets ---------------------------------------------------------

    def note_id(self, note: str) -> str:
        key = self.settings.note_id_key
        try:
            meta = frontmatter.loads(self.tree.read_text(note)).metadata
        except Exception:
            meta = {}
        value = meta.get(key)
        if value is None or str(value).strip() == "":
            raise MissingNoteIdError(note, key)
        return str(value).strip()

    def _content_addressed_path(self, note: str, attachment: str) -> str:
        digest = hashlib.md5(self.tree.read_bytes(attachment)).hexdigest()
        ext = paths.extension(attachment)
        filename = f"{digest}.{ext}" if ext else digest
        return paths.join(self.policy.root_folder_for(note), self.note_id(note), filename)

    def target_for(self, note: str, attachment: str) -> str:
        """Where `attachment` belongs for `note`, or its current path if it is
        already in place."""
        if self.settings.content_addressed:
            return self._content_addressed_path(note, attachment)
        folder = self.policy.folder_for(note)
        if folder and paths.is_under(attachment, folder):
            return attachment
        return self.policy.attachment_path_for(note, paths.name(attachment))

    # -- conflict resolution ---------------------------------------------

    def resolve(
        self,
        note: str,
        attachment: str,
        target: str,
        session: CascadeContext | None = None,
        delete_existing: bool | None = None,
    ) -> MoveDecision:
        """Carry out one of six outcomes for moving `attachment` to `target`.

        ======  =========  ==============  =========================================
        shared  collision  delete existing outcome
        ======  =========  ==============  =========================================
        no      no         -               move to target
        no      yes        true            delete the attachment, keep the target
        no      yes        false           move to a unique sibling of target
        yes     no         -               copy to target
        yes     yes        false           move to a unique sibling, copy back
        yes     yes        true            nothing; the target already serves
        ======  =========  ==============  =========================================

        Redirects (target -> unique sibling) are recorded in `session`.
        `delete_existing` overrides the configured setting.
        """
        if target == attachment:
            return MoveDecision.skip(attachment)
        if self.settings.is_path_ignored(attachment) or self.settings.is_path_ignored(target):
            return MoveDecision.skip(attachment)

        shared = self.index.is_referenced(attachment, {note})
        collision = self.tree.exists(target)
        if delete_existing is None:
            delete_existing = self.settings.delete_existing_on_collision

        if not collision:
            if shared:
                self.tree.copy(attachment, target)
                return MoveDecision(MoveAction.COPY, attachment, target)
            self.tree.move(attachment, target)
            return MoveDecision(MoveAction.MOVE, attachment, target)

        if delete_existing:
            if shared:
                return MoveDecision(MoveAction.NO_OP, attachment, target)
            self.tree.delete(attachment)
            return MoveDecision(MoveAction.DELETE_SOURCE, attachment, target)

        unique = self.tree.available_path(target)
        self.tree.move(attachment, unique)
        if shared:
            self.tree.copy(unique, attachment)
        redirect = PathChange(target, unique)
        if session is not None:
            session.add(target, unique)
        return MoveDecision(MoveAction.RENAME_TO_UNIQUE, attachment, unique, redirect=redirect)

    # -- per note --------------------------------------------------------

    def _follow(self, attachment: str, target: str, session: CascadeContext | None) -> str | None:
        """The session's redirect of `target`, if it already holds this attachment's content."""
        if session is None:
            return None
        redirected = session.final_path(target)
        if redirected == target or not self.tree.is_file(redirected):
            return None
        if self.tree.read_bytes(redirected) != self.tree.read_bytes(attachment):
            return None
        return redirected

    def _plan(
        self,
        note: str,
        occurrences: list[LinkOccurrence],
        session: CascadeContext | None = None,
    ) -> list[tuple[str, str, bool | None]]:
        """(attachment, target, delete-existing override) for each attachment of `note`.

        A target an earlier note's collection redirected is followed when the
        redirected file is a copy of the same attachment; the existing copy
        then serves this note too.
        """
        plan: list[tuple[str, str, bool | None]] = []
        seen: set[str] = set()
        for occ in occurrences:
            target = occ.target
            if target is None:
                if occ.link.split("#", 1)[0]:
                    logger.warning("Unresolved link %r in %s", occ.link, note)
                continue
            if target in seen or DocumentKind.for_path(target).is_note:
                continue
            seen.add(target)
            if self.settings.is_path_ignored(target) or not self.tree.is_file(target):
                continue
            destination = self.target_for(note, target)
            redirected = self._follow(target, destination, session)
            if redirected is not None:
                plan.append((target, redirected, True))
            else:
                plan.append((target, destination, None))
        return plan

    def collect_for_note(self, note: str, session: CascadeContext | None = None) -> CollectResult:
        """Collect every attachment `note` links to, then fix the note's links.

        Targets are all computed before anything moves, so a note that cannot
        be collected (no ID in content-addressed mode) is left untouched.
        """
        result = CollectResult(note=note)
        if DocumentKind.for_path(note) is not DocumentKind.NOTE or self.settings.is_path_ignored(note):
            return result
        if not self.tree.is_file(note):
            logger.warning("Cannot collect attachments of %s: note not found", note)
            return result

        occurrences = self.index.links_of(note)
        plan = self._plan(note, occurrences, session)

        emptied: list[str] = []
        for attachment, target, delete_existing in plan:
            decision = self.resolve(note, attachment, target, session, delete_existing)
            if not decision.recorded:
                continue
            result.decisions.append(decision)
            result.moved[attachment] = decision.path
            if decision.redirect is not None:
                result.redirects.append(decision.redirect)
            if decision.action in (MoveAction.MOVE, MoveAction.DELETE_SOURCE) or (
                decision.action is MoveAction.RENAME_TO_UNIQUE and not self.tree.exists(attachment)
            ):
                emptied.append(paths.parent(attachment))
            logger.info("%s %s -> %s", decision.action.value, attachment, decision.path)

        if result.moved:
            result.links_updated = self.update_note_links(note, occurrences, result.moved)
            self.index.refresh(note)
            self.index.reresolve(set(result.moved) | set(result.moved.values()))

        if self.settings.delete_empty_folders:
            for folder in emptied:
                prune_empty_hierarchy(self.tree, folder)
        return result

    def update_note_links(self, note: str, occurrences: list[LinkOccurrence], moved: dict[str, str]) -> int:
        """Point `note`'s links at the collected paths. Returns the number of links changed."""
        ctx = CascadeContext.of(moved)
        files = self.tree.file_set()
        patches = patches_for(
            occurrences,
            lambda occ: self.rewriter.update_link(
                occ,
                written_at=note,
                source_final=note,
                ctx=ctx,
                files=files,
            )
            if occ.target in moved
            else None,
        )
        if patches:
            text = self.tree.read_text(note)
            self.tree.write_text(note, apply_patches(text, patches))
        return len(patches)
