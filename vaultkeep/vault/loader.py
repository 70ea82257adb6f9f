"""Vault loading: one object wiring the tree, index and handlers together."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..cascade import RenameDeleteHandler
from ..collector import AttachmentCollector
from ..config import Settings, load_settings
from ..context import CascadeContext
from ..errors import VaultkeepError
from ..models import LinkOccurrence
from ..rewriter import LinkRewriter
from .attachment_folder import AttachmentFolderPolicy
from .index import LinkIndex
from .tree import FileTree


@dataclass
class Vault:
    """A loaded vault and the engine components operating on it."""

    path: Path
    settings: Settings
    tree: FileTree
    index: LinkIndex
    policy: AttachmentFolderPolicy
    rewriter: LinkRewriter
    handler: RenameDeleteHandler
    collector: AttachmentCollector

    def markdown_notes(self) -> list[str]:
        """Notes in lexicographic path order, ignored paths excluded."""
        return [n for n in self.index.notes() if not self.settings.is_path_ignored(n)]

    def rename(self, old_path: str, new_path: str) -> CascadeContext | None:
        """Move a document and run its full cascade."""
        if not self.tree.is_file(old_path):
            raise VaultkeepError(f"No such file: {old_path}")
        if self.tree.exists(new_path):
            raise VaultkeepError(f"Destination already exists: {new_path}")
        return self.handler.handle_rename(old_path, new_path)

    def delete(self, path: str) -> list[str]:
        """Delete a document, then whatever it leaves orphaned.

        Returns the orphaned attachments that were removed along with it.
        """
        if not self.tree.is_file(path):
            raise VaultkeepError(f"No such file: {path}")
        snapshot: list[LinkOccurrence] = self.index.links_of(path)
        self.tree.delete(path)
        return self.handler.handle_delete(path, snapshot)


def load_vault(vault_path: Path, settings: Settings | None = None) -> Vault:
    """Index a vault and set up its handlers.

    Settings come from `.vaultkeep/config.toml` unless given.
    """
    settings = settings or load_settings(vault_path)
    tree = FileTree(vault_path)
    index = LinkIndex(tree).build().attach()
    policy = AttachmentFolderPolicy(settings.attachment_folder)
    rewriter = LinkRewriter(settings.link_format, settings.update_filename_aliases)
    return Vault(
        path=vault_path,
        settings=settings,
        tree=tree,
        index=index,
        policy=policy,
        rewriter=rewriter,
        handler=RenameDeleteHandler(tree, index, policy, rewriter, settings),
        collector=AttachmentCollector(tree, index, policy, rewriter, settings),
    )
