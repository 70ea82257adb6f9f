"""Empty-folder removal."""

from __future__ import annotations

import logging
from typing import Callable

from . import paths
from .vault.tree import FileTree

logger = logging.getLogger(__name__)


def _remove_if_empty(tree: FileTree, folder: str) -> bool:
    """Remove `folder` if it has no entries. A folder that filled up in the
    meantime is left alone."""
    if not tree.is_empty_folder(folder):
        return False
    try:
        tree.remove_folder(folder)
    except OSError as e:
        if tree.is_folder(folder):
            logger.debug("Folder %s is no longer empty: %s", folder, e)
            return False
        raise
    return True


def prune_empty_hierarchy(tree: FileTree, folder: str) -> list[str]:
    """Remove `folder` and then each parent while they are empty.

    Stops at the vault root or the first non-empty ancestor. A folder that
    does not exist counts as already pruned.
    """
    removed: list[str] = []
    while folder:
        if tree.is_folder(folder):
            if not _remove_if_empty(tree, folder):
                break
            logger.info("Deleted empty folder %s", folder)
            removed.append(folder)
        folder = paths.parent(folder)
    return removed


def delete_empty_folders(
    tree: FileTree,
    folder: str = "",
    is_ignored: Callable[[str], bool] | None = None,
) -> list[str]:
    """Remove every empty folder under `folder`, deepest first.

    The starting folder itself is removed too unless it is the vault root.
    """
    if folder.startswith("./"):
        folder = folder[2:]
    if is_ignored and folder and is_ignored(folder + "/"):
        return []

    removed: list[str] = []
    for sub in tree.list_children(folder).folders:
        removed.extend(delete_empty_folders(tree, sub, is_ignored))

    if folder and _remove_if_empty(tree, folder):
        logger.info("Deleted empty folder %s", folder)
        removed.append(folder)
    return removed
