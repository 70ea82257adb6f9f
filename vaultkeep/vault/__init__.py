"""Vault file tree, link parsing, resolution and indexing."""

from .attachment_folder import AttachmentFolderPolicy
from .index import LinkIndex
from .parser import extract_links
from .resolver import PathResolver
from .tree import FileSet, FileTree

__all__ = [
    "AttachmentFolderPolicy",
    "LinkIndex",
    "extract_links",
    "PathResolver",
    "FileSet",
    "FileTree",
]
