"""Outgoing-link and backlink index over the vault's notes."""

from __future__ import annotations

import logging

from .. import paths
from ..errors import ContainerParseError
from ..models import DocumentKind, LinkOccurrence
from .parser import canvas_file_refs, extract_links, parse_canvas
from .resolver import PathResolver
from .tree import FileTree

logger = logging.getLogger(__name__)


class LinkIndex:
    """Links of every note and file references of every canvas.

    The index follows files by identity: when a file moves, links that
    resolved to it now resolve to its new path, even though their text has
    not been rewritten yet. A text edit re-parses offsets and keeps the
    targets of the links it still has, so a cascade can patch a note several
    times while its targets are still in flight. `refresh` re-resolves from
    text when the tree is known to be settled.
    """

    def __init__(self, tree: FileTree, resolver: PathResolver | None = None):
        self.tree = tree
        self.resolver = resolver or PathResolver(tree)
        self._links: dict[str, list[LinkOccurrence]] = {}
        self._canvas_refs: dict[str, list[str]] = {}

    def build(self) -> LinkIndex:
        self._links.clear()
        self._canvas_refs.clear()
        for path in self.tree.iter_files():
            self._load(path)
        return self

    def attach(self) -> LinkIndex:
        """Keep the index in step with mutations made through the tree."""
        self.tree.subscribe(self.on_tree_change)
        return self

    # -- queries ---------------------------------------------------------

    def notes(self) -> list[str]:
        """Markdown notes in path order."""
        return sorted(self._links)

    def links_of(self, path: str) -> list[LinkOccurrence]:
        return list(self._links.get(path, []))

    def backlinks_of(self, path: str) -> dict[str, list[LinkOccurrence]]:
        """Source note path -> its occurrences resolving to `path`."""
        result: dict[str, list[LinkOccurrence]] = {}
        for source in sorted(self._links):
            hits = [o for o in self._links[source] if o.target == path]
            if hits:
                result[source] = hits
        return result

    def canvases_referencing(self, path: str) -> list[str]:
        return [c for c in sorted(self._canvas_refs) if path in self._canvas_refs[c]]

    def is_referenced(self, path: str, excluding: set[str] | None = None) -> bool:
        """True if a note or canvas other than those in `excluding` points at `path`."""
        excluding = excluding or set()
        if any(s not in excluding for s in self.backlinks_of(path)):
            return True
        return any(c not in excluding for c in self.canvases_referencing(path))

    # -- maintenance -----------------------------------------------------

    def _parse(self, path: str) -> list[LinkOccurrence]:
        text = self.tree.read_text(path)
        return [o.with_target(self.resolver.resolve(o.link, path)) for o in extract_links(text)]

    def _load(self, path: str) -> None:
        kind = DocumentKind.for_path(path)
        if kind is DocumentKind.NOTE:
            self._links[path] = self._parse(path)
        elif kind is DocumentKind.CANVAS:
            try:
                data = parse_canvas(self.tree.read_text(path), path)
            except ContainerParseError as e:
                logger.warning("%s", e)
                self._canvas_refs[path] = []
                return
            self._canvas_refs[path] = canvas_file_refs(data)

    def refresh(self, path: str) -> None:
        """Re-read one document and resolve its links from text."""
        self._links.pop(path, None)
        self._canvas_refs.pop(path, None)
        if self.tree.is_file(path):
            self._load(path)

    def reparse(self, path: str) -> None:
        """Re-read a note after an edit, keeping the targets of its links."""
        if DocumentKind.for_path(path) is not DocumentKind.NOTE or path not in self._links:
            self.refresh(path)
            return
        previous = self._links[path]
        occurrences = extract_links(self.tree.read_text(path))
        if len(occurrences) != len(previous):
            self.refresh(path)
            return
        self._links[path] = [o.with_target(p.target) for o, p in zip(occurrences, previous)]

    def reresolve(self, targets: set[str]) -> None:
        """Re-resolve, from text, every link currently pointing at one of
        `targets` or at nothing."""
        for source, occurrences in self._links.items():
            self._links[source] = [
                o.with_target(self.resolver.resolve(o.link, source))
                if o.target is None or o.target in targets
                else o
                for o in occurrences
            ]

    def rename(self, old: str, new: str) -> None:
        """Follow a file from `old` to `new`."""
        if old in self._links:
            self._links[new] = self._links.pop(old)
        if old in self._canvas_refs:
            self._canvas_refs[new] = self._canvas_refs.pop(old)
        for source, occurrences in self._links.items():
            if any(o.target == old for o in occurrences):
                self._links[source] = [o.with_target(new) if o.target == old else o for o in occurrences]

    def remove(self, path: str) -> None:
        """Forget a deleted file (or every file under a deleted folder)."""
        gone = [p for p in list(self._links) + list(self._canvas_refs) if p == path or paths.is_under(p, path)]
        for p in gone:
            self._links.pop(p, None)
            self._canvas_refs.pop(p, None)
        gone_set = set(gone) | {path}
        for source, occurrences in self._links.items():
            self._links[source] = [
                o.with_target(None) if o.target in gone_set or (o.target and paths.is_under(o.target, path)) else o
                for o in occurrences
            ]

    def on_tree_change(self, op: str, path: str, dest: str | None) -> None:
        if op == "moved" and dest is not None:
            self.rename(path, dest)
        elif op == "deleted":
            self.remove(path)
        elif op == "modified":
            self.reparse(path)
        elif op == "created":
            self.refresh(path)
            self.reresolve(set())
        elif op == "copied" and dest is not None:
            self.refresh(dest)
            self.reresolve(set())
