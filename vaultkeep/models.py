"""Data models for vault documents, link occurrences and moves."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from .paths import extension


class DocumentKind(str, Enum):
    """Closed set of document kinds, decided once by extension."""

    NOTE = "note"  # markdown, inline links
    CANVAS = "canvas"  # JSON board, file references in nodes
    ATTACHMENT = "attachment"  # opaque bytes

    @classmethod
    def for_path(cls, path: str) -> DocumentKind:
        ext = extension(path)
        if ext == "md":
            return cls.NOTE
        if ext == "canvas":
            return cls.CANVAS
        return cls.ATTACHMENT

    @property
    def is_note(self) -> bool:
        """Notes and canvases can hold links; everything else is an attachment."""
        return self is not DocumentKind.ATTACHMENT


class LinkStyle(str, Enum):
    WIKILINK = "wikilink"
    MARKDOWN = "markdown"


class LinkRelation(str, Enum):
    LINK = "link"
    EMBED = "embed"


@dataclass(frozen=True)
class LinkOccurrence:
    """One link inside a note's text."""

    start: int
    end: int
    original: str  # exact source text of the link
    style: LinkStyle
    relation: LinkRelation
    link: str  # decoded target, including any #subpath
    raw_link: str  # target as written (still percent-encoded for markdown)
    alias: str | None = None  # wikilink alias or markdown link text
    title: str | None = None  # markdown title, with its leading whitespace and quotes
    target: str | None = None  # resolved vault path

    @property
    def is_embed(self) -> bool:
        return self.relation is LinkRelation.EMBED

    @property
    def is_wikilink(self) -> bool:
        return self.style is LinkStyle.WIKILINK

    def with_target(self, target: str | None) -> LinkOccurrence:
        return replace(self, target=target)


@dataclass(frozen=True)
class PathChange:
    old_path: str
    new_path: str


class MoveAction(str, Enum):
    MOVE = "move"
    COPY = "copy"
    RENAME_TO_UNIQUE = "rename-to-unique"
    DELETE_SOURCE = "delete-source"
    NO_OP = "no-op"


@dataclass(frozen=True)
class MoveDecision:
    """Outcome of resolving one attachment against its collection target."""

    action: MoveAction
    source: str
    path: str  # where the note's link should point afterwards
    redirect: PathChange | None = None
    recorded: bool = True  # False when nothing happened and no link changes

    @classmethod
    def skip(cls, source: str) -> MoveDecision:
        return cls(action=MoveAction.NO_OP, source=source, path=source, recorded=False)
