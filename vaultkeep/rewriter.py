"""Link text generation and batched offset patching."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable
from urllib.parse import unquote

from . import paths
from .context import CascadeContext
from .errors import PatchConflictError
from .models import DocumentKind, LinkOccurrence, LinkStyle
from .vault.resolver import PathResolver, split_subpath
from .vault.tree import FileSet

# Only what markdown link syntax cannot carry literally
MARKDOWN_PATH_ESCAPES = {
    "%": "%25",
    " ": "%20",
    "\t": "%09",
    "#": "%23",
    "(": "%28",
    ")": "%29",
    "<": "%3C",
    ">": "%3E",
    "[": "%5B",
    "]": "%5D",
    "^": "%5E",
    "|": "%7C",
}
SUBPATH_ESCAPES = {k: v for k, v in MARKDOWN_PATH_ESCAPES.items() if k not in ("#", "^")}


def encode_markdown_path(path: str) -> str:
    return "".join(MARKDOWN_PATH_ESCAPES.get(c, c) for c in path)


def encode_subpath(subpath: str) -> str:
    return "".join(SUBPATH_ESCAPES.get(c, c) for c in subpath)


class LinkFormat(str, Enum):
    SHORTEST = "shortest"
    RELATIVE = "relative"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class TextPatch:
    start: int
    end: int
    original: str
    replacement: str


def apply_patches(text: str, patches: Iterable[TextPatch]) -> str:
    """Apply non-overlapping patches in one pass, highest offset first.

    Every patch is checked against the text it expects to replace.
    """
    limit = len(text)
    for patch in sorted(patches, key=lambda p: p.start, reverse=True):
        if patch.end > limit:
            raise PatchConflictError(patch.start, patch.original, text[patch.start : patch.end])
        found = text[patch.start : patch.end]
        if found != patch.original:
            raise PatchConflictError(patch.start, patch.original, found)
        text = text[: patch.start] + patch.replacement + text[patch.end :]
        limit = patch.start
    return text


def patches_for(
    occurrences: Iterable[LinkOccurrence],
    transform: Callable[[LinkOccurrence], str | None],
) -> list[TextPatch]:
    patches = []
    for occ in occurrences:
        replacement = transform(occ)
        if replacement is not None and replacement != occ.original:
            patches.append(TextPatch(occ.start, occ.end, occ.original, replacement))
    return patches


def detect_format(occ: LinkOccurrence, written_at: str, targets: set[str]) -> LinkFormat:
    """Which form a link was written in, given where its note was at the time
    and the path(s) it resolved to."""
    path, _ = split_subpath(occ.link)
    path = path.replace("\\", "/")
    if path.startswith(("./", "../")):
        return LinkFormat.RELATIVE
    if path.startswith("/"):
        return LinkFormat.ABSOLUTE
    if "/" not in path:
        return LinkFormat.SHORTEST
    folder = paths.parent(written_at)
    if folder:
        joined = paths.join(folder, path)
        if joined in targets or joined + ".md" in targets:
            return LinkFormat.RELATIVE
    return LinkFormat.ABSOLUTE


def default_text(target: str, embed: bool) -> str:
    if embed:
        return ""
    if DocumentKind.for_path(target) is DocumentKind.NOTE:
        return paths.stem(target)
    return paths.name(target)


class LinkRewriter:
    """Builds replacement text for link occurrences.

    A link keeps its style, relation, subpath, alias and title. Its path is
    written in the same form it was found in (shortest name, relative or
    vault-absolute); a shortest name that would no longer resolve uniquely
    falls back to `link_format`.
    """

    def __init__(self, link_format: str = "shortest", update_filename_aliases: bool = False):
        self.link_format = LinkFormat(link_format)
        self.update_filename_aliases = update_filename_aliases

    def link_path(self, target: str, source: str, fmt: LinkFormat, files: FileSet, style: LinkStyle) -> str:
        """The path part of a link from `source` to `target` in format `fmt`."""
        drop_md = style is LinkStyle.WIKILINK and paths.extension(target) == "md"

        def strip(p: str) -> str:
            return p[:-3] if drop_md and p.endswith(".md") else p

        if fmt is LinkFormat.SHORTEST:
            short = strip(paths.name(target))
            if PathResolver.over(files).resolve_path(short, source) == target:
                return short
            fmt = self.link_format if self.link_format is not LinkFormat.SHORTEST else LinkFormat.ABSOLUTE

        if fmt is LinkFormat.RELATIVE:
            return strip(paths.relative(target, paths.parent(source)))
        return strip(target)

    def render(
        self,
        occ: LinkOccurrence,
        *,
        style: LinkStyle,
        target: str,
        source: str,
        fmt: LinkFormat,
        files: FileSet,
        alias: str | None,
    ) -> str:
        link_path = self.link_path(target, source, fmt, files, style)
        _, subpath = split_subpath(occ.raw_link)
        if style is not occ.style:
            subpath = encode_subpath(subpath) if style is LinkStyle.MARKDOWN else unquote(subpath)
        bang = "!" if occ.is_embed else ""

        if style is LinkStyle.WIKILINK:
            suffix = f"|{alias}" if alias is not None else ""
            return f"{bang}[[{link_path}{subpath}{suffix}]]"

        text = alias if alias is not None else default_text(target, occ.is_embed)
        title = occ.title if occ.style is LinkStyle.MARKDOWN and occ.title else ""
        return f"{bang}[{text}]({encode_markdown_path(link_path)}{subpath}{title})"

    def update_link(
        self,
        occ: LinkOccurrence,
        *,
        written_at: str,
        source_final: str,
        ctx: CascadeContext,
        files: FileSet,
    ) -> str:
        """Text for `occ` once its note sits at `source_final` and every file
        in the rename map has reached its final path."""
        path, _ = split_subpath(occ.link)
        if occ.target is None or not path:
            return occ.original

        names = ctx.aliases_of(occ.target)
        target_final = ctx.final_path(occ.target)
        if target_final not in files:
            # stale target, e.g. moved outside the engine and not yet reported
            return occ.original
        fmt = detect_format(occ, written_at, names)

        alias = occ.alias
        if self.update_filename_aliases and alias is not None:
            old_stems = {paths.stem(n) for n in names if n != target_final}
            if alias in old_stems:
                alias = paths.stem(target_final)

        return self.render(
            occ,
            style=occ.style,
            target=target_final,
            source=source_final,
            fmt=fmt,
            files=files,
            alias=alias,
        )

    def to_markdown(
        self,
        occ: LinkOccurrence,
        source: str,
        files: FileSet,
        ctx: CascadeContext | None = None,
    ) -> str | None:
        """Markdown form of a resolved wikilink; None if there is nothing to convert.

        A target that `ctx` is moving is written at its final path.
        """
        path, _ = split_subpath(occ.link)
        if not occ.is_wikilink or occ.target is None or not path:
            return None
        target = ctx.final_path(occ.target) if ctx is not None else occ.target
        fmt = detect_format(occ, source, {occ.target, target})
        return self.render(
            occ,
            style=LinkStyle.MARKDOWN,
            target=target,
            source=source,
            fmt=fmt,
            files=files,
            alias=occ.alias,
        )

    def to_relative(
        self,
        occ: LinkOccurrence,
        source: str,
        files: FileSet,
        ctx: CascadeContext | None = None,
    ) -> str | None:
        """Same link with its path relative to the source folder."""
        path, _ = split_subpath(occ.link)
        if occ.target is None or not path:
            return None
        return self.render(
            occ,
            style=occ.style,
            target=ctx.final_path(occ.target) if ctx is not None else occ.target,
            source=source,
            fmt=LinkFormat.RELATIVE,
            files=files,
            alias=occ.alias,
        )
