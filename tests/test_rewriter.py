"""Tests for link rewriting and offset patching."""

import pytest

from vaultkeep.context import CascadeContext
from vaultkeep.errors import PatchConflictError
from vaultkeep.rewriter import (
    LinkRewriter,
    TextPatch,
    apply_patches,
    encode_markdown_path,
    patches_for,
)
from vaultkeep.vault.parser import extract_links
from vaultkeep.vault.resolver import PathResolver
from vaultkeep.vault.tree import FileSet

FILES = FileSet(
    [
        "index.md",
        "Note.md",
        "folder/My Note.md",
        "img.png",
        "sub/a.md",
        "sub/b.md",
        "img/p q.png",
    ]
)


def resolved(text: str, source: str, files: FileSet = FILES):
    resolver = PathResolver.over(files)
    return [o.with_target(resolver.resolve(o.link, source)) for o in extract_links(text)]


def convert(text: str, source: str, fn: str, files: FileSet = FILES) -> str:
    rewriter = LinkRewriter()
    method = getattr(rewriter, fn)
    patches = patches_for(resolved(text, source, files), lambda o: method(o, source, files))
    return apply_patches(text, patches)


def test_encode_only_what_markdown_needs():
    assert encode_markdown_path("a b/c(1)#x.png") == "a%20b/c%281%29%23x.png"
    assert encode_markdown_path("ünï/çødé.md") == "ünï/çødé.md"


@pytest.mark.parametrize(
    "wiki,markdown",
    [
        ("[[Note]]", "[Note](Note.md)"),
        ("![[img.png]]", "![](img.png)"),
        ("[[folder/My Note#Heading|alias]]", "[alias](folder/My%20Note.md#Heading)"),
        ("[[My Note#Some heading]]", "[My Note](My%20Note.md#Some%20heading)"),
    ],
)
def test_wikilink_to_markdown(wiki, markdown):
    assert convert(wiki, "index.md", "to_markdown") == markdown


def test_markdown_form_resolves_to_same_target():
    text = "[[folder/My Note#Heading|alias]] ![[img.png]] [[Note]] [[My Note]]"
    before = [o.target for o in resolved(text, "index.md")]
    after = [o.target for o in resolved(convert(text, "index.md", "to_markdown"), "index.md")]
    assert before == after
    assert None not in after


def test_unresolved_wikilink_is_left_alone():
    assert convert("[[Missing]]", "index.md", "to_markdown") == "[[Missing]]"


def test_to_relative():
    text = '[x](sub/b.md "T") ![](img.png) [[folder/My Note|n]]'
    assert convert(text, "sub/a.md", "to_relative") == '[x](b.md "T") ![](../img.png) [[../folder/My Note|n]]'


def test_to_relative_is_idempotent():
    text = "![](../img/p%20q.png) [y](/sub/b.md#Top) ![[img.png]]"
    once = convert(text, "sub/a.md", "to_relative")
    assert once == "![](../img/p%20q.png) [y](b.md#Top) ![[../img.png]]"
    assert convert(once, "sub/a.md", "to_relative") == once


def test_update_link_keeps_form():
    files = FileSet(["index.md", "B/note.md"])
    ctx = CascadeContext.of({"A/note.md": "B/note.md"})
    rewriter = LinkRewriter()
    text = "[[note]] [[A/note|alias]] [n](A/note.md#h)"
    occurrences = [o.with_target("A/note.md") for o in extract_links(text)]
    patches = patches_for(
        occurrences,
        lambda o: rewriter.update_link(o, written_at="index.md", source_final="index.md", ctx=ctx, files=files),
    )
    assert apply_patches(text, patches) == "[[note]] [[B/note|alias]] [n](B/note.md#h)"


def test_shortest_link_that_becomes_ambiguous_falls_back():
    files = FileSet(["index.md", "x/note.md", "y/note.md"])
    ctx = CascadeContext.of({"note.md": "y/note.md"})
    (occ,) = [o.with_target("note.md") for o in extract_links("[[note]]")]
    text = LinkRewriter("relative").update_link(
        occ, written_at="x/index.md", source_final="x/index.md", ctx=ctx, files=files
    )
    assert text == "[[../y/note]]"


def test_filename_alias_follows_rename():
    files = FileSet(["index.md", "new.md"])
    ctx = CascadeContext.of({"old.md": "new.md"})
    (occ,) = [o.with_target("old.md") for o in extract_links("[[old|old]]")]
    rewriter = LinkRewriter(update_filename_aliases=True)
    assert rewriter.update_link(occ, written_at="index.md", source_final="index.md", ctx=ctx, files=files) == "[[new|new]]"


def test_missing_target_is_left_as_written():
    files = FileSet(["B/note.md", "B/note/img.png"])
    (occ,) = [o.with_target("A/note/img.png") for o in extract_links("![](img.png)")]
    text = LinkRewriter().update_link(
        occ, written_at="A/note.md", source_final="B/note.md", ctx=CascadeContext(), files=files
    )
    assert text == "![](img.png)"


def test_conversions_follow_the_rename_map():
    files = FileSet(["sub/a.md", "media/pic.png", "folder/Renamed.md"])
    ctx = CascadeContext.of({"img.png": "media/pic.png", "Note.md": "folder/Renamed.md"})
    rewriter = LinkRewriter()
    embed, link = [o.with_target(t) for o, t in zip(extract_links("![[img.png]] [[Note]]"), ["img.png", "Note.md"])]

    assert rewriter.to_relative(embed, "sub/a.md", files, ctx) == "![[../media/pic.png]]"
    assert rewriter.to_markdown(link, "sub/a.md", files, ctx) == "[Renamed](Renamed.md)"
    assert rewriter.to_relative(embed, "sub/a.md", files) == "![[../img.png]]"


def test_apply_patches_highest_offset_first():
    text = "[[a]] and [[b]]"
    patches = [TextPatch(0, 5, "[[a]]", "[[alpha]]"), TextPatch(10, 15, "[[b]]", "[[beta]]")]
    assert apply_patches(text, patches) == "[[alpha]] and [[beta]]"


def test_apply_patches_detects_stale_text():
    with pytest.raises(PatchConflictError):
        apply_patches("[[x]]", [TextPatch(0, 5, "[[a]]", "[[b]]")])


def test_apply_patches_rejects_overlap():
    with pytest.raises(PatchConflictError):
        apply_patches("abcdef", [TextPatch(0, 4, "abcd", "X"), TextPatch(2, 6, "cdef", "Y")])
