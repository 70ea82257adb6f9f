"""Tests for rename and delete cascades."""

import json

from vaultkeep.context import CascadeContext


def read(vault, path: str) -> str:
    return (vault.path / path).read_text(encoding="utf-8")


def test_rename_moves_private_attachment_folder(make_vault):
    vault = make_vault({"A/note.md": "![](img.png)\n", "A/note/img.png": b"png"})

    ctx = vault.rename("A/note.md", "B/note.md")

    assert ctx is not None and not ctx.errors
    assert (vault.path / "B/note/img.png").read_bytes() == b"png"
    assert not (vault.path / "A/note/img.png").exists()
    assert not (vault.path / "A/note").exists()
    assert not (vault.path / "A").exists()
    assert read(vault, "B/note.md") == "![](img.png)\n"


def test_rename_map_covers_nested_attachments(make_vault):
    vault = make_vault(
        {
            "note.md": "x",
            "note/a.png": b"a",
            "note/deep/b.pdf": b"b",
            "note/child.md": "notes are not attachments",
        }
    )
    ctx = CascadeContext()
    vault.handler.build_rename_map(ctx, "note.md", "dir/renamed.md")
    assert ctx.rename_map == {
        "note.md": "dir/renamed.md",
        "note/a.png": "dir/renamed/a.png",
        "note/deep/b.pdf": "dir/renamed/deep/b.pdf",
    }


def test_rename_map_avoids_occupied_names(make_vault):
    vault = make_vault({"a.md": "", "a/img.png": b"1", "b/img.png": b"other"})
    ctx = CascadeContext()
    vault.handler.build_rename_map(ctx, "a.md", "b.md")
    assert ctx.rename_map["a/img.png"] == "b/img 1.png"


def test_rename_map_treats_vacated_paths_as_free(make_vault):
    vault = make_vault({"a.md": "", "a/img.png": b"1"})
    ctx = CascadeContext.of({"b/img.png": "elsewhere/img.png"})
    (vault.path / "b").mkdir()
    (vault.path / "b/img.png").write_bytes(b"moving away")
    vault.tree.invalidate()
    vault.handler.build_rename_map(ctx, "a.md", "b.md")
    assert ctx.rename_map["a/img.png"] == "b/img.png"


def test_backlinks_follow_rename(make_vault):
    vault = make_vault(
        {
            "index.md": "[[note]] [[A/note|see]] [n](A/note.md#Top) ![](A/note/img.png)\n",
            "A/note.md": "body",
            "A/note/img.png": b"png",
        }
    )

    vault.rename("A/note.md", "B/note.md")

    assert read(vault, "index.md") == "[[note]] [[B/note|see]] [n](B/note.md#Top) ![](B/note/img.png)\n"


def test_relative_links_in_moved_note_are_rewritten(make_vault):
    vault = make_vault({"A/note.md": "[o](../other.md) [[../other]]\n", "other.md": ""})

    vault.rename("A/note.md", "B/C/note.md")

    assert read(vault, "B/C/note.md") == "[o](../../other.md) [[../../other]]\n"


def test_no_stale_links_after_cascade(make_vault):
    vault = make_vault(
        {
            "x.md": "![[p.png]] ![](A/note/q.png)",
            "A/note.md": "![[p.png]] ![](note/q.png)",
            "A/note/p.png": b"p",
            "A/note/q.png": b"q",
        }
    )

    vault.rename("A/note.md", "Z/note.md")

    for source in ("x.md", "Z/note.md"):
        for occ in vault.index.links_of(source):
            assert vault.index.resolver.resolve(occ.link, source) in ("Z/note/p.png", "Z/note/q.png")


def test_canvas_file_nodes_follow_rename(make_vault):
    board = {
        "nodes": [
            {"id": "1", "type": "file", "file": "A/note/img.png", "x": 0, "y": 0},
            {"id": "2", "type": "text", "text": "keep"},
        ],
        "edges": [],
    }
    vault = make_vault(
        {
            "board.canvas": json.dumps(board),
            "A/note.md": "",
            "A/note/img.png": b"png",
        }
    )

    vault.rename("A/note.md", "B/note.md")

    data = json.loads(read(vault, "board.canvas"))
    assert data["nodes"][0]["file"] == "B/note/img.png"
    assert data["nodes"][1] == {"id": "2", "type": "text", "text": "keep"}


def test_malformed_canvas_is_moved_and_reported(make_vault):
    vault = make_vault({"bad.canvas": "{oops", "index.md": "[b](bad.canvas)"})

    ctx = vault.rename("bad.canvas", "renamed.canvas")

    assert len(ctx.errors) == 1
    assert read(vault, "renamed.canvas") == "{oops"
    assert read(vault, "index.md") == "[b](renamed.canvas)"


def test_canvas_rename_moves_its_attachment_folder(make_vault):
    board = {"nodes": [{"id": "1", "type": "file", "file": "board/img.png"}], "edges": []}
    vault = make_vault({"board.canvas": json.dumps(board), "board/img.png": b"png"})

    vault.rename("board.canvas", "moved/board.canvas")

    assert (vault.path / "moved/board/img.png").exists()
    assert not (vault.path / "board").exists()
    data = json.loads(read(vault, "moved/board.canvas"))
    assert data["nodes"][0]["file"] == "moved/board/img.png"


def test_canvas_delete_removes_its_attachment_folder(make_vault):
    board = {"nodes": [{"id": "1", "type": "file", "file": "board/img.png"}], "edges": []}
    vault = make_vault({"board.canvas": json.dumps(board), "board/img.png": b"png"})

    removed = vault.delete("board.canvas")

    assert removed == ["board/img.png"]
    assert not (vault.path / "board").exists()


def test_observed_rename_is_completed(make_vault):
    vault = make_vault({"index.md": "[l](old.md)", "old.md": "", "old/pic.png": b"1"})
    (vault.path / "old.md").rename(vault.path / "new.md")
    vault.tree.invalidate()

    ctx = vault.handler.handle_rename("old.md", "new.md")

    assert not ctx.errors
    assert read(vault, "index.md") == "[l](new.md)"
    assert (vault.path / "new/pic.png").exists()
    assert not (vault.path / "old").exists()


def test_rename_during_cascade_is_merged(make_vault):
    vault = make_vault({"a.md": ""})
    vault.handler.context = CascadeContext(in_progress=True)
    assert vault.handler.handle_rename("x.md", "y.md") is None
    assert vault.handler.context.rename_map == {"x.md": "y.md"}


def test_delete_removes_orphaned_private_folder(make_vault):
    vault = make_vault({"note.md": "![[a.png]] ![](note/b.png)", "note/a.png": b"a", "note/b.png": b"b"})

    removed = vault.delete("note.md")

    assert sorted(removed) == ["note/a.png", "note/b.png"]
    assert not (vault.path / "note").exists()


def test_delete_keeps_attachments_linked_elsewhere(make_vault):
    vault = make_vault(
        {
            "note.md": "![[a.png]] ![[b.png]]",
            "note/a.png": b"a",
            "note/b.png": b"b",
            "other.md": "![[b.png]]",
        }
    )

    vault.delete("note.md")

    assert not (vault.path / "note/a.png").exists()
    assert (vault.path / "note/b.png").exists()


def test_delete_without_orphan_cleanup(make_vault):
    vault = make_vault({"note.md": "![[a.png]]", "note/a.png": b"a"}, delete_attachments_with_note=False)
    assert vault.delete("note.md") == []
    assert (vault.path / "note/a.png").exists()
