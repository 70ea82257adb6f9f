"""Tests for event dispatch and the watchdog handler."""

import shutil
from pathlib import Path

from watchdog.events import FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from vaultkeep.dispatcher import EventDispatcher
from vaultkeep.events import EventKind, VaultEvent
from vaultkeep.watcher import VaultEventHandler


def read(vault, path: str) -> str:
    return (vault.path / path).read_text(encoding="utf-8")


def test_external_rename_runs_cascade(make_vault):
    vault = make_vault({"a.md": "[[b]] [l](b.md)", "b.md": "", "b/img.png": b"i"})
    dispatcher = EventDispatcher(vault)
    (vault.path / "b.md").rename(vault.path / "c.md")

    dispatcher.post(VaultEvent(EventKind.RENAMED, "c.md", rename_from="b.md"))
    handled = dispatcher.drain()

    assert len(handled) == 1
    assert read(vault, "a.md") == "[[c]] [l](c.md)"
    assert (vault.path / "c/img.png").exists()


def test_external_folder_move_keeps_link_forms(make_vault):
    vault = make_vault({"A/note.md": "![](img.png)\n", "A/note/img.png": b"i", "index.md": "[n](A/note.md)"})
    dispatcher = EventDispatcher(vault)
    shutil.move(vault.path / "A", vault.path / "B")

    dispatcher.post(VaultEvent(EventKind.RENAMED, "B/note.md", rename_from="A/note.md"))
    dispatcher.post(VaultEvent(EventKind.RENAMED, "B/note/img.png", rename_from="A/note/img.png"))
    dispatcher.drain()

    assert read(vault, "B/note.md") == "![](img.png)\n"
    assert read(vault, "index.md") == "[n](B/note.md)"
    assert vault.index.links_of("B/note.md")[0].target == "B/note/img.png"


def test_own_changes_are_not_handled_twice(make_vault):
    vault = make_vault({"a.md": "[[b]]", "b.md": ""})
    dispatcher = EventDispatcher(vault)

    vault.rename("b.md", "c.md")
    dispatcher.post(VaultEvent(EventKind.RENAMED, "c.md", rename_from="b.md"))
    dispatcher.post(VaultEvent(EventKind.MODIFIED, "a.md"))

    assert dispatcher.drain() == []
    assert read(vault, "a.md") == "[[c]]"


def test_external_delete_cleans_up(make_vault):
    vault = make_vault({"note.md": "![[a.png]]", "note/a.png": b"a"})
    dispatcher = EventDispatcher(vault)
    (vault.path / "note.md").unlink()

    dispatcher.post(VaultEvent(EventKind.DELETED, "note.md"))
    dispatcher.drain()

    assert not (vault.path / "note").exists()
    assert vault.index.notes() == []


def test_created_note_resolves_dangling_links(make_vault):
    vault = make_vault({"a.md": "[[later]]"})
    dispatcher = EventDispatcher(vault)
    (vault.path / "later.md").write_text("", encoding="utf-8")

    dispatcher.post(VaultEvent(EventKind.CREATED, "later.md"))
    dispatcher.drain()

    assert vault.index.links_of("a.md")[0].target == "later.md"


def test_auto_collect_on_modify(make_vault):
    vault = make_vault({"note.md": "", "pic.png": b"p"}, auto_collect_attachments=True)
    dispatcher = EventDispatcher(vault)
    (vault.path / "note.md").write_text("![](pic.png)", encoding="utf-8")

    dispatcher.post(VaultEvent(EventKind.MODIFIED, "note.md"))
    dispatcher.drain()

    assert (vault.path / "note/pic.png").exists()


def test_handler_debounces_and_orders(tmp_path: Path):
    received: list[VaultEvent] = []
    handler = VaultEventHandler(tmp_path, received.append)

    handler.on_created(FileCreatedEvent(str(tmp_path / "new.md")))
    handler.on_modified(FileModifiedEvent(str(tmp_path / "new.md")))
    handler.on_moved(FileMovedEvent(str(tmp_path / "a.md"), str(tmp_path / "sub/b.md")))
    handler.on_deleted(FileDeletedEvent(str(tmp_path / "gone.png")))
    handler.on_created(FileCreatedEvent(str(tmp_path / ".obsidian/workspace.json")))

    handler.flush_pending()
    assert received == [
        VaultEvent(EventKind.RENAMED, "sub/b.md", rename_from="a.md"),
        VaultEvent(EventKind.DELETED, "gone.png"),
    ]

    handler.flush_pending(force=True)
    assert received[-1] == VaultEvent(EventKind.CREATED, "new.md")
    assert len(received) == 3


def test_handler_drops_create_then_delete(tmp_path: Path):
    received: list[VaultEvent] = []
    handler = VaultEventHandler(tmp_path, received.append)

    handler.on_created(FileCreatedEvent(str(tmp_path / "tmp.md")))
    handler.on_deleted(FileDeletedEvent(str(tmp_path / "tmp.md")))
    handler.flush_pending(force=True)

    assert received == []
