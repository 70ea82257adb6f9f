"""Tests for empty-folder removal."""

from pathlib import Path

from vaultkeep.pruning import delete_empty_folders, prune_empty_hierarchy
from vaultkeep.vault.tree import FileTree


def make_tree(root: Path, folders: list[str], files: list[str] = ()) -> FileTree:
    for folder in folders:
        (root / folder).mkdir(parents=True, exist_ok=True)
    for file in files:
        (root / file).parent.mkdir(parents=True, exist_ok=True)
        (root / file).write_text("x", encoding="utf-8")
    return FileTree(root)


def test_prune_walks_up_while_empty(tmp_path):
    tree = make_tree(tmp_path, ["a/b/c"])
    assert prune_empty_hierarchy(tree, "a/b/c") == ["a/b/c", "a/b", "a"]
    assert list(tmp_path.iterdir()) == []


def test_prune_stops_at_first_non_empty_folder(tmp_path):
    tree = make_tree(tmp_path, ["a/b/c"], ["a/keep.md"])
    assert prune_empty_hierarchy(tree, "a/b/c") == ["a/b/c", "a/b"]
    assert (tmp_path / "a").is_dir()


def test_prune_missing_folder_is_already_pruned(tmp_path):
    tree = make_tree(tmp_path, ["a"])
    assert prune_empty_hierarchy(tree, "a/gone") == ["a"]
    assert prune_empty_hierarchy(tree, "a/gone") == []


def test_hidden_entries_keep_a_folder(tmp_path):
    tree = make_tree(tmp_path, ["a"], ["a/.keep"])
    assert prune_empty_hierarchy(tree, "a") == []


def test_prune_never_removes_root(tmp_path):
    tree = make_tree(tmp_path, [])
    assert prune_empty_hierarchy(tree, "") == []
    assert tmp_path.is_dir()


def test_delete_empty_folders_post_order(tmp_path):
    tree = make_tree(tmp_path, ["x/y/z", "w"], ["x/file.md"])
    assert sorted(delete_empty_folders(tree)) == ["w", "x/y", "x/y/z"]
    assert (tmp_path / "x/file.md").exists()


def test_delete_empty_folders_skips_ignored(tmp_path):
    tree = make_tree(tmp_path, ["templates/empty", "other"])
    removed = delete_empty_folders(tree, is_ignored=lambda p: p.startswith("templates/"))
    assert removed == ["other"]
    assert (tmp_path / "templates/empty").is_dir()
