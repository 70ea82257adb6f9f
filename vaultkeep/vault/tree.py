"""The vault's file tree: physical file operations on vault paths."""

from __future__ import annotations

import shutil
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator

from .. import paths

# (operation, path, destination) - operation is one of
# "created", "modified", "moved", "copied", "deleted", "folder_created", "folder_deleted"
TreeListener = Callable[[str, str, "str | None"], None]


@dataclass
class Children:
    files: list[str] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)


class FileSet:
    """An immutable set of file paths with a case-insensitive by-name lookup."""

    def __init__(self, files: Iterable[str]):
        self.paths = sorted(set(files))
        self._set = set(self.paths)
        self._by_name: dict[str, list[str]] = defaultdict(list)
        for path in self.paths:
            self._by_name[paths.name(path).lower()].append(path)

    def __contains__(self, path: object) -> bool:
        return path in self._set

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def named(self, filename: str) -> list[str]:
        return self._by_name.get(filename.lower(), [])


def _is_hidden(rel: Path) -> bool:
    return any(part.startswith(".") for part in rel.parts)


class FileTree:
    """Vault-relative view of a directory.

    Hidden files and folders (any path part starting with ".") are invisible.
    Every mutation is reported to subscribed listeners after it happens.
    """

    def __init__(self, root: Path):
        self.root = root
        self._listeners: list[TreeListener] = []
        self._files: FileSet | None = None

    def subscribe(self, listener: TreeListener) -> None:
        self._listeners.append(listener)

    def _changed(self, op: str, path: str, dest: str | None = None) -> None:
        self._files = None
        for listener in self._listeners:
            listener(op, path, dest)

    def invalidate(self) -> None:
        """Forget cached listings after the tree changed behind our back."""
        self._files = None

    def abspath(self, path: str) -> Path:
        return self.root / path if path else self.root

    # -- queries ---------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self.abspath(path).exists()

    def is_file(self, path: str) -> bool:
        return bool(path) and self.abspath(path).is_file()

    def is_folder(self, path: str) -> bool:
        return self.abspath(path).is_dir()

    def is_empty_folder(self, path: str) -> bool:
        """True if the folder has no entries at all, hidden ones included."""
        folder = self.abspath(path)
        return folder.is_dir() and not any(folder.iterdir())

    def read_text(self, path: str) -> str:
        # newline="" keeps CRLF intact so link offsets match the bytes on disk
        with self.abspath(path).open("r", encoding="utf-8", newline="") as f:
            return f.read()

    def read_bytes(self, path: str) -> bytes:
        return self.abspath(path).read_bytes()

    def list_children(self, folder: str) -> Children:
        children = Children()
        base = self.abspath(folder)
        if not base.is_dir():
            return children
        for entry in sorted(base.iterdir(), key=lambda p: p.name):
            if entry.name.startswith("."):
                continue
            rel = paths.join(folder, entry.name)
            if entry.is_dir():
                children.folders.append(rel)
            else:
                children.files.append(rel)
        return children

    def iter_files(self, folder: str = "") -> Iterator[str]:
        """All visible files under `folder`, recursively, in path order."""
        prefix = folder + "/" if folder else ""
        for path in self.file_set():
            if path.startswith(prefix):
                yield path

    def file_set(self) -> FileSet:
        if self._files is None:
            found = []
            for p in self.root.rglob("*"):
                rel = p.relative_to(self.root)
                if _is_hidden(rel) or not p.is_file():
                    continue
                found.append(rel.as_posix())
            self._files = FileSet(found)
        return self._files

    def available_path(self, path: str) -> str:
        """`path` if free, else the first free `stem N.ext` sibling (N = 1, 2, ...)."""
        if not self.exists(path):
            return path
        folder = paths.parent(path)
        stem = paths.stem(path)
        filename = paths.name(path)
        suffix = filename[len(stem) :]
        n = 1
        while True:
            candidate = paths.join(folder, f"{stem} {n}{suffix}")
            if not self.exists(candidate):
                return candidate
            n += 1

    # -- mutations -------------------------------------------------------

    def write_text(self, path: str, text: str) -> None:
        target = self.abspath(path)
        created = not target.exists()
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="") as f:
            f.write(text)
        self._changed("created" if created else "modified", path)

    def create_folder(self, path: str) -> None:
        if not path or self.is_folder(path):
            return
        self.abspath(path).mkdir(parents=True, exist_ok=True)
        self._changed("folder_created", path)

    def move(self, old: str, new: str) -> None:
        if self.exists(new):
            raise FileExistsError(f"Cannot move {old} to {new}: destination exists")
        self.create_folder(paths.parent(new))
        shutil.move(self.abspath(old), self.abspath(new))
        self._changed("moved", old, new)

    def copy(self, old: str, new: str) -> None:
        if self.exists(new):
            raise FileExistsError(f"Cannot copy {old} to {new}: destination exists")
        self.create_folder(paths.parent(new))
        shutil.copy2(self.abspath(old), self.abspath(new))
        self._changed("copied", old, new)

    def delete(self, path: str) -> None:
        target = self.abspath(path)
        if target.is_dir():
            shutil.rmtree(target)
        else:
            target.unlink()
        self._changed("deleted", path)

    def remove_folder(self, path: str) -> None:
        """Remove an empty folder; raises OSError if it is not empty."""
        self.abspath(path).rmdir()
        self._changed("folder_deleted", path)
