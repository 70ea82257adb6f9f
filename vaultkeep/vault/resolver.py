"""Link target resolution, following the host's own link search."""

from __future__ import annotations

from .. import paths
from ..models import DocumentKind
from .tree import FileSet, FileTree


def split_subpath(link: str) -> tuple[str, str]:
    """Split `path#heading` into ('path', '#heading'). The subpath keeps its '#'."""
    hash_at = link.find("#")
    if hash_at < 0:
        return link, ""
    return link[:hash_at], link[hash_at:]


def classify(path: str) -> DocumentKind:
    return DocumentKind.for_path(path)


class PathResolver:
    """Resolve link paths against a set of files.

    Order: relative to the source folder, then vault-absolute, then the
    shortest-path match on trailing components. Each step tries the path as
    written and with an implied `.md`. Paths starting with `./` or `../` are
    only tried relative, and a leading `/` means vault-absolute only.
    """

    def __init__(self, tree: FileTree | None = None, files: FileSet | None = None):
        if tree is None and files is None:
            raise ValueError("PathResolver needs a tree or a file set")
        self._tree = tree
        self._files = files

    @classmethod
    def over(cls, files: FileSet) -> PathResolver:
        """A resolver over a fixed (possibly not yet real) set of files."""
        return cls(files=files)

    @property
    def files(self) -> FileSet:
        if self._files is not None:
            return self._files
        return self._tree.file_set()

    def resolve(self, link: str, source_path: str) -> str | None:
        """Resolve a raw link (subpath allowed) to a vault path, or None."""
        path, _ = split_subpath(link)
        if not path:
            return source_path
        return self.resolve_path(path, source_path)

    def resolve_path(self, path: str, source_path: str) -> str | None:
        files = self.files
        path = path.replace("\\", "/").strip()

        if path.startswith("/"):
            return self._first_existing(files, paths.normalize(path))

        source_folder = paths.parent(source_path)
        relative = paths.join(source_folder, path)
        found = self._first_existing(files, relative)
        if found or path.startswith(("./", "../")):
            return found

        found = self._first_existing(files, paths.normalize(path))
        if found:
            return found

        return self._shortest_match(files, paths.normalize(path), source_folder)

    @staticmethod
    def _first_existing(files: FileSet, candidate: str) -> str | None:
        if not candidate:
            return None
        for option in (candidate, candidate + ".md"):
            if option in files:
                return option
        return None

    @staticmethod
    def _shortest_match(files: FileSet, path: str, source_folder: str) -> str | None:
        if not path:
            return None
        filename = paths.name(path)
        wanted = [path, path + ".md"]
        candidates = files.named(filename) + files.named(filename + ".md")

        exact = [c for c in candidates if any(c == w or c.endswith("/" + w) for w in wanted)]
        if not exact:
            lowered = [w.lower() for w in wanted]
            exact = [
                c for c in candidates
                if any(c.lower() == w or c.lower().endswith("/" + w) for w in lowered)
            ]
        if not exact:
            return None

        exact.sort(key=lambda c: (paths.parent(c) != source_folder, c.count("/"), c))
        return exact[0]
