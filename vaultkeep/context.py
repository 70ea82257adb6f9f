"""Scoped state for one cascade or one collection run."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class CascadeContext:
    """The rename map of one cascade, passed explicitly through builder and executor.

    `rename_map` holds pending old -> new entries in insertion order and is
    drained as the executor applies them; `applied` remembers drained entries
    so links written against either end of a move can still be followed.
    While `in_progress` is set, rename notifications are folded into this
    map instead of starting another cascade.
    """

    rename_map: dict[str, str] = field(default_factory=dict)
    applied: dict[str, str] = field(default_factory=dict)
    in_progress: bool = False
    errors: list[str] = field(default_factory=list)

    @classmethod
    def of(cls, changes: dict[str, str]) -> CascadeContext:
        return cls(rename_map=dict(changes))

    @property
    def active(self) -> bool:
        return self.in_progress or bool(self.rename_map)

    def add(self, old: str, new: str) -> bool:
        """Add an entry; keys stay distinct and identity moves are dropped."""
        if old == new or old in self.rename_map:
            return False
        self.rename_map[old] = new
        return True

    def complete(self, old: str) -> None:
        if old in self.rename_map:
            self.applied[old] = self.rename_map.pop(old)

    def final_path(self, path: str) -> str:
        """Where `path` ends up once the whole map is applied."""
        seen = {path}
        while True:
            nxt = self.rename_map.get(path) or self.applied.get(path)
            if nxt is None or nxt in seen:
                return path
            seen.add(nxt)
            path = nxt

    def aliases_of(self, path: str) -> set[str]:
        """Every name the file at `path` has in this cascade, final one included."""
        final = self.final_path(path)
        names = {path, final}
        for old in list(self.rename_map) + list(self.applied):
            if self.final_path(old) == final:
                names.add(old)
        return names

    def is_moving(self, path: str) -> bool:
        return self.final_path(path) != path

    def claimed(self) -> set[str]:
        """Destinations already promised to some entry."""
        return set(self.rename_map.values())
