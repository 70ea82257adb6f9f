"""Where a note's attachments live."""

from __future__ import annotations

from dataclasses import dataclass

from .. import paths

FILENAME_TOKEN = "${filename}"


@dataclass(frozen=True)
class AttachmentFolderPolicy:
    """Obsidian-style attachment location.

    - "/"            vault root
    - "./"           the note's own folder
    - "./assets"     a folder next to the note
    - "assets"       a fixed vault folder
    `${filename}` is replaced by the note's name, which gives every note a
    private attachment folder.
    """

    setting: str = "./" + FILENAME_TOKEN

    @property
    def is_private(self) -> bool:
        """True if each note gets a folder of its own."""
        return FILENAME_TOKEN in self.setting

    def _resolve(self, setting: str, note_path: str) -> str:
        value = setting.strip()
        if value in ("", "/"):
            return ""
        if value == "." or value.startswith("./"):
            return paths.join(paths.parent(note_path), value[2:])
        return paths.normalize(value)

    def folder_for(self, note_path: str) -> str:
        return self._resolve(self.setting.replace(FILENAME_TOKEN, paths.stem(note_path)), note_path)

    def root_folder_for(self, note_path: str) -> str:
        """The location with the per-note part dropped (content-addressed layout)."""
        return self._resolve(self.setting.replace(FILENAME_TOKEN, ""), note_path)

    def attachment_path_for(self, note_path: str, filename: str) -> str:
        return paths.join(self.folder_for(note_path), filename)
