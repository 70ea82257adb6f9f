"""Engine settings, read from `<vault>/.vaultkeep/config.toml`."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from functools import cached_property
from pathlib import Path
from typing import Any

from .errors import ConfigError

CONFIG_DIR = ".vaultkeep"
CONFIG_FILE = "config.toml"

LINK_FORMATS = ("shortest", "relative", "absolute")


@dataclass(frozen=True)
class Settings:
    """Everything the engine reads from configuration. It never writes it."""

    # Obsidian-style location: "/", "./", "./sub", "folder"; ${filename} is the note name
    attachment_folder: str = "./${filename}"
    # Used when a link's own form cannot be kept (e.g. a short name that stopped being unique)
    link_format: str = "shortest"
    ignore_folders: tuple[str, ...] = (".git/", ".obsidian/", ".trash/")
    ignore_files: tuple[str, ...] = ()
    delete_existing_on_collision: bool = False
    content_addressed: bool = False
    note_id_key: str = "ID"
    delete_attachments_with_note: bool = True
    delete_empty_folders: bool = True
    move_attachments_with_note: bool = True
    update_links: bool = True
    update_filename_aliases: bool = False
    auto_collect_attachments: bool = False
    consistency_report_file: str = "consistency-report.md"

    @cached_property
    def ignore_file_patterns(self) -> list[re.Pattern[str]]:
        return [re.compile(p) for p in self.ignore_files]

    def is_path_ignored(self, path: str) -> bool:
        """Ignored folders match by prefix, ignored files by regex search."""
        if path.startswith("./"):
            path = path[2:]
        if any(path.startswith(folder) for folder in self.ignore_folders):
            return True
        return any(p.search(path) for p in self.ignore_file_patterns)

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def get_config_path(vault_path: Path) -> Path:
    return vault_path / CONFIG_DIR / CONFIG_FILE


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"{name} must be true or false")
        return value
    if isinstance(default, tuple):
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"{name} must be a list of strings")
        return tuple(value)
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string")
    return value


def parse_settings(data: dict[str, Any]) -> Settings:
    """Build Settings from a decoded TOML table."""
    defaults = Settings()
    known = {f.name: f for f in fields(Settings)}

    values: dict[str, Any] = {}
    for key, raw in data.items():
        if key not in known:
            raise ConfigError(f"Unknown setting: {key}")
        values[key] = _coerce(key, raw, getattr(defaults, key))

    settings = replace(defaults, **values)

    if settings.link_format not in LINK_FORMATS:
        raise ConfigError(f"link_format must be one of {', '.join(LINK_FORMATS)}")
    if not settings.note_id_key.strip():
        raise ConfigError("note_id_key must not be empty")
    if not settings.consistency_report_file.strip():
        raise ConfigError("consistency_report_file must not be empty")
    for pattern in settings.ignore_files:
        try:
            re.compile(pattern)
        except re.error as e:
            raise ConfigError(f"Invalid ignore_files pattern {pattern!r}: {e}") from e

    return settings


def load_settings(vault_path: Path) -> Settings:
    """Load the vault's settings, falling back to defaults if no config exists."""
    import tomllib

    config_path = get_config_path(vault_path)
    if not config_path.exists():
        return Settings()

    try:
        data = tomllib.loads(config_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{config_path}: {e}") from e

    return parse_settings(data)
