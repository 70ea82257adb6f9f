"""Exception types raised by the consistency engine."""


class VaultkeepError(Exception):
    """Base class for engine errors."""


class ConfigError(VaultkeepError, ValueError):
    """Raised when .vaultkeep/config.toml holds an invalid value."""


class ContainerParseError(VaultkeepError):
    """A structured container (canvas) could not be parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot parse {path}: {reason}")
        self.path = path
        self.reason = reason


class MissingNoteIdError(VaultkeepError):
    """Content-addressed collection needs a stable note identifier."""

    def __init__(self, path: str, key: str):
        super().__init__(f"Missing '{key}' in frontmatter of {path}")
        self.path = path
        self.key = key


class PatchConflictError(VaultkeepError):
    """The text at a patch offset no longer matches what was indexed."""

    def __init__(self, start: int, expected: str, found: str):
        super().__init__(f"Text at offset {start} changed: expected {expected!r}, found {found!r}")
        self.start = start
        self.expected = expected
        self.found = found
