"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Callable

import pytest

from vaultkeep.config import Settings
from vaultkeep.vault.loader import Vault, load_vault

VaultFactory = Callable[..., Vault]


def write_files(root: Path, files: dict[str, str | bytes]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8", newline="")


@pytest.fixture
def vault_path(tmp_path: Path) -> Path:
    """Empty vault root."""
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def make_vault(vault_path: Path) -> VaultFactory:
    """Write files into the vault root and load it."""

    def _make(files: dict[str, str | bytes], settings: Settings | None = None, **overrides) -> Vault:
        write_files(vault_path, files)
        base = settings or Settings()
        return load_vault(vault_path, base.with_overrides(**overrides))

    return _make
