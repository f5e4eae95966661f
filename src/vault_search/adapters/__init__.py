"""Adapters layer - access to the host file tree."""

from .vault_repository import (
    FakeVault,
    FileSystemVault,
    PathOutsideVaultError,
    ReadFailure,
    ReadReport,
    UnsupportedContentError,
    VaultRepository,
)


__all__ = [
    "FakeVault",
    "FileSystemVault",
    "PathOutsideVaultError",
    "ReadFailure",
    "ReadReport",
    "UnsupportedContentError",
    "VaultRepository",
]
