"""Document store ("vault") adapter."""

from hermes_voice.vault.store import (
    VaultError,
    VaultFileExistsError,
    VaultFileMeta,
    VaultFileNotFoundError,
    VaultPathError,
    VaultStore,
    parent_folder,
    regex_replace,
)

__all__ = [
    "VaultError",
    "VaultFileExistsError",
    "VaultFileMeta",
    "VaultFileNotFoundError",
    "VaultPathError",
    "VaultStore",
    "parent_folder",
    "regex_replace",
]
