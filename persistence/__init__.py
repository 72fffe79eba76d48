from __future__ import annotations

from .disk_store import DiskConfigStore
from .interfaces import ConfigStore, StoredEntry
from .locks import GLOBAL_PATH_LOCKS, NamedLockRegistry

__all__ = [
    "ConfigStore",
    "StoredEntry",
    "DiskConfigStore",
    "NamedLockRegistry",
    "GLOBAL_PATH_LOCKS",
]
