from __future__ import annotations

from .errors import (
    DecodeError,
    EncodeVerifyError,
    ErrorKind,
    MenuEditorError,
    NotFoundError,
    SaveResult,
    SaveStage,
    StorageError,
    Unauthorized,
)
from .models import BackupsConfig, Configuration, MenuDocument, MenuItem
from .access import CONFIG_PERMISSION, AccessGuard, PermissionSetGuard
from .backups import BackupEntry, BackupManager
from .service import MenuPersistenceService

__all__ = [
    "MenuEditorError",
    "Unauthorized",
    "DecodeError",
    "EncodeVerifyError",
    "StorageError",
    "NotFoundError",
    "ErrorKind",
    "SaveResult",
    "SaveStage",
    "MenuItem",
    "MenuDocument",
    "BackupsConfig",
    "Configuration",
    "CONFIG_PERMISSION",
    "AccessGuard",
    "PermissionSetGuard",
    "BackupEntry",
    "BackupManager",
    "MenuPersistenceService",
]
