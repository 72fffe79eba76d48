from __future__ import annotations

import logging
import time
from typing import Callable

import yaml

from persistence.interfaces import ConfigStore
from persistence.locks import NamedLockRegistry

from .access import CONFIG_PERMISSION, AccessGuard
from .backups import BackupEntry, BackupManager
from .codec import decode_config, decode_wire, encode_config, verify_round_trip
from .errors import (
    DecodeError,
    EncodeVerifyError,
    NotFoundError,
    SaveResult,
    SaveStage,
    StorageError,
    Unauthorized,
)
from .models import BackupsConfig, Configuration, MenuDocument

logger = logging.getLogger(__name__)

LIVE_DOCUMENT = "menu.yml"

# Saves and restores of one live document run one at a time within a process.
SAVE_LOCKS = NamedLockRegistry()

BackupFactory = Callable[[ConfigStore, BackupsConfig], BackupManager]


class MenuPersistenceService:
    """
    Validates submitted menus and commits them to the live menu document.

    save:    received -> decoded -> encoded -> verified -> backed_up -> committed
    restore: received -> committed

    Every outcome, including refusals, is returned as a SaveResult.
    """

    def __init__(
        self,
        store: ConfigStore,
        *,
        live_document: str = LIVE_DOCUMENT,
        clock: Callable[[], float] = time.time,
        backup_factory: BackupFactory | None = None,
        locks: NamedLockRegistry | None = None,
    ) -> None:
        self._store = store
        self._live = live_document
        self._clock = clock
        self._backup_factory = backup_factory or self._default_backup_manager
        self._locks = locks or SAVE_LOCKS

    @property
    def live_document(self) -> str:
        return self._live

    def _default_backup_manager(self, store: ConfigStore, config: BackupsConfig) -> BackupManager:
        return BackupManager(store, config, clock=self._clock)

    def backup_manager(self, config: Configuration) -> BackupManager:
        return self._backup_factory(self._store, config.backups)

    def _check(self, guard: AccessGuard) -> Unauthorized | None:
        if guard.is_allowed(CONFIG_PERMISSION):
            return None
        logger.warning("ACCESS DENIED: %r lacks %s", guard, CONFIG_PERMISSION)
        return Unauthorized(f"permission {CONFIG_PERMISSION} required")

    def _backup_current(self, config: Configuration) -> tuple[str | None, str | None]:
        """
        Snapshot the live document as it is before the save, then prune.

        Best effort: returns ``(backup name, problem)`` and never raises StorageError,
        so a broken backup folder cannot block a save.
        """
        try:
            current = self._store.get(self._live)
        except NotFoundError:
            logger.info("BACKUP: no live %s yet, nothing to snapshot", self._live)
            return None, None
        except StorageError as e:
            logger.warning("BACKUP: could not read live %s: %s", self._live, e)
            return None, str(e)

        manager = self.backup_manager(config)
        try:
            entry = manager.create_backup(current)
        except StorageError as e:
            logger.warning("BACKUP: could not create backup in %s: %s", manager.folder, e)
            return None, str(e)

        try:
            manager.prune()
        except StorageError as e:
            # Not data loss, but the folder will keep growing until this is fixed.
            logger.warning("BACKUP PRUNE: failed in %s (keep=%d): %s", manager.folder, manager.keep, e)
            return entry.name, str(e)
        return entry.name, None

    def save(self, raw: str | bytes, config: Configuration, guard: AccessGuard) -> SaveResult:
        denied = self._check(guard)
        if denied is not None:
            return SaveResult.failed(SaveStage.received, denied)

        try:
            doc = decode_wire(raw)
        except DecodeError as e:
            logger.warning("MENU SAVE: rejected payload: %s", e)
            return SaveResult.failed(SaveStage.decoded, e)

        try:
            encoded = encode_config(doc)
        except (yaml.YAMLError, RecursionError) as e:
            logger.error("MENU SAVE: could not encode menu", exc_info=True)
            return SaveResult.failed(SaveStage.encoded, EncodeVerifyError(f"could not encode menu: {e!r}"))

        if not verify_round_trip(encoded, doc):
            err = EncodeVerifyError("encoded menu failed the reparse check; live menu left unchanged")
            logger.error("MENU SAVE: %s", err)
            return SaveResult.failed(SaveStage.verified, err)

        with self._locks.lock_for(self._live):
            backup: str | None = None
            problem: str | None = None
            if config.backups.enabled:
                backup, problem = self._backup_current(config)

            try:
                self._store.put(self._live, encoded)
            except StorageError as e:
                logger.error("MENU SAVE: writing %s failed", self._live, exc_info=True)
                return SaveResult.failed(SaveStage.committed, e)

        logger.info("MENU SAVE: wrote %s (%d bytes, backup=%s)", self._live, len(encoded), backup)
        message = f"backup problem: {problem}" if problem else ""
        return SaveResult.committed(len(encoded), backup=backup, message=message)

    def restore(self, identifier: str, config: Configuration, guard: AccessGuard) -> SaveResult:
        """
        Put a backup back as the live document, byte for byte.

        Backups were produced and verified by ``save``, so they are not decoded again.
        The document being replaced is not snapshotted first.
        """
        denied = self._check(guard)
        if denied is not None:
            return SaveResult.failed(SaveStage.received, denied)

        manager = self.backup_manager(config)
        with self._locks.lock_for(self._live):
            try:
                data = manager.restore(identifier)
            except (NotFoundError, StorageError) as e:
                logger.warning("MENU RESTORE: %s: %s", identifier, e)
                return SaveResult.failed(SaveStage.received, e)

            try:
                self._store.put(self._live, data)
            except StorageError as e:
                logger.error("MENU RESTORE: writing %s failed", self._live, exc_info=True)
                return SaveResult.failed(SaveStage.committed, e)

        logger.info("MENU RESTORE: %s restored from %s (%d bytes)", self._live, identifier, len(data))
        return SaveResult.committed(len(data), restored_from=identifier.strip())

    def load(self, guard: AccessGuard) -> MenuDocument:
        """The live menus, or an empty document when none has been saved yet."""
        denied = self._check(guard)
        if denied is not None:
            raise denied
        try:
            raw = self._store.get(self._live)
        except NotFoundError:
            return MenuDocument({})
        return decode_config(raw)

    def backups(self, config: Configuration, guard: AccessGuard) -> list[BackupEntry]:
        denied = self._check(guard)
        if denied is not None:
            raise denied
        if not config.backups.enabled:
            return []
        return self.backup_manager(config).list()
