from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from persistence.interfaces import ConfigStore

from .errors import NotFoundError
from .models import BackupsConfig

logger = logging.getLogger(__name__)

BACKUP_NAME_RE = re.compile(r"^menu\.(\d+)\.yml$")


def backup_name(timestamp: int) -> str:
    return f"menu.{timestamp}.yml"


@dataclass(frozen=True)
class BackupEntry:
    """A snapshot of menu.yml, identified by its file name."""

    name: str
    timestamp: int
    reader: Callable[[], bytes] = field(repr=False, compare=False)

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def read(self) -> bytes:
        return self.reader()


class BackupManager:
    """
    Timestamped snapshots of the live menu document in one store folder.

    Holds no state of its own: everything is derived from the folder contents.
    Ordering always comes from the timestamp in the entry name, never from the
    order the store happens to list files in. Files that are not named like a
    backup are left alone.
    """

    def __init__(
        self,
        store: ConfigStore,
        config: BackupsConfig,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock

    @property
    def folder(self) -> str:
        return self._config.folder.strip().strip("/")

    @property
    def keep(self) -> int:
        return self._config.keep

    def _store_name(self, name: str) -> str:
        return f"{self.folder}/{name}"

    def _entries(self) -> list[BackupEntry]:
        entries: list[BackupEntry] = []
        for stored in self._store.list_contents(self.folder):
            m = BACKUP_NAME_RE.match(stored.basename)
            if not m:
                continue
            entries.append(BackupEntry(name=stored.basename, timestamp=int(m.group(1)), reader=stored.read))
        entries.sort(key=lambda e: (e.timestamp, e.name))
        return entries

    def create_backup(self, current: bytes) -> BackupEntry:
        # Two backups in the same second share a name; the later one wins.
        self._store.create_dir(self.folder)
        timestamp = int(self._clock())
        name = backup_name(timestamp)
        self._store.put(self._store_name(name), current)
        logger.info("BACKUP: created %s/%s (%d bytes)", self.folder, name, len(current))
        return BackupEntry(name=name, timestamp=timestamp, reader=lambda: self._store.get(self._store_name(name)))

    def prune(self) -> list[str]:
        """Delete the oldest backups until at most ``keep`` remain. Returns the deleted names."""
        entries = self._entries()
        excess = len(entries) - self.keep
        deleted: list[str] = []
        for entry in entries[: max(excess, 0)]:
            try:
                self._store.delete(self._store_name(entry.name))
            except NotFoundError:
                logger.debug("BACKUP PRUNE: %s already gone", entry.name)
                continue
            deleted.append(entry.name)
        if deleted:
            logger.info("BACKUP PRUNE: removed %s (keep=%d)", ", ".join(deleted), self.keep)
        return deleted

    def restore(self, identifier: str) -> bytes:
        """
        Return the stored bytes of one backup.

        The live document is not touched here, and nothing snapshots it before a
        restore overwrites it.
        """
        name = (identifier or "").strip()
        if not BACKUP_NAME_RE.match(name):
            raise NotFoundError(f"no such backup: {identifier!r}")
        return self._store.get(self._store_name(name))

    def list(self) -> list[BackupEntry]:
        """Backups oldest to newest; contents are read on demand."""
        return self._entries()
