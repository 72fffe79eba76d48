from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from menueditor.errors import NotFoundError, StorageError

from .atomic_io import atomic_write_bytes, read_bytes
from .interfaces import ConfigStore, StoredEntry
from .locks import GLOBAL_PATH_LOCKS

logger = logging.getLogger(__name__)


class DiskConfigStore(ConfigStore):
    """
    Stores named documents as files below a root directory.

    - Names may not escape the root.
    - Writes are atomic (temp file + replace) and serialized per file.
    """

    def __init__(self, root: Path):
        self._root = root.resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, name: str) -> Path:
        rel = PurePosixPath(name.strip().replace("\\", "/"))
        if not name.strip() or rel.is_absolute() or ".." in rel.parts:
            raise StorageError(f"invalid document name: {name!r}")
        return self._root.joinpath(*rel.parts)

    def get(self, name: str) -> bytes:
        path = self._resolve(name)
        lock = GLOBAL_PATH_LOCKS.lock_for(str(path))
        with lock:
            try:
                data = read_bytes(path)
            except OSError as e:
                raise StorageError(f"failed to read {name}: {e}") from e
        if data is None:
            raise NotFoundError(f"document not found: {name}")
        return data

    def put(self, name: str, data: bytes) -> None:
        path = self._resolve(name)
        lock = GLOBAL_PATH_LOCKS.lock_for(str(path))
        with lock:
            try:
                atomic_write_bytes(path, data)
            except OSError as e:
                raise StorageError(f"failed to write {name}: {e}") from e
        logger.debug("STORE PUT: %s (%d bytes)", name, len(data))

    def exists(self, name: str) -> bool:
        return self._resolve(name).is_file()

    def create_dir(self, path: str) -> None:
        try:
            self._resolve(path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"failed to create folder {path}: {e}") from e

    def list_contents(self, path: str) -> list[StoredEntry]:
        folder = self._resolve(path)
        if not folder.is_dir():
            return []
        entries: list[StoredEntry] = []
        try:
            for child in sorted(folder.iterdir()):
                if not child.is_file():
                    continue
                name = f"{path.strip().strip('/')}/{child.name}"
                entries.append(
                    StoredEntry(
                        name=name,
                        basename=child.name,
                        created_at=child.stat().st_mtime,
                        reader=lambda n=name: self.get(n),
                    )
                )
        except OSError as e:
            raise StorageError(f"failed to list {path}: {e}") from e
        return entries

    def delete(self, name: str) -> None:
        path = self._resolve(name)
        lock = GLOBAL_PATH_LOCKS.lock_for(str(path))
        with lock:
            try:
                path.unlink()
            except FileNotFoundError as e:
                raise NotFoundError(f"document not found: {name}") from e
            except OSError as e:
                raise StorageError(f"failed to delete {name}: {e}") from e
