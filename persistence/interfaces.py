from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol


@dataclass(frozen=True)
class StoredEntry:
    """One document found by ``ConfigStore.list_contents``."""

    name: str
    basename: str
    created_at: float
    reader: Callable[[], bytes] = field(repr=False, compare=False)

    def read(self) -> bytes:
        return self.reader()


class ConfigStore(Protocol):
    """
    Durable store of named documents. Names are "/"-separated and relative to the store root.

    Missing documents raise NotFoundError; any other I/O failure raises StorageError.
    """

    def get(self, name: str) -> bytes:
        """Return the full document."""
        ...

    def put(self, name: str, data: bytes) -> None:
        """Replace the full document atomically."""
        ...

    def exists(self, name: str) -> bool:
        ...

    def create_dir(self, path: str) -> None:
        """Create a folder; a no-op when it already exists."""
        ...

    def list_contents(self, path: str) -> list[StoredEntry]:
        """List the documents directly inside a folder (empty when the folder is missing)."""
        ...

    def delete(self, name: str) -> None:
        ...
