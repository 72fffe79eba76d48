from __future__ import annotations

import threading


class NamedLockRegistry:
    """
    Provides a stable lock per name (a resolved file path, a document name) to avoid global contention.

    Also serializes saves and restores of one live menu document (``menueditor.service.SAVE_LOCKS``).
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, name: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                self._locks[name] = lock
            return lock


GLOBAL_PATH_LOCKS = NamedLockRegistry()
