from __future__ import annotations

import os
import uuid
from pathlib import Path


def read_bytes(path: Path) -> bytes | None:
    """
    Read a file from disk.

    Returns None for missing files; other I/O errors propagate.
    """
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def atomic_write_bytes(path: Path, payload: bytes) -> None:
    """
    Atomically write bytes to disk by writing to a temp file then replacing.

    Readers see either the old content or the new content, never a partial file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        with tmp_path.open("wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
