from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MenuEditorError(Exception):
    """Base class for every failure raised by the menu editor core."""


class Unauthorized(MenuEditorError):
    pass


class DecodeError(MenuEditorError):
    """Submitted menu data is not well-formed."""


class EncodeVerifyError(MenuEditorError):
    """Freshly encoded configuration did not survive a reparse."""


class StorageError(MenuEditorError):
    pass


class NotFoundError(MenuEditorError):
    pass


class ErrorKind(str, Enum):
    unauthorized = "unauthorized"
    decode = "decode"
    encode_verify = "encode_verify"
    storage = "storage"
    not_found = "not_found"

    @property
    def user_error(self) -> bool:
        # The caller can fix these; the rest need an operator.
        return self in (ErrorKind.unauthorized, ErrorKind.decode, ErrorKind.not_found)

    @classmethod
    def of(cls, exc: MenuEditorError) -> "ErrorKind":
        for exc_type, kind in _KINDS:
            if isinstance(exc, exc_type):
                return kind
        return cls.storage


_KINDS: tuple[tuple[type[MenuEditorError], ErrorKind], ...] = (
    (Unauthorized, ErrorKind.unauthorized),
    (DecodeError, ErrorKind.decode),
    (EncodeVerifyError, ErrorKind.encode_verify),
    (StorageError, ErrorKind.storage),
    (NotFoundError, ErrorKind.not_found),
)


class SaveStage(str, Enum):
    received = "received"
    decoded = "decoded"
    encoded = "encoded"
    verified = "verified"
    backed_up = "backed_up"
    committed = "committed"


@dataclass(frozen=True)
class SaveResult:
    """
    Outcome of a save or restore.

    On success ``stage`` is ``committed``; on failure it is the stage that failed
    and ``error`` says why.
    """

    ok: bool
    stage: SaveStage
    error: ErrorKind | None = None
    message: str = ""
    bytes_written: int = 0
    backup: str | None = None
    restored_from: str | None = None

    @classmethod
    def committed(cls, bytes_written: int, **extra: str | None) -> "SaveResult":
        return cls(ok=True, stage=SaveStage.committed, bytes_written=bytes_written, **extra)

    @classmethod
    def failed(cls, stage: SaveStage, exc: MenuEditorError) -> "SaveResult":
        return cls(ok=False, stage=stage, error=ErrorKind.of(exc), message=str(exc))
