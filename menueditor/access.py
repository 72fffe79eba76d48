from __future__ import annotations

from typing import Iterable, Protocol

# Permission needed to edit or restore the menu.
CONFIG_PERMISSION = "files:config"


class AccessGuard(Protocol):
    def is_allowed(self, permission: str) -> bool:
        ...


class PermissionSetGuard(AccessGuard):
    """Grants exactly the permissions the current user carries."""

    def __init__(self, permissions: Iterable[str], *, username: str | None = None) -> None:
        self.username = username
        self._permissions = frozenset(p.strip() for p in permissions if p and p.strip())

    def is_allowed(self, permission: str) -> bool:
        return permission in self._permissions

    def __repr__(self) -> str:
        return f"PermissionSetGuard(username={self.username!r}, permissions={sorted(self._permissions)!r})"
