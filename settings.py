from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _parse_users(entries: tuple[str, ...]) -> dict[str, str]:
    users: dict[str, str] = {}
    for entry in entries:
        name, sep, password = entry.partition(":")
        if not sep or not name.strip():
            continue
        users[name.strip()] = password
    return users


@dataclass(frozen=True)
class Settings:
    # Storage
    data_dir: Path
    live_document: str
    extension_config: str

    # Session cookie (JWT)
    session_secret: str
    session_alg: str
    session_ttl_seconds: int

    # Accounts: username -> password, and who may edit configuration
    users: dict[str, str]
    editors: tuple[str, ...]

    # Debug
    debug_log_requests: bool


def get_settings() -> Settings:
    data_dir = Path(os.getenv("MENUEDITOR_DATA_DIR", "data")).expanduser()

    # NOTE: default is insecure; set SESSION_SECRET in production
    session_secret = os.getenv("SESSION_SECRET", "dev-only-super-secret")
    session_alg = os.getenv("SESSION_ALG", "HS256")
    session_ttl_seconds = int(os.getenv("SESSION_TTL_SECONDS", str(8 * 60 * 60)))

    users = _parse_users(_env_list("MENUEDITOR_USERS", "admin:admin"))
    editors = _env_list("MENUEDITOR_EDITORS", "admin")

    return Settings(
        data_dir=data_dir,
        live_document=os.getenv("MENUEDITOR_LIVE_DOCUMENT", "menu.yml"),
        extension_config=os.getenv("MENUEDITOR_EXTENSION_CONFIG", "extensions/menueditor.yml"),
        session_secret=session_secret,
        session_alg=session_alg,
        session_ttl_seconds=session_ttl_seconds,
        users=users,
        editors=editors,
        debug_log_requests=_env_bool("DEBUG_LOG_REQUESTS", False),
    )
