from __future__ import annotations

import asyncio
import html
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Literal
from urllib.parse import urlencode

import jwt
from fastapi import APIRouter, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from endpoints.auth_endpoints import SESSION_ALG, SESSION_SECRET, SessionUser, current_user
from menueditor.access import CONFIG_PERMISSION
from menueditor.backups import BACKUP_NAME_RE, BackupEntry
from menueditor.codec import encode_wire
from menueditor.config import load_configuration
from menueditor.errors import DecodeError, ErrorKind, SaveResult
from menueditor.models import Configuration, MenuDocument
from menueditor.service import MenuPersistenceService
from persistence.disk_store import DiskConfigStore
from persistence.paths import config_dir, data_dir
from settings import get_settings

router = APIRouter(tags=["menueditor"])
logger = logging.getLogger(__name__)

SETTINGS = get_settings()
DEBUG_LOG_REQUESTS = SETTINGS.debug_log_requests

EDITOR_PATH = "/extend/menueditor"
FLASH_COOKIE_NAME = "menueditor_flash"
FLASH_TTL_SECONDS = 60

Severity = Literal["success", "error"]

MESSAGES = {
    "saved": "The menu has been saved.",
    "save_failed": "The menu could not be saved. Nothing was changed.",
    "restored": "The menu has been restored from the backup of {time}.",
    "restore_failed": "The backup could not be restored. Nothing was changed.",
}


# -------------------------------------------------------------------
# Wiring: a fresh store, service and config per request
# -------------------------------------------------------------------
def _store() -> DiskConfigStore:
    return DiskConfigStore(config_dir(data_dir()))


def _service(store: DiskConfigStore) -> MenuPersistenceService:
    return MenuPersistenceService(store, live_document=SETTINGS.live_document)


def _require_user(request: Request) -> SessionUser | RedirectResponse:
    user = current_user(request)
    if user is None:
        target = str(request.url.path) + (f"?{request.url.query}" if request.url.query else "")
        return RedirectResponse(url=f"/login?{urlencode({'next': target})}", status_code=302)
    return user


# -------------------------------------------------------------------
# Flash messages: one signed cookie, shown once
# -------------------------------------------------------------------
def _encode_flash(severity: Severity, message: str) -> str:
    now = int(time.time())
    payload = {"sev": severity, "msg": message, "iat": now, "exp": now + FLASH_TTL_SECONDS}
    return jwt.encode(payload, SESSION_SECRET, algorithm=SESSION_ALG)


def _decode_flash(request: Request) -> tuple[str, str] | None:
    token = request.cookies.get(FLASH_COOKIE_NAME)
    if not token:
        return None
    try:
        claims = jwt.decode(token, SESSION_SECRET, algorithms=[SESSION_ALG])
    except jwt.PyJWTError:
        return None
    severity, message = claims.get("sev"), claims.get("msg")
    if severity not in ("success", "error") or not isinstance(message, str):
        return None
    return severity, message


def _redirect_with_flash(severity: Severity, message: str) -> RedirectResponse:
    resp = RedirectResponse(url=EDITOR_PATH, status_code=302)
    resp.set_cookie(
        key=FLASH_COOKIE_NAME,
        value=_encode_flash(severity, message),
        httponly=True,
        samesite="lax",
        path=EDITOR_PATH,
        max_age=FLASH_TTL_SECONDS,
    )
    return resp


def _flash_for(result: SaveResult, entry_time: str | None = None) -> tuple[Severity, str]:
    if result.ok and result.restored_from:
        return "success", MESSAGES["restored"].format(time=entry_time or result.restored_from)
    if result.ok:
        return "success", MESSAGES["saved"]
    if result.error is ErrorKind.encode_verify or result.error is ErrorKind.storage:
        # Not the user's fault; the details are in the server log.
        logger.error("MENU EDITOR: %s failed at %s: %s", result.error.value, result.stage.value, result.message)
    return "error", MESSAGES["restore_failed" if entry_time is not None else "save_failed"]


def _backup_time(identifier: str) -> str:
    m = BACKUP_NAME_RE.match(identifier.strip())
    if not m:
        return identifier
    return datetime.fromtimestamp(int(m.group(1)), tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


# -------------------------------------------------------------------
# Views
# -------------------------------------------------------------------
def _backups_payload(backups: list[BackupEntry]) -> list[dict[str, Any]]:
    # Newest first for display.
    return [
        {"name": e.name, "timestamp": e.timestamp, "created_at": e.created_at.isoformat()}
        for e in reversed(backups)
    ]


def _render_editor(
    menus: MenuDocument,
    config: Configuration,
    backups: list[BackupEntry],
    flash: tuple[str, str] | None,
    *,
    load_error: str | None = None,
) -> str:
    flash_html = ""
    if flash is not None:
        severity, message = flash
        flash_html = f'<div class="flash flash-{html.escape(severity)}">{html.escape(message)}</div>'
    if load_error:
        flash_html += f'<div class="flash flash-error">{html.escape(load_error)}</div>'

    backup_rows = "\n".join(
        f"""      <li>
        <form method="post" action="{EDITOR_PATH}">
          <input type="hidden" name="backup" value="{html.escape(b['name'])}" />
          <span>{html.escape(b['created_at'])}</span>
          <button type="submit">Restore</button>
        </form>
      </li>"""
        for b in _backups_payload(backups)
    )
    backups_html = ""
    if config.backups.enabled:
        backups_html = f"""
    <h3>Backups</h3>
    <ul class="backups">
{backup_rows}
    </ul>"""

    menus_json = encode_wire(menus, indent=2)
    fields_json = json.dumps(config.extra_fields)
    return f"""
<!doctype html>
<html>
  <head><meta charset="utf-8"><title>Menu editor</title></head>
  <body>
    <h2>Menu editor</h2>
    {flash_html}
    <form method="post" action="{EDITOR_PATH}" id="menueditor">
      <textarea name="menus" rows="30" cols="100" data-fields="{html.escape(fields_json)}">{html.escape(menus_json)}</textarea>
      <button type="submit">Save menu</button>
    </form>{backups_html}
    <form method="post" action="/logout"><button type="submit">Log out</button></form>
  </body>
</html>
""".strip()


def _load_view(store: DiskConfigStore, user: SessionUser) -> tuple[Configuration, MenuDocument, list[BackupEntry], str | None]:
    config = load_configuration(store, SETTINGS.extension_config)
    service = _service(store)
    guard = user.guard()
    load_error: str | None = None
    try:
        menus = service.load(guard)
    except DecodeError as e:
        logger.error("MENU EDITOR: live %s is unreadable: %s", service.live_document, e)
        menus = MenuDocument({})
        load_error = "The current menu file could not be read; saving will replace it."
    return config, menus, service.backups(config, guard), load_error


def _forbid(user: SessionUser) -> None:
    if not user.guard().is_allowed(CONFIG_PERMISSION):
        raise HTTPException(status_code=403, detail="You are not allowed to edit the menu.")


@router.get(EDITOR_PATH, response_model=None)
async def menu_editor(request: Request) -> HTMLResponse | RedirectResponse:
    user = _require_user(request)
    if isinstance(user, RedirectResponse):
        return user
    _forbid(user)

    store = _store()
    config, menus, backups, load_error = await asyncio.to_thread(_load_view, store, user)
    page = _render_editor(menus, config, backups, _decode_flash(request), load_error=load_error)
    resp = HTMLResponse(page, status_code=200)
    if FLASH_COOKIE_NAME in request.cookies:
        resp.delete_cookie(key=FLASH_COOKIE_NAME, path=EDITOR_PATH)
    return resp


@router.get(f"{EDITOR_PATH}/menus", response_model=None)
async def menu_editor_state(request: Request) -> JSONResponse | RedirectResponse:
    user = _require_user(request)
    if isinstance(user, RedirectResponse):
        return user
    _forbid(user)

    config, menus, backups, load_error = await asyncio.to_thread(_load_view, _store(), user)
    return JSONResponse(
        {
            "menus": menus.to_config(),
            "fields": config.extra_fields,
            "backups": _backups_payload(backups) if config.backups.enabled else [],
            "error": load_error,
        }
    )


@router.post(EDITOR_PATH, response_model=None)
async def menu_editor_submit(
    request: Request,
    menus: str = Form(""),
    backup: str = Form(""),
) -> RedirectResponse:
    user = _require_user(request)
    if isinstance(user, RedirectResponse):
        return user
    _forbid(user)

    if DEBUG_LOG_REQUESTS:
        logger.info(
            "MENU EDITOR POST: user=%s menus_len=%d backup=%r", user.username, len(menus), backup or None
        )

    store = _store()
    config = await asyncio.to_thread(load_configuration, store, SETTINGS.extension_config)
    service = _service(store)

    if menus.strip():
        result = await asyncio.to_thread(service.save, menus, config, user.guard())
        entry_time = None
    elif backup.strip():
        entry_time = _backup_time(backup)
        result = await asyncio.to_thread(service.restore, backup, config, user.guard())
    else:
        return RedirectResponse(url=EDITOR_PATH, status_code=302)

    if result.error is ErrorKind.unauthorized:
        raise HTTPException(status_code=403, detail="You are not allowed to edit the menu.")

    severity, message = _flash_for(result, entry_time)
    return _redirect_with_flash(severity, message)
