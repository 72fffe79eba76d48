# auth_endpoints.py
from __future__ import annotations

import hmac
import html
import logging
import time
from dataclasses import dataclass
from typing import Any

import jwt
from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from menueditor.access import CONFIG_PERMISSION, PermissionSetGuard
from settings import get_settings

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)

# Centralized settings
SETTINGS = get_settings()

SESSION_COOKIE_NAME = "menueditor_session"
SESSION_ALG = SETTINGS.session_alg
SESSION_SECRET = SETTINGS.session_secret
SESSION_TTL_SECONDS = SETTINGS.session_ttl_seconds


@dataclass(frozen=True)
class SessionUser:
    username: str
    permissions: tuple[str, ...]

    def guard(self) -> PermissionSetGuard:
        return PermissionSetGuard(self.permissions, username=self.username)


def _safe_next_path(next_path: Any) -> str:
    """
    Only allow relative paths (prevent open redirects).
    """
    if not isinstance(next_path, str):
        return "/"
    s = next_path.strip()
    if not s:
        return "/"
    if s.startswith("/") and not s.startswith("//"):
        return s
    return "/"


def _permissions_for(username: str) -> list[str]:
    return [CONFIG_PERMISSION] if username in SETTINGS.editors else []


def _check_password(username: str, password: str) -> bool:
    expected = SETTINGS.users.get(username)
    if expected is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), password.encode("utf-8"))


def issue_session_token(username: str, *, now: int | None = None) -> str:
    ts = int(time.time()) if now is None else int(now)
    payload = {
        "sub": username,
        "iat": ts,
        "exp": ts + SESSION_TTL_SECONDS,
        "perm": _permissions_for(username),
    }
    return jwt.encode(payload, SESSION_SECRET, algorithm=SESSION_ALG)


def current_user(request: Request) -> SessionUser | None:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    try:
        claims = jwt.decode(token, SESSION_SECRET, algorithms=[SESSION_ALG])
    except jwt.PyJWTError as e:
        logger.info("SESSION: rejected cookie: %s", e)
        return None
    username = claims.get("sub")
    perms = claims.get("perm")
    if not isinstance(username, str) or not username.strip():
        return None
    if not isinstance(perms, list):
        perms = []
    return SessionUser(username=username.strip(), permissions=tuple(p for p in perms if isinstance(p, str)))


def _login_page(next_path: str, *, error: str | None = None, status_code: int = 200) -> HTMLResponse:
    error_html = f'<p class="error">{html.escape(error)}</p>' if error else ""
    return HTMLResponse(
        f"""
<!doctype html>
<html>
  <head><meta charset="utf-8"><title>Menu editor login</title></head>
  <body>
    <h2>Log in</h2>
    {error_html}
    <form method="post" action="/login">
      <input type="hidden" name="next" value="{html.escape(next_path)}" />
      <label>Username <input name="username" /></label>
      <label>Password <input name="password" type="password" /></label>
      <button type="submit">Log in</button>
    </form>
  </body>
</html>
""".strip(),
        status_code=status_code,
    )


@router.get("/login")
async def login_page(request: Request, next: str = "/") -> HTMLResponse:
    next_path = _safe_next_path(next)
    user = current_user(request)
    if user:
        return HTMLResponse(
            f"""
<!doctype html>
<html>
  <head><meta charset="utf-8"><title>Menu editor login</title></head>
  <body>
    <h2>Log in</h2>
    <p>Already logged in as <strong>{html.escape(user.username)}</strong>.</p>
    <p><a href="{html.escape(next_path)}">Continue</a></p>
    <form method="post" action="/logout">
      <button type="submit">Log out</button>
    </form>
  </body>
</html>
""".strip(),
            status_code=200,
        )
    return _login_page(next_path)


@router.post("/login", response_model=None)
async def login_submit(
    username: str = Form(""),
    password: str = Form(""),
    next: str = Form("/"),
) -> HTMLResponse | RedirectResponse:
    uname = username.strip()
    next_path = _safe_next_path(next)
    if not uname or not _check_password(uname, password):
        logger.info("LOGIN: failed for %r", uname)
        return _login_page(next_path, error="Invalid username or password.", status_code=401)

    resp = RedirectResponse(url=next_path, status_code=302)
    # In production set Secure=True behind HTTPS.
    resp.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=issue_session_token(uname),
        httponly=True,
        samesite="lax",
        secure=False,
        path="/",
        max_age=SESSION_TTL_SECONDS,
    )
    logger.info("LOGIN: %s", uname)
    return resp


@router.post("/logout")
async def logout() -> RedirectResponse:
    resp = RedirectResponse(url="/login", status_code=302)
    resp.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
    return resp
