from __future__ import annotations

import json
from pathlib import Path

import yaml
from fastapi.testclient import TestClient

HOME = '{"main":[{"label":"Home","link":"/"}]}'


def _client(username: str = "alice", password: str = "wonderland") -> TestClient:
    import app as app_module

    client = TestClient(app_module.create_app())
    r = client.post(
        "/login",
        data={"username": username, "password": password, "next": "/extend/menueditor"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert "menueditor_session=" in r.headers.get("set-cookie", "")
    return client


def _config_dir(sandbox_project: Path) -> Path:
    return sandbox_project / "data" / "config"


def _enable_backups(sandbox_project: Path, keep: int = 5) -> None:
    path = _config_dir(sandbox_project) / "extensions" / "menueditor.yml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump({"fields": ["title"], "backups": {"enable": True, "folder": "backups/menu", "keep": keep}}),
        encoding="utf-8",
    )


def test_login_rejects_wrong_password(reload_endpoints):
    import app as app_module

    client = TestClient(app_module.create_app())

    r = client.post("/login", data={"username": "alice", "password": "nope"}, follow_redirects=False)

    assert r.status_code == 401
    assert "Invalid username or password" in r.text


def test_save_menu_and_show_flash(reload_endpoints, sandbox_project):
    client = _client()

    r = client.post("/extend/menueditor", data={"menus": HOME}, follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["location"] == "/extend/menueditor"
    live = (_config_dir(sandbox_project) / "menu.yml").read_bytes()
    assert yaml.safe_load(live) == {"main": [{"label": "Home", "link": "/"}]}

    page = client.get("/extend/menueditor")
    assert page.status_code == 200
    assert "The menu has been saved." in page.text
    assert "Home" in page.text

    # flash is shown once
    again = client.get("/extend/menueditor")
    assert "The menu has been saved." not in again.text


def test_invalid_payload_shows_error_and_keeps_menu(reload_endpoints, sandbox_project):
    client = _client()
    client.post("/extend/menueditor", data={"menus": HOME}, follow_redirects=False)
    before = (_config_dir(sandbox_project) / "menu.yml").read_bytes()

    r = client.post("/extend/menueditor", data={"menus": '{"menus": "not-a-tree"'}, follow_redirects=False)

    assert r.status_code == 302
    assert (_config_dir(sandbox_project) / "menu.yml").read_bytes() == before
    page = client.get("/extend/menueditor")
    assert "The menu could not be saved." in page.text


def test_editor_requires_permission(reload_endpoints, sandbox_project):
    client = _client("bob", "builder")

    assert client.get("/extend/menueditor").status_code == 403
    r = client.post("/extend/menueditor", data={"menus": HOME}, follow_redirects=False)
    assert r.status_code == 403
    assert not (_config_dir(sandbox_project) / "menu.yml").exists()


def test_backup_and_restore_flow(reload_endpoints, sandbox_project):
    _enable_backups(sandbox_project)
    client = _client()
    first = json.dumps({"main": [{"label": "First", "link": "/first"}]})
    second = json.dumps({"main": [{"label": "Second", "link": "/second"}]})

    client.post("/extend/menueditor", data={"menus": first}, follow_redirects=False)
    first_bytes = (_config_dir(sandbox_project) / "menu.yml").read_bytes()
    client.post("/extend/menueditor", data={"menus": second}, follow_redirects=False)

    state = client.get("/extend/menueditor/menus").json()
    assert state["menus"] == {"main": [{"label": "Second", "link": "/second"}]}
    assert state["fields"] == ["title"]
    assert len(state["backups"]) == 1
    name = state["backups"][0]["name"]

    r = client.post("/extend/menueditor", data={"backup": name}, follow_redirects=False)

    assert r.status_code == 302
    assert (_config_dir(sandbox_project) / "menu.yml").read_bytes() == first_bytes
    page = client.get("/extend/menueditor")
    assert "The menu has been restored from the backup of" in page.text
    assert name in page.text


def test_restore_unknown_backup_shows_error(reload_endpoints, sandbox_project):
    _enable_backups(sandbox_project)
    client = _client()

    client.post("/extend/menueditor", data={"backup": "menu.1.yml"}, follow_redirects=False)

    page = client.get("/extend/menueditor")
    assert "The backup could not be restored." in page.text


def test_state_endpoint_without_menu(reload_endpoints):
    client = _client()

    state = client.get("/extend/menueditor/menus").json()

    assert state == {"menus": {}, "fields": [], "backups": [], "error": None}


def test_deeply_nested_payload_shows_error_and_keeps_menu(reload_endpoints, sandbox_project):
    client = _client()
    client.post("/extend/menueditor", data={"menus": HOME}, follow_redirects=False)
    before = (_config_dir(sandbox_project) / "menu.yml").read_bytes()
    deep = '{"main":' + '[{"label":"x","submenu":' * 600 + '[{"label":"leaf"}]' + "}]" * 600 + "}"

    r = client.post("/extend/menueditor", data={"menus": deep}, follow_redirects=False)

    assert r.status_code == 302
    assert (_config_dir(sandbox_project) / "menu.yml").read_bytes() == before
    page = client.get("/extend/menueditor")
    assert "The menu could not be saved." in page.text


def test_editor_page_keeps_numeric_labels(reload_endpoints, sandbox_project):
    client = _client()
    client.post("/extend/menueditor", data={"menus": '{"main":[{"label":2024,"link":"/archive"}]}'}, follow_redirects=False)

    state = client.get("/extend/menueditor/menus").json()

    assert state["menus"] == {"main": [{"label": 2024, "link": "/archive"}]}
    assert "&quot;label&quot;: 2024" in client.get("/extend/menueditor").text
