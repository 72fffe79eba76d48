from __future__ import annotations

from fastapi.testclient import TestClient


def test_app_smoke_routes(reload_endpoints, sandbox_project):
    import app as app_module

    client = TestClient(app_module.create_app())

    r = client.get("/login")
    assert r.status_code == 200
    assert 'name="username"' in r.text

    # editor redirects anonymous users to the login page
    r = client.get("/", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/extend/menueditor"

    r = client.get("/extend/menueditor", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"].startswith("/login?next=")

    # default extension config is written on startup
    assert (sandbox_project / "data" / "config" / "extensions" / "menueditor.yml").is_file()
