from __future__ import annotations

import pytest

from menueditor.errors import NotFoundError, StorageError
from persistence.disk_store import DiskConfigStore


def test_put_get_roundtrip(store):
    store.put("menu.yml", b"main: []\n")

    assert store.get("menu.yml") == b"main: []\n"
    assert store.exists("menu.yml")


def test_put_replaces_without_leaving_temp_files(store):
    store.put("menu.yml", b"one")
    store.put("menu.yml", b"two")

    assert store.get("menu.yml") == b"two"
    assert sorted(p.name for p in store.root.iterdir()) == ["menu.yml"]


def test_get_missing_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.get("nope.yml")
    assert store.exists("nope.yml") is False


def test_failed_write_keeps_previous_content(store, monkeypatch: pytest.MonkeyPatch):
    import persistence.atomic_io as atomic_io

    store.put("menu.yml", b"good")

    def _boom(fd):
        raise OSError("disk full")

    monkeypatch.setattr(atomic_io.os, "fsync", _boom)

    with pytest.raises(StorageError):
        store.put("menu.yml", b"partial")
    assert store.get("menu.yml") == b"good"
    assert sorted(p.name for p in store.root.iterdir()) == ["menu.yml"]


def test_create_dir_is_idempotent_and_listing_only_returns_files(store):
    store.create_dir("backups/menu")
    store.create_dir("backups/menu")
    store.create_dir("backups/menu/nested")
    store.put("backups/menu/menu.1.yml", b"x")

    entries = store.list_contents("backups/menu")

    assert [e.name for e in entries] == ["backups/menu/menu.1.yml"]
    assert entries[0].basename == "menu.1.yml"
    assert entries[0].read() == b"x"
    assert entries[0].created_at > 0


def test_list_contents_of_missing_folder(store):
    assert store.list_contents("backups/none") == []


def test_delete(store):
    store.put("a.yml", b"x")

    store.delete("a.yml")

    assert not store.exists("a.yml")
    with pytest.raises(NotFoundError):
        store.delete("a.yml")


@pytest.mark.parametrize("name", ["../escape.yml", "/etc/passwd", "", "a/../../b"])
def test_names_cannot_escape_the_root(tmp_path, name):
    store = DiskConfigStore(tmp_path / "config")

    with pytest.raises(StorageError):
        store.put(name, b"x")
