from __future__ import annotations

import importlib
from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


class FakeClock:
    """Deterministic time source; ``tick`` moves it forward in whole seconds."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> float:
        return float(self.now)

    def tick(self, seconds: int = 1) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path):
    from persistence.disk_store import DiskConfigStore

    return DiskConfigStore(tmp_path / "config")


@pytest.fixture
def sandbox_project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Point the data directory and accounts at a temp project so tests never touch real ./data.
    """
    monkeypatch.setenv("MENUEDITOR_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("MENUEDITOR_USERS", "alice:wonderland,bob:builder")
    monkeypatch.setenv("MENUEDITOR_EDITORS", "alice")
    monkeypatch.setenv("SESSION_SECRET", "test-secret")
    return tmp_path


@pytest.fixture
def reload_endpoints(sandbox_project: Path) -> None:
    """
    Endpoints read settings at import time; reload after sandboxing the environment.
    """
    import endpoints.auth_endpoints as auth_endpoints
    import endpoints.menueditor_endpoints as menueditor_endpoints

    importlib.reload(auth_endpoints)
    importlib.reload(menueditor_endpoints)
