from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from strongbox import global_config as g
from strongbox.database import ConnectionManager, StoreHandle, StorePaths, StoreSettings
from strongbox.database.paths import resolve_store_paths


@pytest.fixture(autouse=True)
def app_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Forces test mode. Application code can use this to refuse dangerous behaviors.
    Automatically applied to all tests.
    """
    monkeypatch.setenv("APP_ENV", "test")


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """
    A dedicated temp root directory for each test.
    All filesystem writes in tests should be under this root (or tmp_path directly).
    """
    root = tmp_path / "proj"
    root.mkdir(parents=True)
    return root


@pytest.fixture(autouse=True)
def chdir_to_project_root(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """
    Automatically change working directory to project_root for all tests.
    This ensures relative-path operations go into the temp directory by default.
    """
    monkeypatch.chdir(project_root)


@pytest.fixture
def store_home(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Base directory for the store, also exported as $STRONGBOX_HOME so nothing
    falls back to the real ~/.strongbox.
    """
    home = project_root / "home"
    monkeypatch.setenv(g.HOME_ENV_VAR, str(home))
    return home


@pytest.fixture
def store_paths(store_home: Path) -> StorePaths:
    return resolve_store_paths(store_home)


@pytest.fixture
def fast_settings() -> StoreSettings:
    """Default engine settings with no back-off delay."""
    return StoreSettings(retry_base_delay=0.0)


@pytest.fixture
def manager(store_paths: StorePaths, fast_settings: StoreSettings) -> Iterator[ConnectionManager]:
    """A connection manager whose handle is always closed after each test."""
    mgr = ConnectionManager(store_paths, fast_settings)
    try:
        yield mgr
    finally:
        mgr.close()


def add_categories(handle: StoreHandle, *names: str) -> None:
    with handle.transaction() as conn:
        for ranking, name in enumerate(names):
            conn.execute(
                "INSERT INTO category (id, name, ranking) VALUES (?, ?, ?)",
                (f"id-{name}", name, ranking),
            )


def category_names(handle: StoreHandle) -> list[str]:
    rows = handle.fetch_all("SELECT name FROM category ORDER BY ranking")
    return [row["name"] for row in rows]
