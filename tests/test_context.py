from __future__ import annotations

from pathlib import Path

import pytest

from conftest import add_categories, category_names
from strongbox import global_config as g
from strongbox.context import AppContext
from strongbox.database import NotOpenError, StoreSettings, is_plaintext_store
from strongbox.database import files
from strongbox.vault import EnvironmentSecretVault, MemorySecretVault


@pytest.fixture
def ctx(store_home: Path, fast_settings: StoreSettings):
    context = AppContext.from_environment(settings=fast_settings)
    try:
        yield context
    finally:
        context.close()


@pytest.mark.unit
def test_from_environment_uses_home(store_home: Path, ctx: AppContext) -> None:
    assert ctx.paths.primary == store_home / g.STORE_FILE_NAME
    assert ctx.preferences.path == store_home / g.PREFERENCES_FILE_NAME
    assert isinstance(ctx.vault, EnvironmentSecretVault)
    assert ctx.manager.paths == ctx.paths
    assert ctx.manager.settings.retry_base_delay == 0.0


@pytest.mark.unit
def test_explicit_base_dir_wins(project_root: Path, store_home: Path) -> None:
    other = project_root / "elsewhere"
    context = AppContext.from_environment(other)
    assert context.paths.primary == other / g.STORE_FILE_NAME


@pytest.mark.unit
def test_contexts_are_independent(project_root: Path) -> None:
    first = AppContext.from_environment(project_root / "a")
    second = AppContext.from_environment(project_root / "b")
    assert first.manager is not second.manager


@pytest.mark.integration
def test_open_change_and_close(ctx: AppContext) -> None:
    with pytest.raises(NotOpenError):
        ctx.get_current_handle_or_fail()

    add_categories(ctx.open(None), "work")
    report = ctx.change_secret(None, "pw")

    assert report.as_dict()["success"] is True
    assert ctx.get_current_handle_or_fail().secret == "pw"
    ctx.close()
    assert not ctx.is_open()
    assert is_plaintext_store(ctx.paths.primary) is False


@pytest.mark.integration
def test_startup_on_fresh_home(ctx: AppContext) -> None:
    assert ctx.startup() == {"recovered": False, "migrated": False}


@pytest.mark.integration
def test_startup_recovers_then_migrates(ctx: AppContext) -> None:
    add_categories(ctx.open("legacy"), "work")
    ctx.close()
    files.snapshot(ctx.paths)
    ctx.paths.primary.write_bytes(b"torn write")

    ctx.vault = MemorySecretVault({g.LEGACY_VAULT_KEY: "legacy"})
    ctx.preferences.set_bool(g.LEGACY_ENCRYPTION_PREF, True)

    assert ctx.startup() == {"recovered": True, "migrated": True}
    assert category_names(ctx.get_current_handle_or_fail()) == ["work"]
    assert ctx.get_current_handle_or_fail().secret is None
    assert not ctx.paths.backup.exists()
