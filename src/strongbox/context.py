"""Application context owning the store manager and its collaborators.

One context per process replaces a global connection: whoever builds the
context owns the manager, and tests build as many independent contexts as
they need.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from . import global_config as g
from .database import (
    ConnectionManager,
    StoreHandle,
    StorePaths,
    StoreSettings,
    TransitionReport,
    change_secret,
    recover_interrupted_transition,
    resolve_store_paths,
    run_legacy_migration,
)
from .preferences import Preferences
from .vault import EnvironmentSecretVault, SecretVault

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything surrounding code needs to drive the store."""

    paths: StorePaths
    preferences: Preferences
    vault: SecretVault
    settings: StoreSettings = field(default_factory=StoreSettings)
    manager: ConnectionManager = field(init=False)

    def __post_init__(self) -> None:
        self.manager = ConnectionManager(self.paths, self.settings)

    @classmethod
    def from_environment(
        cls,
        base_dir: Path | None = None,
        *,
        settings: StoreSettings | None = None,
    ) -> AppContext:
        """Build a context rooted at ``base_dir`` (default: ``$STRONGBOX_HOME``)."""
        base = Path(base_dir) if base_dir is not None else g.home_dir()
        return cls(
            paths=resolve_store_paths(base),
            preferences=Preferences(base / g.PREFERENCES_FILE_NAME),
            vault=EnvironmentSecretVault(),
            settings=settings or StoreSettings(),
        )

    def is_open(self) -> bool:
        return self.manager.is_open()

    def get_current_handle_or_fail(self) -> StoreHandle:
        return self.manager.get_current()

    def open(self, secret: str | None) -> StoreHandle:
        return self.manager.open(secret)

    def close(self) -> None:
        self.manager.close()

    def change_secret(self, old_secret: str | None, new_secret: str | None) -> TransitionReport:
        return change_secret(self.manager, old_secret, new_secret)

    def run_legacy_migration(self) -> bool:
        return run_legacy_migration(self.manager, self.preferences, self.vault)

    def recover(self) -> bool:
        """Roll back an interrupted transition. Closes the store first."""
        self.manager.close()
        return recover_interrupted_transition(self.paths)

    def startup(self) -> dict[str, bool]:
        """Run crash recovery, then the legacy migration.

        Returns:
            Which of the two did any work.
        """
        recovered = self.recover()
        migrated = self.run_legacy_migration()
        logger.info("Startup complete (recovered=%s, migrated=%s)", recovered, migrated)
        return {"recovered": recovered, "migrated": migrated}
