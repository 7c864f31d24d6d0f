"""One-shot removal of the legacy store encryption.

Older releases encrypted the store with a key kept in the secret vault and
recorded that in a boolean preference. This module strips that encryption
once and clears the preference.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .. import global_config as g
from .connection import ConnectionManager
from .transition import change_secret

logger = logging.getLogger(__name__)


class BoolPreferences(Protocol):
    def get_bool(self, key: str, default: bool) -> bool: ...

    def set_bool(self, key: str, value: bool) -> None: ...


class SecretSource(Protocol):
    def get(self, key: str) -> str | None: ...


def run_legacy_migration(
    manager: ConnectionManager,
    preferences: BoolPreferences,
    vault: SecretSource,
    *,
    flag_key: str = g.LEGACY_ENCRYPTION_PREF,
    vault_key: str = g.LEGACY_VAULT_KEY,
) -> bool:
    """Decrypt a store left encrypted by the legacy scheme.

    The preference flag is cleared only after the secret change commits, so
    a failed migration is retried on the next launch.

    Args:
        manager: Manager owning the store. Opened with the legacy secret if
            it is not open yet.
        preferences: Configuration store holding the legacy flag.
        vault: Secret vault holding the legacy key.
        flag_key: Preference key of the legacy flag.
        vault_key: Vault key of the legacy secret.

    Returns:
        True if the store was migrated, False if there was nothing to do.

    Raises:
        TransitionFailure: If the secret change fails; the flag stays set.

    Logs:
        - INFO: "Migrating legacy encrypted store" / "Legacy migration complete".
        - WARNING: when the flag is set but the vault has no key.
    """
    if not preferences.get_bool(flag_key, False):
        return False

    secret = vault.get(vault_key)
    if secret is None:
        # Flag left as-is: the store's state is unknown.
        logger.warning("Legacy encryption flag is set but the vault holds no key")
        return False

    logger.info("Migrating legacy encrypted store")
    if not manager.is_open():
        manager.open(secret)
    change_secret(manager, secret, None)
    preferences.set_bool(flag_key, False)
    logger.info("Legacy migration complete")
    return True
