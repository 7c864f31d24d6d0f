"""Secret vault collaborators.

The store lifecycle only ever reads one secret from the vault (the legacy
database key); anything that implements :class:`SecretVault` will do.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Protocol

from . import global_config as g


class SecretVault(Protocol):
    def get(self, key: str) -> str | None:
        """Return the secret stored under ``key``, or None if absent."""
        ...


class MemorySecretVault:
    """Vault backed by an in-process mapping."""

    def __init__(self, secrets: Mapping[str, str] | None = None) -> None:
        self._secrets = dict(secrets or {})

    def get(self, key: str) -> str | None:
        return self._secrets.get(key)

    def set(self, key: str, value: str) -> None:
        self._secrets[key] = value


class EnvironmentSecretVault:
    """Vault that reads ``<prefix><KEY>`` environment variables.

    ``get("database_key")`` reads ``STRONGBOX_SECRET_DATABASE_KEY``.
    """

    def __init__(self, prefix: str = g.SECRET_ENV_PREFIX) -> None:
        self.prefix = prefix

    def variable_name(self, key: str) -> str:
        return self.prefix + key.upper()

    def get(self, key: str) -> str | None:
        return os.environ.get(self.variable_name(key))
