"""Public interface for the database package.

This module exposes the primitives the rest of the project needs: path
resolution, the connection manager, the secret-change protocol, crash
recovery and the legacy migration entrypoint.
"""

from .connection import ConnectionManager, StoreHandle, StoreSettings, normalize_secret
from .errors import (
    DatabaseError,
    FilesystemError,
    NotOpenError,
    TransientLockError,
    TransitionFailure,
)
from .files import is_plaintext_store, recover_interrupted_transition
from .legacy import run_legacy_migration
from .paths import StorePaths, resolve_store_paths
from .retry import retry
from .transition import (
    SecretTransition,
    TransitionKind,
    TransitionReport,
    TransitionStep,
    change_secret,
)

__all__ = [
    "ConnectionManager",
    "StoreHandle",
    "StoreSettings",
    "normalize_secret",
    "DatabaseError",
    "FilesystemError",
    "NotOpenError",
    "TransientLockError",
    "TransitionFailure",
    "is_plaintext_store",
    "recover_interrupted_transition",
    "run_legacy_migration",
    "StorePaths",
    "resolve_store_paths",
    "retry",
    "SecretTransition",
    "TransitionKind",
    "TransitionReport",
    "TransitionStep",
    "change_secret",
]
