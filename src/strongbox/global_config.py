"""Global, project-wide configuration constants.

This module intentionally contains **no business logic** – only simple,
shared filesystem anchors and cross-cutting constants that many modules
can import.

The store's base directory is resolved at call time (not import time) so
the CLI and tests can redirect it through the environment.
"""

import os
from pathlib import Path

# Core Names
PROJECT_NAME = "strongbox"

# Base directory
HOME_ENV_VAR = "STRONGBOX_HOME"
DEFAULT_HOME: Path = Path.home() / f".{PROJECT_NAME}"

# Store file and artifact naming
STORE_FILE_NAME = f"{PROJECT_NAME}.db3"
WAL_SUFFIX = "-wal"
SHM_SUFFIX = "-shm"
JOURNAL_SUFFIX = "-journal"
BACKUP_SUFFIX = ".backup"
TEMP_SUFFIX = ".temp"

# Preferences (external configuration store)
PREFERENCES_FILE_NAME = "preferences.yaml"

# Legacy migration keys
LEGACY_ENCRYPTION_PREF = "use_encrypted_database"
LEGACY_VAULT_KEY = "database_key"
SECRET_ENV_PREFIX = "STRONGBOX_SECRET_"

# Engine defaults
# SQLCipher 3 compatibility is kept until existing stores are migrated to
# the v4 defaults.
DEFAULT_CIPHER_COMPATIBILITY = 3
DEFAULT_BUSY_TIMEOUT_S = 5.0

# Retry defaults (lock contention during first-launch initialization)
DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_RETRY_BASE_DELAY_S = 0.001


def home_dir() -> Path:
    """Return the platform base directory for the store and preferences.

    Returns:
        ``$STRONGBOX_HOME`` when set and non-empty, otherwise ``~/.strongbox``.
    """
    override = os.environ.get(HOME_ENV_VAR, "").strip()
    return Path(override).expanduser() if override else DEFAULT_HOME
