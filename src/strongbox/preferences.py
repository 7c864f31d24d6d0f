"""YAML-backed preference store.

A flat mapping of keys to scalar values in ``preferences.yaml`` under the
base directory. Only what the store lifecycle needs is exposed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from . import global_config as g

logger = logging.getLogger(__name__)


def default_preferences_path() -> Path:
    return g.home_dir() / g.PREFERENCES_FILE_NAME


class Preferences:
    """Boolean preferences persisted to a YAML file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_preferences_path()

    def _load(self) -> dict[str, Any]:
        """Read the mapping; a missing or empty file is an empty mapping.

        Raises:
            ValueError: If the file does not hold a mapping.
            yaml.YAMLError: If the YAML is invalid.
        """
        if not self.path.exists():
            return {}

        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            msg = f"Preferences file {self.path} must contain a mapping"
            raise ValueError(msg)
        return data

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
        tmp_path.replace(self.path)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._load().get(key, default)
        if not isinstance(value, bool):
            logger.warning("Preference %s is not a boolean (%r); using default", key, value)
            return default
        return value

    def set_bool(self, key: str, value: bool) -> None:
        data = self._load()
        data[key] = bool(value)
        self._save(data)
        logger.debug("Set preference %s = %s", key, value)
