"""Canonical on-disk locations of the store and its artifacts.

Everything here is a pure function of the base directory: nothing is
created, checked or removed.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .. import global_config as g


def sidecars(path: Path) -> tuple[Path, Path, Path]:
    """Return the write-ahead-log, shared-memory and rollback-journal paths.

    SQLite derives these by appending a suffix to the full file name, so
    ``strongbox.db3`` has ``strongbox.db3-wal`` and so on.
    """
    return (
        path.with_name(path.name + g.WAL_SUFFIX),
        path.with_name(path.name + g.SHM_SUFFIX),
        path.with_name(path.name + g.JOURNAL_SUFFIX),
    )


@dataclass(frozen=True)
class StorePaths:
    """Primary store file plus the artifacts derived from it."""

    primary: Path

    @property
    def wal(self) -> Path:
        return sidecars(self.primary)[0]

    @property
    def shm(self) -> Path:
        return sidecars(self.primary)[1]

    @property
    def backup(self) -> Path:
        return self.primary.with_name(self.primary.name + g.BACKUP_SUFFIX)

    @property
    def backup_wal(self) -> Path:
        return sidecars(self.backup)[0]

    @property
    def temp(self) -> Path:
        return self.primary.with_name(self.primary.name + g.TEMP_SUFFIX)

    def primary_files(self) -> list[Path]:
        """Primary file followed by its sidecars."""
        return [self.primary, *sidecars(self.primary)]

    def backup_files(self) -> list[Path]:
        return [self.backup, *sidecars(self.backup)]

    def temp_files(self) -> list[Path]:
        return [self.temp, *sidecars(self.temp)]


def resolve_store_paths(
    base_dir: Path | None = None,
    *,
    file_name: str = g.STORE_FILE_NAME,
) -> StorePaths:
    """Resolve the canonical store paths under a base directory.

    Args:
        base_dir: Platform base directory. Defaults to
            ``global_config.home_dir()``.
        file_name: Primary store file name (fixed in production).

    Returns:
        StorePaths rooted at ``base_dir / file_name``.
    """
    base = Path(base_dir) if base_dir is not None else g.home_dir()
    return StorePaths(primary=base / file_name)
