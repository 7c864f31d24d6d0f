"""Filesystem operations on the store file and its transition artifacts.

These helpers never touch a connection; callers close the handle before
deleting or replacing the primary file. Every ``OSError`` is re-raised as
FilesystemError with the original error chained.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from .errors import FilesystemError
from .paths import StorePaths

logger = logging.getLogger(__name__)

SQLITE_HEADER = b"SQLite format 3\x00"


def copy_file(source: Path, destination: Path) -> None:
    """Copy ``source`` byte-for-byte to ``destination``, overwriting it."""
    try:
        shutil.copyfile(source, destination)
    except OSError as exc:
        msg = f"Failed to copy {source.name} to {destination.name}: {exc}"
        raise FilesystemError(msg) from exc
    logger.debug("Copied %s -> %s", source, destination)


def rename_file(source: Path, destination: Path) -> None:
    """Move ``source`` over ``destination``."""
    try:
        source.replace(destination)
    except OSError as exc:
        msg = f"Failed to rename {source.name} to {destination.name}: {exc}"
        raise FilesystemError(msg) from exc
    logger.debug("Renamed %s -> %s", source, destination)


def delete_files(files: Iterable[Path]) -> int:
    """Delete each file that exists; missing files are skipped.

    Args:
        files: Paths to remove, in order.

    Returns:
        Number of files actually removed.

    Raises:
        FilesystemError: On the first file that exists but cannot be removed.
    """
    removed = 0
    for file_path in files:
        try:
            file_path.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.error("Failed to delete %s: %s", file_path, exc)
            msg = f"Failed to delete {file_path.name}: {exc}"
            raise FilesystemError(msg) from exc
        removed += 1
        logger.debug("Deleted %s", file_path)
    return removed


def snapshot(paths: StorePaths) -> None:
    """Copy the primary file and its write-ahead log to the backup location.

    Committed pages that were not yet checkpointed live in the WAL, so it
    is copied next to the backup. Any stale backup WAL is removed when the
    primary has none.

    Side Effects:
        - Creates or overwrites the backup file and backup WAL.
    """
    copy_file(paths.primary, paths.backup)
    if paths.wal.exists():
        copy_file(paths.wal, paths.backup_wal)
    else:
        delete_files([paths.backup_wal])


def discard_backup(paths: StorePaths) -> None:
    """Delete the backup artifact, removing the backup file itself last.

    The backup file's presence marks an unfinished transition, so it must
    outlive its sidecars.
    """
    backup, *rest = paths.backup_files()
    delete_files([*rest, backup])


def discard_temp(paths: StorePaths) -> None:
    delete_files(paths.temp_files())


def delete_primary(paths: StorePaths) -> None:
    delete_files(paths.primary_files())


def swap_in_temp(paths: StorePaths) -> None:
    """Replace the primary file (and its sidecars) with the temp artifact."""
    delete_primary(paths)
    rename_file(paths.temp, paths.primary)


def restore_backup(paths: StorePaths) -> None:
    """Put the backup (and its WAL) back in place of the primary file.

    Side Effects:
        - Deletes the primary file and its sidecars.
        - Moves the backup file, and the backup WAL if present, into place.
    """
    delete_primary(paths)
    rename_file(paths.backup, paths.primary)
    if paths.backup_wal.exists():
        rename_file(paths.backup_wal, paths.wal)
    discard_backup(paths)
    logger.warning("Restored %s from backup", paths.primary)


def recover_interrupted_transition(paths: StorePaths) -> bool:
    """Roll back a secret change that was interrupted by a crash.

    A transition deletes its backup before reporting success, so a backup
    found with no handle open belongs to a transition that never committed.
    Must only be called while no handle is open on the store.

    Args:
        paths: Store paths to inspect.

    Returns:
        True if a backup was found and restored, False otherwise.

    Logs:
        - WARNING: when an interrupted transition is rolled back.
        - INFO: when a stray temp artifact is removed.
    """
    if not paths.backup.exists():
        if delete_files(paths.temp_files()):
            logger.info("Removed stray temp artifact next to %s", paths.primary)
        return False

    logger.warning("Found backup from an interrupted secret change; rolling back")
    discard_temp(paths)
    restore_backup(paths)
    return True


def is_plaintext_store(path: Path) -> bool | None:
    """Report whether a store file carries the plain SQLite header.

    Returns:
        True for an unencrypted file, False for an encrypted one, None if the
        file is missing or empty (nothing written yet).
    """
    try:
        with open(path, "rb") as f:
            header = f.read(len(SQLITE_HEADER))
    except FileNotFoundError:
        return None
    if not header:
        return None
    return header == SQLITE_HEADER
