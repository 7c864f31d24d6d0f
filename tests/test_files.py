from __future__ import annotations

from pathlib import Path

import pytest

from strongbox.database import FilesystemError, StorePaths, is_plaintext_store
from strongbox.database import files


def write(path: Path, content: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


@pytest.mark.unit
def test_delete_files_skips_missing(project_root: Path) -> None:
    present = write(project_root / "a.bin", b"a")
    missing = project_root / "b.bin"

    assert files.delete_files([missing, present]) == 1
    assert not present.exists()


@pytest.mark.unit
def test_copy_file_wraps_os_errors(project_root: Path) -> None:
    with pytest.raises(FilesystemError) as excinfo:
        files.copy_file(project_root / "missing.db3", project_root / "copy.db3")
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.unit
def test_snapshot_copies_store_and_wal(store_paths: StorePaths) -> None:
    write(store_paths.primary, b"main")
    write(store_paths.wal, b"log")

    files.snapshot(store_paths)

    assert store_paths.backup.read_bytes() == b"main"
    assert store_paths.backup_wal.read_bytes() == b"log"
    assert store_paths.primary.read_bytes() == b"main"


@pytest.mark.unit
def test_snapshot_drops_stale_backup_wal(store_paths: StorePaths) -> None:
    write(store_paths.primary, b"main")
    write(store_paths.backup_wal, b"stale")

    files.snapshot(store_paths)

    assert store_paths.backup.exists()
    assert not store_paths.backup_wal.exists()


@pytest.mark.unit
def test_discard_backup_removes_backup_and_sidecars(store_paths: StorePaths) -> None:
    for path in store_paths.backup_files():
        write(path, b"x")

    files.discard_backup(store_paths)

    assert not any(path.exists() for path in store_paths.backup_files())


@pytest.mark.unit
def test_swap_in_temp_replaces_primary(store_paths: StorePaths) -> None:
    write(store_paths.primary, b"old")
    write(store_paths.wal, b"old-log")
    write(store_paths.temp, b"new")

    files.swap_in_temp(store_paths)

    assert store_paths.primary.read_bytes() == b"new"
    assert not store_paths.wal.exists()
    assert not store_paths.temp.exists()


@pytest.mark.unit
def test_recover_restores_interrupted_transition(store_paths: StorePaths) -> None:
    write(store_paths.primary, b"half-written")
    write(store_paths.shm, b"shm")
    write(store_paths.backup, b"original")
    write(store_paths.backup_wal, b"original-log")
    write(store_paths.temp, b"export")

    assert files.recover_interrupted_transition(store_paths)

    assert store_paths.primary.read_bytes() == b"original"
    assert store_paths.wal.read_bytes() == b"original-log"
    assert not store_paths.shm.exists()
    assert not store_paths.backup.exists()
    assert not store_paths.backup_wal.exists()
    assert not store_paths.temp.exists()


@pytest.mark.unit
def test_recover_without_backup_removes_stray_temp(store_paths: StorePaths) -> None:
    write(store_paths.primary, b"current")
    write(store_paths.temp, b"export")

    assert not files.recover_interrupted_transition(store_paths)

    assert store_paths.primary.read_bytes() == b"current"
    assert not store_paths.temp.exists()


@pytest.mark.unit
def test_recover_on_clean_store_does_nothing(store_paths: StorePaths) -> None:
    assert not files.recover_interrupted_transition(store_paths)
    write(store_paths.primary, b"current")
    assert not files.recover_interrupted_transition(store_paths)
    assert store_paths.primary.read_bytes() == b"current"


@pytest.mark.unit
def test_is_plaintext_store(project_root: Path) -> None:
    assert is_plaintext_store(project_root / "missing.db3") is None
    assert is_plaintext_store(write(project_root / "empty.db3", b"")) is None
    assert is_plaintext_store(write(project_root / "plain.db3", files.SQLITE_HEADER + b"\x10")) is True
    assert is_plaintext_store(write(project_root / "cipher.db3", bytes(range(32)))) is False
