"""Store handle and the manager that owns it.

The manager holds at most one open handle to the primary store file.
Opening while a handle is open closes the old one first, and an open that
fails part-way closes the half-initialized handle before the error
propagates, so the manager is either fully open or closed.
"""

from __future__ import annotations

import contextlib
import functools
import logging
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlcipher3 import dbapi2 as sqlcipher

from .. import global_config as g
from .errors import NotOpenError, from_engine_error
from .paths import StorePaths
from .queries import execute_query, fetch_all, fetch_scalar, quote_literal, redact
from .retry import retry
from .schema import TABLES

logger = logging.getLogger(__name__)

EXPORT_ALIAS = "temporary"


def normalize_secret(secret: str | None) -> str | None:
    """Treat an empty-string secret as "no secret" (plaintext mode)."""
    if secret is None or secret == "":
        return None
    return secret


@dataclass(frozen=True)
class StoreSettings:
    """Per-manager engine and retry knobs.

    Attributes:
        cipher_compatibility: SQLCipher major version whose defaults are
            forced on encrypted handles. None leaves the engine defaults.
        max_attempts: Attempts per initialization step on lock contention.
        retry_base_delay: Back-off time unit in seconds.
        busy_timeout_s: Engine-level busy timeout.
        trace: Log every statement at DEBUG (literals redacted).
    """

    cipher_compatibility: int | None = g.DEFAULT_CIPHER_COMPATIBILITY
    max_attempts: int = g.DEFAULT_MAX_ATTEMPTS
    retry_base_delay: float = g.DEFAULT_RETRY_BASE_DELAY_S
    busy_timeout_s: float = g.DEFAULT_BUSY_TIMEOUT_S
    trace: bool = False


@contextlib.contextmanager
def engine_errors() -> Iterator[None]:
    """Re-raise driver errors as project-level DatabaseError subclasses."""
    try:
        yield
    except sqlcipher.Error as exc:
        raise from_engine_error(exc) from exc


def _trace(statement: str) -> None:
    logger.debug("SQL: %s", redact(statement))


class StoreHandle:
    """The single live connection to the store.

    Attributes:
        path: Store file the connection points at.
        secret: Secret in effect, or None for a plaintext store.
    """

    def __init__(self, connection: sqlcipher.Connection, path: Path, secret: str | None) -> None:
        self._connection: sqlcipher.Connection | None = connection
        self.path = path
        self.secret = secret

    @classmethod
    def connect(cls, path: Path, secret: str | None, settings: StoreSettings) -> StoreHandle:
        """Open a driver connection and key it.

        The key and compatibility PRAGMAs are applied before any statement
        reads the file, as SQLCipher requires.

        Raises:
            DatabaseError: If the driver refuses the connection or PRAGMAs,
                or the secret does not match the file.
        """
        with engine_errors():
            conn = sqlcipher.connect(str(path), timeout=settings.busy_timeout_s)
            try:
                conn.row_factory = sqlcipher.Row
                if secret is not None:
                    conn.execute(f"PRAGMA key = {quote_literal(secret)}")
                    if settings.cipher_compatibility is not None:
                        # TODO: migrate existing stores to SQLCipher 4 defaults and drop this.
                        conn.execute(
                            f"PRAGMA cipher_compatibility = {int(settings.cipher_compatibility)}"
                        )
                conn.execute("PRAGMA foreign_keys = ON")
                # First read of the file; a wrong secret fails here.
                conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
                if settings.trace:
                    conn.set_trace_callback(_trace)
            except sqlcipher.Error:
                conn.close()
                raise
        return cls(conn, path, secret)

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> sqlcipher.Connection:
        """Underlying driver connection.

        Raises:
            NotOpenError: If the handle has been closed.
        """
        if self._connection is None:
            raise NotOpenError(f"Handle for {self.path} is closed")
        return self._connection

    def execute(self, sql: str, params: tuple | dict | None = None) -> sqlcipher.Cursor:
        with engine_errors():
            return execute_query(self.connection, sql, params)

    def fetch_all(self, sql: str, params: tuple | dict | None = None) -> list[dict[str, Any]]:
        with engine_errors():
            return fetch_all(self.connection, sql, params)

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlcipher.Connection]:
        """Commit the block on success, roll it back on error.

        Logs:
            - ERROR: "Transaction rolled back due to error" on failure.
        """
        conn = self.connection
        try:
            yield conn
            conn.commit()
        except Exception:
            logger.exception("Transaction rolled back due to error")
            conn.rollback()
            raise

    def enable_wal(self) -> None:
        with engine_errors():
            mode = fetch_scalar(self.connection, "PRAGMA journal_mode = WAL")
        logger.debug("Journal mode is now %s", mode)

    def create_table(self, name: str, ddl: str) -> None:
        with engine_errors():
            execute_query(self.connection, ddl)
        logger.debug("Ensured table %s", name)

    def checkpoint(self) -> tuple[int, int, int]:
        """Commit pending work and merge the WAL into the main file.

        Returns:
            The engine's (busy, log_frames, checkpointed_frames) triple.
        """
        with engine_errors():
            self.connection.commit()
            row = execute_query(self.connection, "PRAGMA wal_checkpoint(TRUNCATE)").fetchone()
        result = (row[0], row[1], row[2]) if row is not None else (0, -1, -1)
        if result[0]:
            logger.warning("WAL checkpoint on %s could not complete (busy)", self.path)
        return result

    def rekey(self, secret: str) -> None:
        """Re-encrypt the store in place under ``secret``."""
        with engine_errors():
            self.connection.commit()
            execute_query(self.connection, f"PRAGMA rekey = {quote_literal(secret)}")
        self.secret = secret

    @contextlib.contextmanager
    def attached(
        self,
        path: Path,
        secret: str | None,
        *,
        alias: str = EXPORT_ALIAS,
        cipher_compatibility: int | None = None,
    ) -> Iterator[str]:
        """Attach ``path`` as a secondary database for the duration of the block.

        An absent secret attaches the file as plaintext. The database is
        detached on every exit path once the attach has succeeded.

        Yields:
            The schema alias to address the attached database with.
        """
        conn = self.connection
        with engine_errors():
            conn.commit()
            execute_query(conn, f"ATTACH DATABASE ? AS {alias} KEY ?", (str(path), secret or ""))
        try:
            if secret is not None and cipher_compatibility is not None:
                with engine_errors():
                    execute_query(
                        conn, f"PRAGMA {alias}.cipher_compatibility = {int(cipher_compatibility)}"
                    )
            yield alias
        finally:
            with engine_errors():
                conn.commit()
                execute_query(conn, f"DETACH DATABASE {alias}")
            logger.debug("Detached %s", alias)

    def export_into(self, alias: str) -> None:
        """Copy the whole main database into the attached ``alias``."""
        with engine_errors():
            fetch_scalar(self.connection, "SELECT sqlcipher_export(?)", (alias,))
            self.connection.commit()

    def attached_databases(self) -> list[str]:
        """Schema names other than ``main`` and ``temp`` currently attached."""
        with engine_errors():
            rows = fetch_all(self.connection, "PRAGMA database_list")
        return [row["name"] for row in rows if row["name"] not in ("main", "temp")]

    def table_names(self) -> list[str]:
        rows = self.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
        return [row["name"] for row in rows]

    def close(self, *, commit: bool = True) -> None:
        """Commit pending work (unless told not to) and close the connection.

        Safe to call more than once.
        """
        conn = self._connection
        if conn is None:
            return
        self._connection = None
        with engine_errors():
            try:
                if commit:
                    conn.commit()
            finally:
                conn.close()


class ConnectionManager:
    """Owner of the one handle to a store.

    Not designed for concurrent callers; the re-entrant lock only keeps an
    accidental second thread from interleaving with an open, close or
    secret change.
    """

    def __init__(
        self,
        paths: StorePaths,
        settings: StoreSettings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.paths = paths
        self.settings = settings or StoreSettings()
        self._sleep = sleep
        self._handle: StoreHandle | None = None
        self._lock = threading.RLock()

    def is_open(self) -> bool:
        return self._handle is not None

    def get_current(self) -> StoreHandle:
        """Return the open handle.

        Raises:
            NotOpenError: If no handle is open. Callers must open explicitly.
        """
        if self._handle is None:
            raise NotOpenError("Shared connection not open")
        return self._handle

    @contextlib.contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the manager's lock for a multi-step operation."""
        with self._lock:
            yield

    def close(self) -> None:
        """Flush and close the current handle. No-op when already closed.

        Logs:
            - INFO: "Closed store at {path}" when a handle was closed.
        """
        with self._lock:
            handle = self._handle
            if handle is None:
                return
            self._handle = None
            handle.close()
            logger.info("Closed store at %s", handle.path)

    def open(self, secret: str | None) -> StoreHandle:
        """Open the store with ``secret`` and make sure all tables exist.

        Any handle already open is closed first. On first launch (store file
        absent) the write-ahead log is enabled. Each initialization step is
        retried on lock contention.

        Args:
            secret: Store secret; None or "" opens a plaintext store.

        Returns:
            The fully initialized handle.

        Raises:
            DatabaseError: If the connection or any initialization step fails.
                The manager is closed when this propagates.

        Logs:
            - INFO: "Opened store at {path} (encrypted={bool})" on success.
            - ERROR: "Initialization of {path} failed; discarding handle".

        Side Effects:
            - Creates the base directory and the store file if missing.
        """
        with self._lock:
            if self._handle is not None:
                self.close()

            secret = normalize_secret(secret)
            path = self.paths.primary
            first_launch = not path.exists()
            path.parent.mkdir(parents=True, exist_ok=True)

            handle = StoreHandle.connect(path, secret, self.settings)
            self._handle = handle
            try:
                if first_launch:
                    self._retry(handle.enable_wal)
                for name, ddl in TABLES.items():
                    self._retry(functools.partial(handle.create_table, name, ddl))
            except Exception:
                logger.error("Initialization of %s failed; discarding handle", path)
                self._handle = None
                handle.close(commit=False)
                raise

            logger.info("Opened store at %s (encrypted=%s)", path, secret is not None)
            return handle

    def _retry(self, operation: Callable[[], Any]) -> Any:
        return retry(
            operation,
            self.settings.max_attempts,
            base_delay=self.settings.retry_base_delay,
            sleep=self._sleep,
        )
