"""Basic statement execution helpers.

These wrap low-level SQLCipher calls with logging and typed return
shapes used by the store handle. Secrets may appear in statements run
through here, so only statement prefixes up to the first literal are
ever logged.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlcipher3 import dbapi2 as sqlcipher

logger = logging.getLogger(__name__)


def quote_literal(value: str) -> str:
    """Return ``value`` as a single-quoted SQL string literal.

    PRAGMA statements do not accept bound parameters, so key material is
    embedded as a literal with embedded quotes doubled.

    Args:
        value: Raw string to embed.

    Returns:
        Quoted literal, e.g. ``it's`` -> ``'it''s'``.
    """
    return "'" + value.replace("'", "''") + "'"


def redact(sql: str) -> str:
    """Return a loggable prefix of ``sql`` that stops before any literal."""
    head, _, _ = sql.partition("'")
    return head.strip()[:80]


def execute_query(
    conn: sqlcipher.Connection,
    sql: str,
    params: tuple | dict | None = None,
) -> sqlcipher.Cursor:
    """Execute a SQL statement and return the cursor.

    Args:
        conn: Database connection.
        sql: SQL statement string.
        params: Statement parameters (tuple or dict). Defaults to empty tuple.

    Returns:
        Cursor with statement results.

    Raises:
        sqlcipher.Error: If execution fails.

    Logs:
        - DEBUG: "Executed statement: {prefix}" on success.
    """
    cursor = conn.execute(sql, params or ())
    logger.debug("Executed statement: %s", redact(sql))
    return cursor


def fetch_all(
    conn: sqlcipher.Connection,
    sql: str,
    params: tuple | dict | None = None,
) -> list[dict[str, Any]]:
    """Execute query and return all rows as list of dicts."""
    return [dict(row) for row in execute_query(conn, sql, params).fetchall()]


def fetch_scalar(
    conn: sqlcipher.Connection,
    sql: str,
    params: tuple | dict | None = None,
) -> Any:
    """Execute query and return the first column of the first row.

    Returns:
        The value, or None if the statement produced no rows.
    """
    row = execute_query(conn, sql, params).fetchone()
    if row is None:
        return None
    return row[0]
