"""Tables the store must contain after every successful open.

Each statement is idempotent and is run on every open, so an existing
store picks up tables added in later releases.
"""

from __future__ import annotations

TABLES: dict[str, str] = {
    "authenticator": """
        CREATE TABLE IF NOT EXISTS authenticator (
            secret TEXT PRIMARY KEY,
            type INTEGER NOT NULL,
            icon TEXT,
            issuer TEXT NOT NULL,
            username TEXT,
            pin TEXT,
            algorithm INTEGER NOT NULL DEFAULT 0,
            digits INTEGER NOT NULL DEFAULT 6,
            period INTEGER NOT NULL DEFAULT 30,
            counter INTEGER NOT NULL DEFAULT 0,
            ranking INTEGER NOT NULL DEFAULT 0,
            copy_count INTEGER NOT NULL DEFAULT 0
        )
    """,
    "category": """
        CREATE TABLE IF NOT EXISTS category (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            ranking INTEGER NOT NULL DEFAULT 0
        )
    """,
    "authenticator_category": """
        CREATE TABLE IF NOT EXISTS authenticator_category (
            category_id TEXT NOT NULL,
            authenticator_secret TEXT NOT NULL,
            ranking INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY (category_id, authenticator_secret)
        )
    """,
    "custom_icon": """
        CREATE TABLE IF NOT EXISTS custom_icon (
            id TEXT PRIMARY KEY,
            data BLOB NOT NULL
        )
    """,
}
