"""Database schema and connection management for SQLite."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, Optional

from server import config
from server.config import DATABASE_PATH


def init_database(provisioned_tokens: Optional[Dict[str, str]] = None) -> None:
    """
    Initialize database and create tables if they don't exist.

    Args:
        provisioned_tokens: token -> identity pairs to make redeemable
            (defaults to LIVEDROP_PROVISIONED_TOKENS)
    """
    db_path = Path(DATABASE_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    if provisioned_tokens is None:
        provisioned_tokens = config.PROVISIONED_TOKENS

    with get_db_connection() as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                document_id TEXT NOT NULL,
                file_name TEXT NOT NULL,
                file_size INTEGER NOT NULL,
                file_type TEXT NOT NULL,
                uploaded_by TEXT NOT NULL,
                uploaded_at TEXT NOT NULL,
                shareable_link TEXT NOT NULL,
                PRIMARY KEY(collection, document_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS identity_tokens (
                token TEXT PRIMARY KEY,
                identity TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS identities (
                identity TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_uploaded_at ON documents(collection, uploaded_at)
        """)

        cursor.executemany(
            "INSERT OR REPLACE INTO identity_tokens (token, identity) VALUES (?, ?)",
            list(provisioned_tokens.items())
        )

        conn.commit()


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager for database connections.
    """
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
