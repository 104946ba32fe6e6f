"""Database connection management."""

import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from ..errors import StorageError

logger = logging.getLogger("finbot.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    chat_id TEXT NOT NULL,
    message_id TEXT NOT NULL UNIQUE,
    sender_id TEXT,
    sender_type TEXT,
    content TEXT NOT NULL,
    message_type TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_messages_chat_id ON messages(chat_id);
CREATE INDEX IF NOT EXISTS idx_messages_created_at ON messages(created_at);
"""


class Database:
    """Opens short-lived SQLite connections against a single database file."""

    def __init__(self, path: str, timeout: float = 30.0):
        self.path = path
        self.timeout = timeout

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Get a connection with an active transaction.

        Commits when the block exits cleanly, rolls back otherwise.
        The connection is always closed.
        """
        conn = self.connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


def init_db(path: str) -> Database:
    """Create the database file (and its directory) and provision the schema.

    Safe to call on every startup: every statement is IF NOT EXISTS.

    Raises:
        StorageError: directory creation, connection or schema setup failed.
    """
    directory = os.path.dirname(path)
    try:
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = sqlite3.connect(path, timeout=30)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
            conn.commit()
        finally:
            conn.close()
    except (OSError, sqlite3.Error) as e:
        logger.error(f"Database initialization failed for {path}: {e}")
        raise StorageError(f"failed to initialize database: {e}", key=path) from e

    logger.info(f"Database initialized: {path}")
    return Database(path)
