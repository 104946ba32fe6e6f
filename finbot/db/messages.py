"""Message store — deduplicated log of inbound and outbound chat messages.

Rows are keyed by the platform message ID. Writing the same ID twice
updates the stored content and timestamp instead of adding a row.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from ..errors import StorageError
from .connection import Database, init_db

logger = logging.getLogger("finbot.store")

T = TypeVar("T")

DEFAULT_LIST_LIMIT = 50

SENDER_USER = "user"
SENDER_BOT = "bot"

# Fixed-width UTC timestamps sort lexically in chronological order.
_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIME_FORMAT)


def from_db_time(value: str) -> datetime:
    """Parse a stored timestamp.

    Besides our own format, accepts SQLite's ``CURRENT_TIMESTAMP`` style
    (``YYYY-MM-DD HH:MM:SS[.fff]``) found in databases written by other
    tools. Unreadable values fall back to the current time.
    """
    try:
        return datetime.strptime(value, _TIME_FORMAT).replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        pass
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning(f"Unreadable created_at {value!r}, using current time")
        return _utcnow()
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class Message:
    """One received or sent chat message."""

    conversation_id: str
    platform_message_id: str
    body: str
    kind: str = "text"
    sender_id: str = ""
    sender_kind: str = SENDER_USER
    created_at: datetime = field(default_factory=_utcnow)
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Message":
        return cls(
            id=row["id"],
            conversation_id=row["chat_id"],
            platform_message_id=row["message_id"],
            sender_id=row["sender_id"] or "",
            sender_kind=row["sender_type"] or "",
            body=row["content"],
            kind=row["message_type"] or "",
            created_at=from_db_time(row["created_at"]),
        )


_UPSERT = """
    INSERT INTO messages (chat_id, message_id, sender_id, sender_type, content, message_type, created_at)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    ON CONFLICT(message_id) DO UPDATE SET
        content = excluded.content,
        created_at = excluded.created_at
"""

_SELECT_RECENT = """
    SELECT id, chat_id, message_id, sender_id, sender_type, content, message_type, created_at
    FROM messages
    WHERE chat_id = ?
    ORDER BY created_at DESC, id DESC
    LIMIT ?
"""

# The surviving ID set is chosen inside the same statement as the delete,
# so a row inserted mid-trim is never judged against a stale keep list.
_DELETE_ALL_BUT_RECENT = """
    DELETE FROM messages
    WHERE chat_id = ? AND id NOT IN (
        SELECT id FROM messages
        WHERE chat_id = ?
        ORDER BY created_at DESC, id DESC
        LIMIT ?
    )
"""


class MessageStore:
    """Async facade over the SQLite messages table.

    Each call runs on a fresh connection in the default executor, so the
    event path and admin paths can use the store concurrently. Atomicity
    comes from SQLite's upsert and single-statement deletes, not from
    locks held here.
    """

    def __init__(self, db: Database):
        self.db = db

    @classmethod
    def open(cls, path: str) -> "MessageStore":
        """Provision the database at ``path`` and return a store for it."""
        return cls(init_db(path))

    async def _run(self, fn: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    # ============================================================
    # WRITE
    # ============================================================

    async def put(self, message: Message) -> None:
        """Insert a message, or update body/created_at if its platform ID exists.

        Raises:
            StorageError: on any database failure.
        """
        await self._run(self._put_sync, message)

    def _put_sync(self, message: Message) -> None:
        try:
            with self.db.connection() as conn:
                cur = conn.execute(
                    _UPSERT,
                    (
                        message.conversation_id,
                        message.platform_message_id,
                        message.sender_id,
                        message.sender_kind,
                        message.body,
                        message.kind,
                        to_db_time(message.created_at),
                    ),
                )
        except sqlite3.Error as e:
            logger.error(
                f"Failed to save message: chat_id={message.conversation_id}, "
                f"message_id={message.platform_message_id}, error={e}"
            )
            raise StorageError(f"failed to save message: {e}", key=message.platform_message_id) from e

        logger.debug(
            f"Saved message: chat_id={message.conversation_id}, "
            f"message_id={message.platform_message_id}, rows_affected={cur.rowcount}"
        )

    async def record_sent(self, conversation_id: str, platform_message_id: str, body: str, kind: str = "text") -> None:
        """Persist a message the bot itself sent.

        Raises:
            StorageError: on any database failure.
        """
        await self.put(
            Message(
                conversation_id=conversation_id,
                platform_message_id=platform_message_id,
                body=body,
                kind=kind,
                sender_kind=SENDER_BOT,
            )
        )

    # ============================================================
    # READ
    # ============================================================

    async def list_by_conversation(self, conversation_id: str, limit: int = DEFAULT_LIST_LIMIT) -> list[Message]:
        """Return up to ``limit`` most recent messages of a conversation, oldest first.

        A non-positive limit means the default of 50. An unknown
        conversation yields an empty list.

        Raises:
            StorageError: on read faults.
        """
        if limit <= 0:
            limit = DEFAULT_LIST_LIMIT
        return await self._run(self._list_sync, conversation_id, limit)

    def _list_sync(self, conversation_id: str, limit: int) -> list[Message]:
        try:
            with self.db.connection() as conn:
                rows = conn.execute(_SELECT_RECENT, (conversation_id, limit)).fetchall()
                # newest first → reverse for chronological order
                return [Message.from_row(row) for row in reversed(rows)]
        except (sqlite3.Error, IndexError, KeyError) as e:
            logger.error(f"Failed to query messages for chat_id={conversation_id}: {e}")
            raise StorageError(f"failed to query messages: {e}", key=conversation_id) from e

    async def count(self, conversation_id: Optional[str] = None) -> int:
        """Count stored messages, overall or for one conversation."""
        return await self._run(self._count_sync, conversation_id)

    def _count_sync(self, conversation_id: Optional[str]) -> int:
        try:
            with self.db.connection() as conn:
                if conversation_id is None:
                    row = conn.execute("SELECT COUNT(*) FROM messages").fetchone()
                else:
                    row = conn.execute(
                        "SELECT COUNT(*) FROM messages WHERE chat_id = ?", (conversation_id,)
                    ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"failed to count messages: {e}", key=conversation_id) from e
        return row[0]

    # ============================================================
    # RETENTION
    # ============================================================

    async def trim_to_recent(self, conversation_id: str, keep_count: int) -> int:
        """Keep only the ``keep_count`` most recent messages of a conversation.

        Recency is ``created_at`` descending, ties broken by insertion order.
        ``keep_count`` of 0 (or less) deletes every message of the conversation.

        Returns:
            Number of deleted rows.

        Raises:
            StorageError: on any database failure.
        """
        return await self._run(self._trim_sync, conversation_id, keep_count)

    def _trim_sync(self, conversation_id: str, keep_count: int) -> int:
        try:
            with self.db.connection() as conn:
                if keep_count <= 0:
                    cur = conn.execute("DELETE FROM messages WHERE chat_id = ?", (conversation_id,))
                else:
                    cur = conn.execute(
                        _DELETE_ALL_BUT_RECENT, (conversation_id, conversation_id, keep_count)
                    )
                deleted = cur.rowcount
        except sqlite3.Error as e:
            logger.error(f"Failed to trim messages for chat_id={conversation_id}: {e}")
            raise StorageError(f"failed to delete old messages: {e}", key=conversation_id) from e

        logger.info(f"Trimmed chat_id={conversation_id}: kept {max(keep_count, 0)}, deleted {deleted}")
        return deleted
