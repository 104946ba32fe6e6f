"""Conversation tracker — remembers the most recently active conversation.

Single slot, last write wins. The Event Router writes it on every inbound
message; the broadcast path reads it to find a default recipient.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

logger = logging.getLogger("finbot.tracker")

KIND_P2P = "p2p"
KIND_GROUP = "group"


@dataclass(frozen=True)
class ConversationSnapshot:
    conversation_id: str
    conversation_kind: str


class RWLock:
    """Reader/writer lock: readers share, writers are exclusive.

    Waiting writers block new readers so a stream of reads cannot
    starve an update. Not reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ConversationTracker:
    """Concurrency-safe holder of the latest ConversationSnapshot."""

    def __init__(self):
        self._lock = RWLock()
        self._snapshot: Optional[ConversationSnapshot] = None

    def update(self, conversation_id: str, conversation_kind: str) -> None:
        snapshot = ConversationSnapshot(conversation_id, conversation_kind)
        with self._lock.write():
            self._snapshot = snapshot
        logger.debug(f"Recent conversation: chat_id={conversation_id}, chat_type={conversation_kind}")

    def current(self) -> Optional[ConversationSnapshot]:
        """Latest snapshot, or None if no event has been observed yet."""
        with self._lock.read():
            return self._snapshot
