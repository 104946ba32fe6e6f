"""FinBot — ties the store, tracker, router and dispatcher together."""

import logging
from typing import Optional

from .broadcast import BroadcastDispatcher
from .communication.lark import LarkService
from .config import FinbotSettings
from .db.messages import MessageStore
from .router import EventRouter
from .tracker import ConversationTracker

logger = logging.getLogger("finbot.bot")


class FinBot:
    """One bot instance. Components are created by ``start()``.

    Each instance owns its own tracker, so several bots in one process
    never share a "recent conversation".
    """

    def __init__(self, settings: FinbotSettings, lark_service: Optional[LarkService] = None):
        self.settings = settings
        self.lark: Optional[LarkService] = lark_service
        self.store: Optional[MessageStore] = None
        self.tracker = ConversationTracker()
        self.router: Optional[EventRouter] = None
        self.dispatcher: Optional[BroadcastDispatcher] = None

    def start(self):
        """Open the database and build the router and dispatcher.

        Raises:
            StorageError: the database could not be provisioned.
        """
        logger.info("Starting finbot...")

        self.store = MessageStore.open(self.settings.database_path)

        if self.lark is None:
            self.lark = LarkService(self.settings.app_id, self.settings.app_secret, self.settings.domain)

        self.router = EventRouter(self.lark, self.store, self.tracker)
        self.dispatcher = BroadcastDispatcher(
            self.lark, self.store, self.tracker, page_size=self.settings.chat_page_size
        )
        logger.info("finbot ready.")
