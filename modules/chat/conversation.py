"""Session-scoped chatbot conversation."""

import asyncio
import itertools
import logging
from typing import List, Optional, Tuple

from core.bus.event_bus import EventBus
from core.interfaces.events import Event, EventType
from core.models.chat import ChatMessage
from modules.chat.responder import WELCOME_MESSAGE, respond

logger = logging.getLogger(__name__)


class ChatConversation:
    """Message log of one chat widget session.

    Messages are never edited or removed; ids come from a single counter so
    they are strictly increasing even when replies are delayed.
    """

    def __init__(self, reply_delay_seconds: float = 1.0, event_bus: Optional[EventBus] = None):
        self.reply_delay_seconds = reply_delay_seconds
        self._event_bus = event_bus or EventBus()
        self._ids = itertools.count(1)
        self._messages: List[ChatMessage] = []
        self._append(WELCOME_MESSAGE, is_bot=True)

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def _append(self, text: str, is_bot: bool) -> ChatMessage:
        message = ChatMessage(id=next(self._ids), text=text, is_bot=is_bot)
        self._messages.append(message)
        self._event_bus.publish(Event(
            type=EventType.CHAT_MESSAGE,
            data=message.to_dict(),
            source="chat"
        ))
        return message

    async def send(self, text: str) -> Optional[Tuple[ChatMessage, ChatMessage]]:
        """Post a user message and, after the reply delay, the bot's answer.

        Returns:
            (user_message, bot_message), or None for blank input
        """
        if not text or not text.strip():
            return None

        user_message = self._append(text, is_bot=False)
        if self.reply_delay_seconds > 0:
            await asyncio.sleep(self.reply_delay_seconds)
        bot_message = self._append(respond(text), is_bot=True)

        logger.debug(f"Chat reply #{bot_message.id} to #{user_message.id}")
        return user_message, bot_message
