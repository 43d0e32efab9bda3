"""Application state management for web server."""

import logging
from collections import OrderedDict
from typing import Optional

from cropai.orchestrator import CropAIOrchestrator
from modules.chat.conversation import ChatConversation

logger = logging.getLogger(__name__)


class AppState:
    """Application state container.

    Holds the orchestrator (and through it every service) plus the chat
    conversations of connected clients, for dependency injection into API
    endpoints. Conversations are kept in least-recently-used order and the
    oldest is dropped once ``max_conversations`` is exceeded.
    """

    def __init__(self, orchestrator: CropAIOrchestrator, max_conversations: Optional[int] = None):
        """Initialize application state.

        Args:
            orchestrator: Started orchestrator
            max_conversations: Conversation cap (None = chat config value)
        """
        self.orchestrator = orchestrator
        self.max_conversations = max_conversations or orchestrator.settings.chat.max_conversations
        self.conversations: "OrderedDict[str, ChatConversation]" = OrderedDict()

    def get_conversation(self, conversation_id: str) -> Optional[ChatConversation]:
        conversation = self.conversations.get(conversation_id)
        if conversation is not None:
            self.conversations.move_to_end(conversation_id)
        return conversation

    def new_conversation(self, conversation_id: str) -> ChatConversation:
        conversation = self.orchestrator.new_conversation()
        self.conversations[conversation_id] = conversation

        while len(self.conversations) > self.max_conversations:
            evicted, _ = self.conversations.popitem(last=False)
            logger.debug(f"Dropped chat conversation {evicted}")
        return conversation
