"""Chatbot API endpoints."""

import logging
import uuid
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from modules.web.dependencies import get_app_state

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatMessageResponse(BaseModel):
    id: int
    text: str
    is_bot: bool
    timestamp: str


class ChatRequest(BaseModel):
    """Request model for sending a chat message."""
    text: str
    conversation_id: Optional[str] = None


class ConversationResponse(BaseModel):
    conversation_id: str
    messages: List[ChatMessageResponse]


def _conversation_response(conversation_id: str, messages) -> ConversationResponse:
    return ConversationResponse(
        conversation_id=conversation_id,
        messages=[ChatMessageResponse(**m.to_dict()) for m in messages],
    )


@router.post("", response_model=ConversationResponse)
async def send_message(body: ChatRequest, request: Request):
    """Send a message and get the bot's reply.

    A new conversation (starting with the welcome message) is created when
    no conversation_id is given. Blank messages are ignored.

    Returns:
        The full conversation so far
    """
    state = get_app_state(request)

    if body.conversation_id:
        conversation = state.get_conversation(body.conversation_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversation not found")
        conversation_id = body.conversation_id
    else:
        conversation_id = str(uuid.uuid4())
        conversation = state.new_conversation(conversation_id)

    await conversation.send(body.text)
    return _conversation_response(conversation_id, conversation.messages)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(conversation_id: str, request: Request):
    """Get a conversation's messages."""
    conversation = get_app_state(request).get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return _conversation_response(conversation_id, conversation.messages)
