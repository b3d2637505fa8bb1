"""
Pydantic schemas for chat and conversation history endpoints.
"""
import uuid
from pydantic import BaseModel, Field
from typing import Optional, List, Literal

class ChatMessageIn(BaseModel):
    """
    One message of the context sent by the client.
    Only "user" messages are stored; all of them are forwarded to the model.
    """
    role: Literal["system", "user", "assistant"]
    content: str

class ChatIn(BaseModel):
    """
    Request model for a chat turn.
    Omitting conversationId starts a new conversation.
    """
    messages: List[ChatMessageIn]
    conversationId: Optional[uuid.UUID] = None
    model: Optional[str] = Field(default=None, max_length=64)  # Optional model override

class ConversationItem(BaseModel):
    """
    Conversation item model for list endpoints.
    """
    id: str  # Conversation unique identifier
    title: Optional[str] = None  # Derived from the first message or renamed by the user
    createdAt: str  # Creation timestamp (ISO format)

class MessageOut(BaseModel):
    """Single stored chat message."""
    role: str  # "user" or "assistant"
    content: str
    createdAt: str

class ConversationTitleIn(BaseModel):
    """
    Request model for renaming a conversation.
    An empty title falls back to a placeholder.
    """
    title: Optional[str] = None  # New conversation title
