"""Chat and conversation data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def to_iso_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class MessageRole(str, Enum):
    """Roles stored in the transcript."""
    USER = "user"
    AI = "ai"


class ChatRole(str, Enum):
    """Roles exchanged with the browser on the streaming boundary."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Conversation(_CamelModel):
    """A persisted conversation."""
    id: str
    session_id: Optional[str] = Field(None, alias="sessionId")
    created_at: datetime = Field(..., alias="createdAt")


class ConversationSummary(_CamelModel):
    """Entry of the conversation list endpoint."""
    id: str = Field(..., description="Conversation ID")
    created_at: datetime = Field(..., alias="createdAt")
    first_message: str = Field(..., alias="firstMessage", description="Leading text of the first message")

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return to_iso_timestamp(value)


class MessageRecord(_CamelModel):
    """A persisted transcript message."""
    id: str
    conversation_id: str = Field(..., alias="conversationId")
    role: MessageRole
    content: str
    created_at: datetime = Field(..., alias="createdAt")

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return to_iso_timestamp(value)


class ChatMessagePart(BaseModel):
    """One part of a UI chat message. Only ``text`` parts carry content."""
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


class ChatMessage(BaseModel):
    """Chat message as sent by the browser client."""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    role: ChatRole
    parts: List[ChatMessagePart] = Field(default_factory=list)
    content: Optional[str] = None

    def text_content(self) -> Optional[str]:
        """Text of the first text part, falling back to ``content``."""
        for part in self.parts:
            if part.type == "text" and part.text:
                return part.text
        return self.content or None

    def joined_text(self) -> str:
        """All text parts concatenated, used for the model history."""
        texts = [part.text for part in self.parts if part.type == "text" and part.text]
        if texts:
            return "".join(texts)
        return self.content or ""


class SendMessageRequest(_CamelModel):
    """Request body of ``POST /api/ai``."""
    messages: List[ChatMessage] = Field(default_factory=list)
    conversation_id: Optional[str] = Field(None, alias="conversationId")
    session_id: Optional[str] = Field(None, alias="sessionId")

    def last_user_text(self) -> Optional[str]:
        """Text of the trailing message when it comes from the user."""
        if not self.messages:
            return None
        last = self.messages[-1]
        if last.role != ChatRole.USER:
            return None
        return last.text_content()


class TokenUsage(BaseModel):
    """Token accounting reported at the end of a stream."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatFinishEvent(BaseModel):
    """Emitted once when a streamed reply ends."""
    text: str
    finish_reason: str = "stop"
    usage: Optional[TokenUsage] = None


def message_to_chat_message(message: MessageRecord) -> ChatMessage:
    """Convert a stored message to the browser format (``ai`` -> ``assistant``)."""
    role = ChatRole.ASSISTANT if message.role == MessageRole.AI else ChatRole(message.role.value)
    return ChatMessage(
        id=message.id,
        role=role,
        parts=[ChatMessagePart(type="text", text=message.content)],
    )


def messages_to_chat_messages(messages: List[MessageRecord]) -> List[ChatMessage]:
    """Convert a stored transcript to browser chat messages.

    Public helper for clients built on this package: the messages endpoint
    returns stored records (role ``ai``), and a client resuming a
    conversation feeds them back to ``POST /api/ai`` in this form.
    """
    return [message_to_chat_message(message) for message in messages]
