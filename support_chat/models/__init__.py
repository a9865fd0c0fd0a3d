"""Pydantic models shared by the API and the services."""

from support_chat.models.chat import (
    ChatFinishEvent,
    ChatMessage,
    ChatMessagePart,
    ChatRole,
    Conversation,
    ConversationSummary,
    MessageRecord,
    MessageRole,
    SendMessageRequest,
    TokenUsage,
    message_to_chat_message,
    messages_to_chat_messages,
)

__all__ = [
    "ChatFinishEvent",
    "ChatMessage",
    "ChatMessagePart",
    "ChatRole",
    "Conversation",
    "ConversationSummary",
    "MessageRecord",
    "MessageRole",
    "SendMessageRequest",
    "TokenUsage",
    "message_to_chat_message",
    "messages_to_chat_messages",
]
