"""LLM integration: streamed reply generation behind a provider-neutral interface."""

from support_chat.services.llm.reply_generator import (
    FinishHookTasks,
    LangChainStreamingResult,
    ReplyGenerator,
    StreamingChatResult,
    create_chat_model,
)

__all__ = [
    "FinishHookTasks",
    "LangChainStreamingResult",
    "ReplyGenerator",
    "StreamingChatResult",
    "create_chat_model",
]
