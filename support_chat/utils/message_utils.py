"""Utility helpers for constructing LangChain message histories."""

from __future__ import annotations

from typing import List

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from support_chat.models.chat import ChatMessage, ChatRole


def build_history_messages(messages: List[ChatMessage]) -> List[BaseMessage]:
    """Convert browser chat messages into LangChain message objects."""

    history_messages: List[BaseMessage] = []

    for item in messages:
        text = item.joined_text()
        if not text:
            continue
        if item.role == ChatRole.USER:
            history_messages.append(HumanMessage(content=text))
        elif item.role == ChatRole.ASSISTANT:
            history_messages.append(AIMessage(content=text))
        else:
            # Skip client-supplied system messages to avoid stacking system prompts.
            continue

    return history_messages


def limit_history(messages: List[BaseMessage], max_messages: int) -> List[BaseMessage]:
    """Keep only the most recent ``max_messages`` entries."""
    if max_messages <= 0 or len(messages) <= max_messages:
        return list(messages)
    return list(messages[-max_messages:])
