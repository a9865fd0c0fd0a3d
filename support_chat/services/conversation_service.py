"""Cache-first conversation reads and invalidate-on-write transcript updates."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from support_chat.core.errors import ConversationNotFoundError
from support_chat.core.logging import get_logger
from support_chat.models.chat import ChatFinishEvent, Conversation, MessageRecord, MessageRole
from support_chat.services.cache import ChatCacheKeys, ICacheBackend
from support_chat.services.conversation_store import ConversationStore

logger = get_logger(__name__)


class CacheStatus(str, Enum):
    """Where a read was served from, reported in the ``X-Cache`` header."""
    HIT = "HIT"
    MISS = "MISS"


@dataclass
class CachedRead:
    """JSON-ready response body plus its cache status."""
    data: List[Dict[str, Any]]
    cache_status: CacheStatus

    @property
    def is_hit(self) -> bool:
        return self.cache_status == CacheStatus.HIT


class ConversationService:
    """Reads and writes conversations against the store and the cache.

    The store is authoritative. Cached bodies are exactly what a miss would
    have returned, so a hit and a miss differ only in the cache status.
    Writes persist first and invalidate second.
    """

    def __init__(self, store: ConversationStore, cache: ICacheBackend, cache_ttl: int = 90):
        self.store = store
        self.cache = cache
        self.cache_ttl = cache_ttl

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def list_conversations(self, session_id: Optional[str] = None) -> CachedRead:
        """Conversation summaries for a session (or every conversation)."""
        cache_key = ChatCacheKeys.conversation_list(session_id) if session_id else None

        if cache_key:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                return CachedRead(data=cached, cache_status=CacheStatus.HIT)

        summaries = await self.store.list_conversation_summaries(session_id)
        data = [summary.model_dump(mode="json", by_alias=True) for summary in summaries]

        if cache_key:
            await self.cache.set(cache_key, data, self.cache_ttl)

        return CachedRead(data=data, cache_status=CacheStatus.MISS)

    async def list_messages(self, conversation_id: str) -> CachedRead:
        """Messages of a conversation in creation order.

        Raises:
            ConversationNotFoundError: on a cache miss for an unknown conversation.
        """
        cache_key = ChatCacheKeys.conversation_messages(conversation_id)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            return CachedRead(data=cached, cache_status=CacheStatus.HIT)

        conversation = await self.store.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        messages = await self.store.list_messages(conversation_id)
        data = [message.model_dump(mode="json", by_alias=True) for message in messages]
        await self.cache.set(cache_key, data, self.cache_ttl)

        return CachedRead(data=data, cache_status=CacheStatus.MISS)

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def resolve_conversation(
        self,
        conversation_id: Optional[str],
        session_id: Optional[str] = None,
    ) -> Conversation:
        """Load the requested conversation or start a new one.

        Raises:
            ConversationNotFoundError: if ``conversation_id`` is given but unknown.
        """
        if conversation_id:
            conversation = await self.store.get_conversation(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(conversation_id)
            return conversation

        conversation = await self.store.create_conversation(session_id=session_id)
        logger.info("Started conversation %s", conversation.id)
        return conversation

    async def record_user_message(self, conversation_id: str, content: str) -> MessageRecord:
        """Persist the inbound user message."""
        return await self.store.add_message(conversation_id, MessageRole.USER, content)

    async def record_assistant_reply(
        self,
        conversation_id: str,
        session_id: Optional[str],
        event: ChatFinishEvent,
    ) -> Optional[MessageRecord]:
        """Persist the finished reply, then drop the cache entries it made stale.

        An aborted or failed stream that produced no text persists nothing.
        """
        message = None
        if event.text or event.finish_reason not in ("abort", "error"):
            message = await self.store.add_message(conversation_id, MessageRole.AI, event.text)
            logger.info(
                "Saved assistant reply for conversation %s (%d chars, finish=%s)",
                conversation_id, len(event.text), event.finish_reason,
            )
        else:
            logger.warning(
                "No assistant reply saved for conversation %s (finish=%s)",
                conversation_id, event.finish_reason,
            )

        await self.invalidate(conversation_id, session_id)
        return message

    async def invalidate(self, conversation_id: str, session_id: Optional[str] = None) -> None:
        """Delete the message-list entry and, with a session, the conversation-list entry."""
        keys = []
        if session_id:
            keys.append(ChatCacheKeys.conversation_list(session_id))
        keys.append(ChatCacheKeys.conversation_messages(conversation_id))
        await self.cache.delete(keys)

    def finish_handler(
        self,
        conversation_id: str,
        session_id: Optional[str],
    ) -> Callable[[ChatFinishEvent], Awaitable[Optional[MessageRecord]]]:
        """Callback for ``StreamingChatResult.on_finish`` bound to one request."""

        async def _on_finish(event: ChatFinishEvent) -> Optional[MessageRecord]:
            return await self.record_assistant_reply(conversation_id, session_id, event)

        return _on_finish
