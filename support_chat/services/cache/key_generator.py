"""Cache key generation for conversation reads.

Single source of truth for the keys written by the read path and deleted by
the write path.

Key format: chat:{resource}:{owner-kind}:{owner-id}

Examples:
    chat:conversations:session:4f1c2a
    chat:messages:conversation:9b7e01
"""


class ChatCacheKeys:
    """Namespaced keys for the conversation caches."""

    PREFIX = "chat"

    @classmethod
    def conversation_list(cls, session_id: str) -> str:
        """Key for the conversation list of a browser session.

        Args:
            session_id: Opaque session identifier.

        Returns:
            Cache key string.
        """
        return f"{cls.PREFIX}:conversations:session:{session_id}"

    @classmethod
    def conversation_messages(cls, conversation_id: str) -> str:
        """Key for the message list of a conversation.

        Args:
            conversation_id: Conversation identifier.

        Returns:
            Cache key string.
        """
        return f"{cls.PREFIX}:messages:conversation:{conversation_id}"
