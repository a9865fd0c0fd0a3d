"""Persistence layer for conversations, messages and store FAQs."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

import aiosqlite

from support_chat.core.logging import get_logger
from support_chat.models.chat import (
    Conversation,
    ConversationSummary,
    MessageRecord,
    MessageRole,
)

logger = get_logger(__name__)

NO_MESSAGES_PLACEHOLDER = "(no messages)"
FIRST_MESSAGE_PREVIEW_LENGTH = 100


@dataclass
class StoreFaq:
    """A question/answer pair from the store knowledge base."""

    id: str
    category: str
    question: str
    answer: str
    created_at: datetime


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


class ConversationStore:
    """System of record for chat transcripts.

    Every write is a single statement on its own connection; nothing spans
    more than one operation. Messages are read back in creation order, with
    insertion order breaking timestamp ties.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._initialized = False

    async def initialize(self) -> None:
        """Ensure the underlying SQLite database and tables exist."""
        if self._initialized:
            return

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("PRAGMA foreign_keys = ON")
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS conversations (
                    id TEXT PRIMARY KEY,
                    session_id TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    conversation_id TEXT NOT NULL,
                    role TEXT NOT NULL CHECK (role IN ('user', 'ai')),
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE
                )
                """
            )
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS store_faqs (
                    id TEXT PRIMARY KEY,
                    category TEXT NOT NULL,
                    question TEXT NOT NULL,
                    answer TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE (category, question)
                )
                """
            )
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_conversations_session ON conversations(session_id)"
            )
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_conversation "
                "ON messages(conversation_id, created_at)"
            )
            await db.commit()

        self._initialized = True
        logger.info("Conversation store initialized at %s", self.db_path)

    async def ping(self) -> bool:
        """Cheap liveness check for the health endpoint."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute("SELECT 1") as cursor:
                row = await cursor.fetchone()
        return bool(row and row[0] == 1)

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        """Fetch a conversation by id."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                "SELECT id, session_id, created_at FROM conversations WHERE id = ?",
                (conversation_id,),
            ) as cursor:
                row = await cursor.fetchone()

        if row is None:
            return None
        return Conversation(id=row[0], session_id=row[1], created_at=_parse_ts(row[2]))

    async def create_conversation(self, session_id: Optional[str] = None) -> Conversation:
        """Create a conversation, optionally tagged with a session id."""
        conversation = Conversation(id=_new_id(), session_id=session_id, created_at=_now())
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO conversations (id, session_id, created_at) VALUES (?, ?, ?)",
                (conversation.id, conversation.session_id, conversation.created_at.isoformat()),
            )
            await db.commit()

        logger.debug("Created conversation %s (session=%s)", conversation.id, session_id)
        return conversation

    async def list_conversation_summaries(
        self,
        session_id: Optional[str] = None,
        preview_length: int = FIRST_MESSAGE_PREVIEW_LENGTH,
    ) -> List[ConversationSummary]:
        """List conversations newest first, each with a preview of its first message.

        Args:
            session_id: Restrict to one session; None lists every conversation.
            preview_length: Characters of the first message to keep.
        """
        query = """
            SELECT c.id, c.created_at, (
                SELECT m.content FROM messages m
                WHERE m.conversation_id = c.id
                ORDER BY m.created_at ASC, m.rowid ASC
                LIMIT 1
            ) AS first_message
            FROM conversations c
        """
        params: tuple = ()
        if session_id is not None:
            query += " WHERE c.session_id = ?"
            params = (session_id,)
        query += " ORDER BY c.created_at DESC, c.rowid DESC"

        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(query, params) as cursor:
                rows = await cursor.fetchall()

        summaries = []
        for conversation_id, created_at, first_message in rows:
            preview = (first_message or "")[:preview_length] or NO_MESSAGES_PLACEHOLDER
            summaries.append(
                ConversationSummary(
                    id=conversation_id,
                    created_at=_parse_ts(created_at),
                    first_message=preview,
                )
            )
        return summaries

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def add_message(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
    ) -> MessageRecord:
        """Append a message to a conversation."""
        message = MessageRecord(
            id=_new_id(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            created_at=_now(),
        )
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("PRAGMA foreign_keys = ON")
            await db.execute(
                """
                INSERT INTO messages (id, conversation_id, role, content, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    message.conversation_id,
                    message.role.value,
                    message.content,
                    message.created_at.isoformat(),
                ),
            )
            await db.commit()
        return message

    async def list_messages(self, conversation_id: str) -> List[MessageRecord]:
        """All messages of a conversation in creation order."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                """
                SELECT id, conversation_id, role, content, created_at
                FROM messages
                WHERE conversation_id = ?
                ORDER BY created_at ASC, rowid ASC
                """,
                (conversation_id,),
            ) as cursor:
                rows = await cursor.fetchall()

        return [
            MessageRecord(
                id=row[0],
                conversation_id=row[1],
                role=MessageRole(row[2]),
                content=row[3],
                created_at=_parse_ts(row[4]),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Store FAQs
    # ------------------------------------------------------------------

    async def list_faqs(self) -> List[StoreFaq]:
        """All FAQs ordered by category, then creation."""
        async with aiosqlite.connect(self.db_path) as db:
            async with db.execute(
                """
                SELECT id, category, question, answer, created_at
                FROM store_faqs
                ORDER BY category ASC, created_at ASC, rowid ASC
                """
            ) as cursor:
                rows = await cursor.fetchall()

        return [
            StoreFaq(
                id=row[0],
                category=row[1],
                question=row[2],
                answer=row[3],
                created_at=_parse_ts(row[4]),
            )
            for row in rows
        ]

    async def upsert_faq(self, category: str, question: str, answer: str) -> None:
        """Insert a FAQ or update the answer of an existing (category, question)."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO store_faqs (id, category, question, answer, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(category, question) DO UPDATE SET
                    answer=excluded.answer
                """,
                (_new_id(), category, question, answer, _now().isoformat()),
            )
            await db.commit()
