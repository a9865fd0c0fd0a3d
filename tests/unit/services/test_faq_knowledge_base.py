"""Tests for the store FAQ knowledge base."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from support_chat.core.prompts import FAQ_BLOCK_HEADER, SUPPORT_SYSTEM_PROMPT
from support_chat.services.conversation_store import StoreFaq
from support_chat.services.faq_knowledge_base import FaqKnowledgeBase, format_faq_block


def faq(category: str, question: str, answer: str) -> StoreFaq:
    return StoreFaq(
        id=f"{category}-{question}",
        category=category,
        question=question,
        answer=answer,
        created_at=datetime.now(timezone.utc),
    )


def test_format_groups_by_category():
    block = format_faq_block([
        faq("returns", "Policy?", "7 days"),
        faq("shipping", "Where?", "India and the US"),
        faq("shipping", "How long?", "3-5 days"),
    ])

    assert block.startswith(FAQ_BLOCK_HEADER)
    assert block.count("SHIPPING:") == 1
    assert block.index("RETURNS:") < block.index("SHIPPING:")
    assert "Q: How long?\nA: 3-5 days" in block


def test_format_empty():
    assert format_faq_block([]) == ""


@pytest.mark.asyncio
async def test_load_from_store(conversation_store):
    await conversation_store.upsert_faq("support", "Hours?", "Mon-Fri 10am-6pm")
    knowledge_base = FaqKnowledgeBase()

    await knowledge_base.load(conversation_store)

    assert knowledge_base.loaded
    assert knowledge_base.faq_count == 1
    prompt = knowledge_base.system_prompt()
    assert prompt.startswith(SUPPORT_SYSTEM_PROMPT)
    assert "SUPPORT:" in prompt
    assert "A: Mon-Fri 10am-6pm" in prompt


@pytest.mark.asyncio
async def test_load_failure_leaves_empty_block():
    store = AsyncMock()
    store.list_faqs.side_effect = RuntimeError("no such table: store_faqs")
    knowledge_base = FaqKnowledgeBase()

    await knowledge_base.load(store)

    assert knowledge_base.loaded
    assert knowledge_base.faq_text == ""
    assert knowledge_base.system_prompt() == SUPPORT_SYSTEM_PROMPT


def test_unloaded_prompt_is_base_instruction():
    assert FaqKnowledgeBase().system_prompt() == SUPPORT_SYSTEM_PROMPT
