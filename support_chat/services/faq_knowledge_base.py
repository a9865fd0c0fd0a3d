"""Store FAQ knowledge base used by the system prompt."""

from collections import OrderedDict
from typing import Dict, List, Optional

from support_chat.core.logging import get_logger
from support_chat.core.prompts import FAQ_BLOCK_HEADER, FAQ_BLOCK_INTRO, build_system_prompt
from support_chat.services.conversation_store import ConversationStore, StoreFaq

logger = get_logger(__name__)


def format_faq_block(faqs: List[StoreFaq]) -> str:
    """Group FAQs by category into the text block appended to the prompt."""
    if not faqs:
        return ""

    by_category: Dict[str, List[StoreFaq]] = OrderedDict()
    for faq in faqs:
        by_category.setdefault(faq.category, []).append(faq)

    lines = [FAQ_BLOCK_HEADER, f"{FAQ_BLOCK_INTRO}\n"]
    for category, entries in by_category.items():
        lines.append(f"{category.upper()}:")
        for faq in entries:
            lines.append(f"Q: {faq.question}")
            lines.append(f"A: {faq.answer}\n")
    return "\n".join(lines)


class FaqKnowledgeBase:
    """FAQ text loaded once at startup and reused for every prompt."""

    def __init__(self) -> None:
        self._faq_text: Optional[str] = None
        self.faq_count = 0

    @property
    def loaded(self) -> bool:
        return self._faq_text is not None

    @property
    def faq_text(self) -> str:
        return self._faq_text or ""

    async def load(self, store: ConversationStore) -> None:
        """Load FAQs from the store. Failures leave an empty knowledge base."""
        logger.info("Loading store FAQs from database...")
        try:
            faqs = await store.list_faqs()
        except Exception as e:
            logger.error(f"Failed to load FAQs: {e}", exc_info=True)
            self._faq_text = ""
            self.faq_count = 0
            return

        if not faqs:
            logger.warning("No FAQs found in database")

        self._faq_text = format_faq_block(faqs)
        self.faq_count = len(faqs)
        categories = len({faq.category for faq in faqs})
        logger.info(f"Loaded {len(faqs)} FAQs from {categories} categories")

    def system_prompt(self) -> str:
        """System instruction sent ahead of the conversation history."""
        return build_system_prompt(self.faq_text)
