"""Dependency injection container for service management.

This module provides a centralized container for the process-wide resources
(cache connection, conversation store, chat model) and the services built on
them. Request handlers reach it through ``app.state.container`` instead of
module-level singletons.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from support_chat.core.logging import get_logger

if TYPE_CHECKING:
    from support_chat.core.config import Settings
    from support_chat.services.cache import ICacheBackend
    from support_chat.services.conversation_service import ConversationService
    from support_chat.services.conversation_store import ConversationStore
    from support_chat.services.faq_knowledge_base import FaqKnowledgeBase
    from support_chat.services.llm import ReplyGenerator

logger = get_logger(__name__)


class ServiceNotInitializedError(Exception):
    """Raised when accessing a service that hasn't been initialized."""

    def __init__(self, service_name: str):
        super().__init__(f"Service '{service_name}' has not been initialized. "
                         f"Call container.initialize() first.")
        self.service_name = service_name


@dataclass
class ServiceContainer:
    """Centralized container for dependency injection.

    Usage:
        container = ServiceContainer()
        await container.initialize(settings)

        service = container.conversation_service

        await container.shutdown()
    """

    _cache: Optional[ICacheBackend] = field(default=None, repr=False)
    _conversation_store: Optional[ConversationStore] = field(default=None, repr=False)
    _faq_knowledge_base: Optional[FaqKnowledgeBase] = field(default=None, repr=False)
    _reply_generator: Optional[ReplyGenerator] = field(default=None, repr=False)
    _conversation_service: Optional[ConversationService] = field(default=None, repr=False)
    _initialized: bool = field(default=False, repr=True)
    _settings: Optional[Settings] = field(default=None, repr=False)

    async def initialize(self, settings: Settings) -> None:
        """Initialize all services.

        Services already injected through the setters are kept.

        Args:
            settings: Application settings.

        Raises:
            Exception: If the conversation store fails to initialize.
        """
        if self._initialized:
            logger.warning("Container already initialized, skipping")
            return

        self._settings = settings
        logger.info("Initializing service container...")

        # Import here to avoid circular imports
        from support_chat.services.cache import create_cache_backend
        from support_chat.services.conversation_service import ConversationService
        from support_chat.services.conversation_store import ConversationStore
        from support_chat.services.faq_knowledge_base import FaqKnowledgeBase
        from support_chat.services.llm import FinishHookTasks, ReplyGenerator

        try:
            if self._conversation_store is None:
                self._conversation_store = ConversationStore(settings.database_path)
            await self._conversation_store.initialize()
            logger.info("Conversation store initialized")

            # Cache failures never abort startup
            if self._cache is None:
                self._cache = create_cache_backend(settings)
            await self._cache.connect()
            logger.info(f"Cache initialized ({type(self._cache).__name__}, available={self._cache.available})")

            if self._faq_knowledge_base is None:
                self._faq_knowledge_base = FaqKnowledgeBase()
            if not self._faq_knowledge_base.loaded:
                await self._faq_knowledge_base.load(self._conversation_store)

            if self._reply_generator is None:
                self._reply_generator = ReplyGenerator.from_settings(
                    settings, self._faq_knowledge_base.system_prompt, finish_tasks=FinishHookTasks()
                )
            if not settings.openai_api_key:
                logger.warning("OPENAI_API_KEY is not set; chat requests will fail")

            if self._conversation_service is None:
                self._conversation_service = ConversationService(
                    self._conversation_store,
                    self._cache,
                    cache_ttl=settings.conversation_cache_ttl,
                )

            self._initialized = True
            logger.info("Service container initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize service container: {e}")
            await self.shutdown()
            raise

    async def shutdown(self) -> None:
        """Shutdown all services and cleanup resources."""
        logger.info("Shutting down service container...")

        # Let detached finish hooks persist replies before the cache goes away
        if self._reply_generator is not None:
            try:
                await self._reply_generator.finish_tasks.drain()
            except Exception as e:
                logger.error(f"Error draining stream finish hooks: {e}")

        if self._cache is not None:
            try:
                await self._cache.disconnect()
                logger.info("Cache disconnected")
            except Exception as e:
                logger.error(f"Error disconnecting cache: {e}")

        self._initialized = False
        logger.info("Service container shut down")

    @property
    def is_initialized(self) -> bool:
        """Check if the container is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        if self._settings is None:
            raise ServiceNotInitializedError("settings")
        return self._settings

    @property
    def cache(self) -> ICacheBackend:
        """Get the cache backend."""
        if self._cache is None:
            raise ServiceNotInitializedError("cache")
        return self._cache

    @property
    def conversation_store(self) -> ConversationStore:
        """Get the conversation store."""
        if self._conversation_store is None:
            raise ServiceNotInitializedError("conversation_store")
        return self._conversation_store

    @property
    def faq_knowledge_base(self) -> FaqKnowledgeBase:
        """Get the FAQ knowledge base."""
        if self._faq_knowledge_base is None:
            raise ServiceNotInitializedError("faq_knowledge_base")
        return self._faq_knowledge_base

    @property
    def reply_generator(self) -> ReplyGenerator:
        """Get the reply generator."""
        if self._reply_generator is None:
            raise ServiceNotInitializedError("reply_generator")
        return self._reply_generator

    @property
    def conversation_service(self) -> ConversationService:
        """Get the conversation service."""
        if self._conversation_service is None:
            raise ServiceNotInitializedError("conversation_service")
        return self._conversation_service

    def set_cache(self, cache: ICacheBackend) -> None:
        """Set the cache backend (for testing)."""
        self._cache = cache

    def set_conversation_store(self, store: ConversationStore) -> None:
        """Set the conversation store (for testing)."""
        self._conversation_store = store

    def set_faq_knowledge_base(self, knowledge_base: FaqKnowledgeBase) -> None:
        """Set the FAQ knowledge base (for testing)."""
        self._faq_knowledge_base = knowledge_base

    def set_reply_generator(self, generator: ReplyGenerator) -> None:
        """Set the reply generator (for testing)."""
        self._reply_generator = generator

    def set_conversation_service(self, service: ConversationService) -> None:
        """Set the conversation service (for testing)."""
        self._conversation_service = service


def create_container() -> ServiceContainer:
    """Create a new service container instance.

    This is useful for creating isolated containers in tests.
    """
    return ServiceContainer()
