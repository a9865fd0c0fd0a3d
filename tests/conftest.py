"""Shared test fixtures for support chat tests."""

import asyncio
import json
from itertools import cycle
from typing import Any, Callable, List, Optional, Sequence

import pytest
from httpx import ASGITransport, AsyncClient
from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage

from support_chat.core.config import Settings
from support_chat.services.cache import MemoryBackend
from support_chat.services.conversation_service import ConversationService
from support_chat.services.conversation_store import ConversationStore
from support_chat.services.llm import ReplyGenerator

REPLY_TEXT = "Hello! How can I help you today?"
TEST_SYSTEM_PROMPT = "You are a helpful support agent."


# ============================================================================
# Chat Model Doubles
# ============================================================================

class ScriptedChatModel:
    """Chat model double that streams fixed chunks and can fail on cue.

    ``fail_at`` is the chunk index at which ``error`` is raised; a value equal
    to ``len(chunks)`` raises after the last chunk.
    """

    def __init__(
        self,
        chunks: Sequence[Any] = (),
        error: Optional[BaseException] = None,
        fail_at: int = 0,
        delay: float = 0.0,
        delay_from: int = 0,
    ):
        self.chunks = list(chunks)
        self.error = error
        self.fail_at = fail_at
        self.delay = delay
        self.delay_from = delay_from
        self.calls: List[list] = []
        self.closed = False

    async def astream(self, messages):
        self.calls.append(list(messages))
        try:
            for index, chunk in enumerate(self.chunks):
                if self.error is not None and index == self.fail_at:
                    raise self.error
                if self.delay and index >= self.delay_from:
                    await asyncio.sleep(self.delay)
                yield chunk
            if self.error is not None and self.fail_at >= len(self.chunks):
                raise self.error
        except GeneratorExit:
            self.closed = True
            raise


def parse_ui_stream(body: str) -> List[Any]:
    """Split a UI message stream body into decoded events."""
    events: List[Any] = []
    for frame in body.split("\n\n"):
        if not frame.startswith("data: "):
            continue
        data = frame[len("data: "):]
        events.append(data if data == "[DONE]" else json.loads(data))
    return events


@pytest.fixture
def chat_model():
    """LangChain fake chat model that always answers with REPLY_TEXT."""
    return GenericFakeChatModel(messages=cycle([AIMessage(content=REPLY_TEXT)]))


@pytest.fixture
def make_reply_generator() -> Callable[..., ReplyGenerator]:
    """Build a ReplyGenerator around a given chat model double."""

    def _make(model: Any, api_key: Optional[str] = "test-key", **kwargs) -> ReplyGenerator:
        return ReplyGenerator(
            api_key=api_key,
            system_prompt=lambda: TEST_SYSTEM_PROMPT,
            chat_model_factory=lambda: model,
            **kwargs,
        )

    return _make


# ============================================================================
# Cache Fixtures
# ============================================================================

@pytest.fixture
def memory_backend():
    """Create a fresh memory backend for testing."""
    return MemoryBackend()


@pytest.fixture
async def connected_memory_backend(memory_backend):
    """Create a connected memory backend."""
    await memory_backend.connect()
    yield memory_backend
    await memory_backend.disconnect()


# ============================================================================
# Store / Service Fixtures
# ============================================================================

@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "support_chat.db")


@pytest.fixture
async def conversation_store(db_path):
    """Initialized SQLite store in a temporary directory."""
    store = ConversationStore(db_path)
    await store.initialize()
    return store


@pytest.fixture
def conversation_service(conversation_store, connected_memory_backend):
    return ConversationService(conversation_store, connected_memory_backend, cache_ttl=90)


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest.fixture
def test_settings(db_path):
    return Settings(
        openai_api_key="test-key",
        database_path=db_path,
        redis_url=None,
        log_format="text",
    )


@pytest.fixture
def app_container(chat_model, make_reply_generator):
    """Service container with the fake chat model injected."""
    from support_chat.core.container import create_container

    container = create_container()
    container.set_reply_generator(make_reply_generator(chat_model))
    return container


@pytest.fixture
def app(test_settings, app_container):
    from support_chat.core.app_factory import create_app

    return create_app(test_settings, app_container)


async def _client_for(app, raise_app_exceptions: bool = True):
    async with app.router.lifespan_context(app):
        transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


@pytest.fixture
async def client(app):
    """HTTP client running the app lifespan."""
    async for http_client in _client_for(app):
        yield http_client


@pytest.fixture
async def lenient_client(app):
    """HTTP client that returns 500 responses instead of raising app errors."""
    async for http_client in _client_for(app, raise_app_exceptions=False):
        yield http_client
