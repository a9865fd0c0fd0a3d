"""Streaming reply generation.

Wraps the LangChain chat model behind a small interface so the API layer
never handles provider types: callers register finish callbacks and ask for
an HTTP streaming response, nothing else.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Set, Union

from fastapi.responses import StreamingResponse
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, SystemMessage
from langchain_openai import ChatOpenAI

from support_chat.core.config import Settings
from support_chat.core.errors import ErrorCode, classify_llm_error, llm_error
from support_chat.core.logging import get_logger
from support_chat.models.chat import ChatFinishEvent, ChatMessage, TokenUsage
from support_chat.utils.message_utils import build_history_messages, limit_history
from support_chat.utils.streaming_utils import (
    UI_MESSAGE_STREAM_HEADERS,
    UI_STREAM_DONE,
    extract_chunk_text,
    extract_finish_reason,
    extract_token_usage_from_chunk,
    format_ui_event,
)

logger = get_logger(__name__)

FinishCallback = Callable[[ChatFinishEvent], Union[None, Awaitable[None]]]

_EXHAUSTED = object()


class FinishHookTasks:
    """Finish hooks that may outlive the response task (client went away mid-stream).

    Holds strong references so the event loop does not drop the tasks, and
    lets the owner wait for them on shutdown.
    """

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for detached finish hooks, e.g. during shutdown."""
        pending = [task for task in self._tasks if not task.done()]
        if not pending:
            return
        logger.info(f"Waiting for {len(pending)} pending stream finish hook(s)")
        await asyncio.wait(pending, timeout=timeout)


class StreamingChatResult(ABC):
    """A streamed model reply, independent of the provider SDK."""

    @abstractmethod
    def on_finish(self, callback: FinishCallback) -> None:
        """Register a callback invoked once when the stream ends."""
        ...

    @abstractmethod
    def to_streaming_response(self) -> StreamingResponse:
        """Materialize the stream as an HTTP response."""
        ...


class LangChainStreamingResult(StreamingChatResult):
    """Adapter over a primed LangChain ``astream`` iterator.

    The first chunk has already been received when this object is built, so
    request-time provider failures surface before any byte is sent. The
    finish callbacks run exactly once: inline after a completed stream, or as
    a detached task when the client disconnects mid-stream (the partial text
    is still reported).
    """

    def __init__(
        self,
        iterator: AsyncIterator[Any],
        first_chunk: Any,
        deadline: float,
        finish_tasks: FinishHookTasks,
        message_id: Optional[str] = None,
    ):
        self._iterator = iterator
        self._first_chunk = first_chunk
        self._deadline = deadline
        self._finish_tasks = finish_tasks
        self._message_id = message_id or uuid.uuid4().hex
        self._callbacks: List[FinishCallback] = []
        self._finish_dispatched = False
        self._consumed = False

    def on_finish(self, callback: FinishCallback) -> None:
        self._callbacks.append(callback)

    def to_streaming_response(self) -> StreamingResponse:
        if self._consumed:
            raise RuntimeError("Streaming result can only be materialized once")
        self._consumed = True
        return StreamingResponse(
            self._events(),
            media_type="text/event-stream",
            headers=dict(UI_MESSAGE_STREAM_HEADERS),
        )

    async def _next_chunk(self) -> Any:
        remaining = self._deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise asyncio.TimeoutError()
        try:
            return await asyncio.wait_for(self._iterator.__anext__(), remaining)
        except StopAsyncIteration:
            return _EXHAUSTED

    async def _events(self) -> AsyncIterator[str]:
        text_id = "0"
        parts: List[str] = []
        usage: Optional[TokenUsage] = None
        finish_reason = "abort"
        completed = False

        try:
            try:
                yield format_ui_event({"type": "start", "messageId": self._message_id})
                yield format_ui_event({"type": "text-start", "id": text_id})

                chunk = self._first_chunk
                provider_reason: Optional[str] = None
                while chunk is not _EXHAUSTED:
                    token_text = extract_chunk_text(chunk)
                    if token_text:
                        parts.append(token_text)
                        yield format_ui_event({"type": "text-delta", "id": text_id, "delta": token_text})

                    usage = extract_token_usage_from_chunk(chunk) or usage
                    provider_reason = extract_finish_reason(chunk) or provider_reason
                    chunk = await self._next_chunk()

                finish_reason = provider_reason or "stop"
                yield format_ui_event({"type": "text-end", "id": text_id})
                yield format_ui_event({"type": "finish"})
            except Exception as exc:
                error = classify_llm_error(exc)
                logger.error(
                    "Model stream failed after %d chunk(s): %s", len(parts), error.message,
                    exc_info=True,
                )
                finish_reason = "error"
                yield format_ui_event({"type": "error", "errorText": error.user_message})

            yield UI_STREAM_DONE
            completed = True
        finally:
            event = ChatFinishEvent(text="".join(parts), finish_reason=finish_reason, usage=usage)
            task = self._schedule_finish(event, close_iterator=not completed)
            if completed and task is not None:
                await asyncio.shield(task)

    def _schedule_finish(self, event: ChatFinishEvent, close_iterator: bool) -> Optional[asyncio.Task]:
        if self._finish_dispatched:
            return None
        self._finish_dispatched = True

        if close_iterator:
            logger.info("Client disconnected mid-stream after %d characters", len(event.text))

        task = asyncio.get_running_loop().create_task(self._run_finish(event, close_iterator))
        self._finish_tasks.track(task)
        return task

    async def _run_finish(self, event: ChatFinishEvent, close_iterator: bool) -> None:
        if close_iterator:
            aclose = getattr(self._iterator, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception as e:
                    logger.debug(f"Error closing model stream: {e}")

        for callback in self._callbacks:
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Stream finish callback failed: {e}", exc_info=True)


def create_chat_model(settings: Settings) -> BaseChatModel:
    """Create the OpenAI chat model with cost and latency guardrails."""
    logger.info("Creating OpenAI chat model: %s", settings.openai_chat_model)
    return ChatOpenAI(
        api_key=settings.openai_api_key,
        model=settings.openai_chat_model,
        max_tokens=settings.llm_max_output_tokens,
        timeout=settings.llm_timeout_seconds,
        max_retries=0,
        streaming=True,
        stream_usage=True,
    )


class ReplyGenerator:
    """Builds the model prompt and starts a streamed completion."""

    def __init__(
        self,
        api_key: Optional[str],
        system_prompt: Callable[[], str],
        max_history_messages: int = 20,
        timeout_seconds: float = 30.0,
        chat_model_factory: Optional[Callable[[], Any]] = None,
        finish_tasks: Optional[FinishHookTasks] = None,
    ):
        """Initialize the generator.

        Args:
            api_key: Provider credentials; requests fail fast without them.
            system_prompt: Returns the system instruction for each request.
            max_history_messages: Most recent messages sent to the model.
            timeout_seconds: Deadline for the whole streamed completion.
            chat_model_factory: Builds the LangChain chat model lazily.
            finish_tasks: Tracks finish hooks detached from their response.
        """
        self._api_key = api_key
        self._system_prompt = system_prompt
        self.max_history_messages = max_history_messages
        self.timeout_seconds = timeout_seconds
        self._chat_model_factory = chat_model_factory
        self._chat_model: Any = None
        self.finish_tasks = finish_tasks or FinishHookTasks()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        system_prompt: Callable[[], str],
        finish_tasks: Optional[FinishHookTasks] = None,
    ) -> "ReplyGenerator":
        return cls(
            api_key=settings.openai_api_key,
            system_prompt=system_prompt,
            max_history_messages=settings.llm_max_history_messages,
            timeout_seconds=settings.llm_timeout_seconds,
            chat_model_factory=lambda: create_chat_model(settings),
            finish_tasks=finish_tasks,
        )

    @property
    def chat_model(self) -> Any:
        if self._chat_model is None:
            if self._chat_model_factory is None:
                raise RuntimeError("No chat model configured")
            self._chat_model = self._chat_model_factory()
        return self._chat_model

    def prepare_messages(self, history: List[BaseMessage]) -> List[BaseMessage]:
        """System instruction followed by the most recent history."""
        recent = limit_history(history, self.max_history_messages)
        return [SystemMessage(content=self._system_prompt()), *recent]

    async def generate_reply(self, messages: List[ChatMessage]) -> StreamingChatResult:
        """Start a streamed reply for the client's message history.

        Raises:
            LLMError: on missing credentials or empty history (before any
                provider call), or on a classified provider failure while
                waiting for the first chunk.
        """
        if not self._api_key:
            raise llm_error(ErrorCode.MISSING_API_KEY, "OpenAI API key not configured")

        history = build_history_messages(messages)
        if not history:
            raise llm_error(ErrorCode.INVALID_INPUT, "Invalid conversation history")

        prompt_messages = self.prepare_messages(history)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_seconds

        iterator = None
        try:
            iterator = self.chat_model.astream(prompt_messages).__aiter__()
            first_chunk = await asyncio.wait_for(iterator.__anext__(), self.timeout_seconds)
        except StopAsyncIteration:
            first_chunk = _EXHAUSTED
        except Exception as exc:
            error = classify_llm_error(exc)
            logger.error("Model invocation failed [%s]: %s", error.code.value, error.message, exc_info=True)
            raise error from exc

        logger.debug("Streaming reply started (%d prompt messages)", len(prompt_messages))
        return LangChainStreamingResult(iterator, first_chunk, deadline, self.finish_tasks)
