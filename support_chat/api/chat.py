"""Streaming chat endpoint backed by the conversation store."""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from support_chat.api.deps import get_conversation_service, get_reply_generator
from support_chat.core.errors import LLMError
from support_chat.core.logging import get_logger
from support_chat.models.chat import SendMessageRequest
from support_chat.services.conversation_service import ConversationService
from support_chat.services.llm import ReplyGenerator

logger = get_logger(__name__)

router = APIRouter()


@router.post("/ai")
async def send_message(
    chat_request: SendMessageRequest,
    service: ConversationService = Depends(get_conversation_service),
    generator: ReplyGenerator = Depends(get_reply_generator),
) -> StreamingResponse:
    """Persist the user's message and stream the assistant reply.

    The reply is saved and the affected cache entries are dropped once the
    stream ends, including when the client disconnects early.
    """
    conversation = await service.resolve_conversation(
        chat_request.conversation_id, chat_request.session_id
    )

    user_text = chat_request.last_user_text()
    if user_text:
        await service.record_user_message(conversation.id, user_text)

    try:
        result = await generator.generate_reply(chat_request.messages)
    except LLMError as e:
        logger.error(f"Chat request failed for conversation {conversation.id} [{e.code.value}]: {e.message}")
        # The user message may already be stored
        await service.invalidate(conversation.id, chat_request.session_id)
        raise

    result.on_finish(service.finish_handler(conversation.id, chat_request.session_id))

    response = result.to_streaming_response()
    response.headers["X-Conversation-Id"] = conversation.id
    return response
