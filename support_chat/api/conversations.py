"""Conversation history endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from support_chat.api.deps import get_conversation_service
from support_chat.services.conversation_service import CachedRead, ConversationService

router = APIRouter(prefix="/conversations", tags=["conversations"])


def _cached_response(result: CachedRead) -> JSONResponse:
    return JSONResponse(content=result.data, headers={"X-Cache": result.cache_status.value})


@router.get("")
async def list_conversations(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    service: ConversationService = Depends(get_conversation_service),
) -> JSONResponse:
    """List conversation summaries, newest first."""
    return _cached_response(await service.list_conversations(session_id))


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> JSONResponse:
    """List a conversation's messages in the order they were written."""
    return _cached_response(await service.list_messages(conversation_id))
