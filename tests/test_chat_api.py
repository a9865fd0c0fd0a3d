"""End-to-end tests for the chat and conversation endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk, HumanMessage

from conftest import REPLY_TEXT, ScriptedChatModel, parse_ui_stream
from support_chat.models.chat import ChatMessage, MessageRecord, messages_to_chat_messages


def chat_body(text: str, **extra) -> dict:
    body = {"messages": [{"role": "user", "parts": [{"type": "text", "text": text}]}]}
    body.update(extra)
    return body


class TestSendMessage:
    """POST /api/ai"""

    @pytest.mark.asyncio
    async def test_new_conversation_streams_and_persists(self, client, app_container):
        response = await client.post("/api/ai", json=chat_body("Hi", sessionId="s1"))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["x-vercel-ai-ui-message-stream"] == "v1"
        conversation_id = response.headers["x-conversation-id"]

        frames = parse_ui_stream(response.text)
        assert frames[-1] == "[DONE]"
        deltas = [f["delta"] for f in frames if isinstance(f, dict) and f["type"] == "text-delta"]
        assert "".join(deltas) == REPLY_TEXT

        conversation = await app_container.conversation_store.get_conversation(conversation_id)
        assert conversation.session_id == "s1"
        messages = await app_container.conversation_store.list_messages(conversation_id)
        assert [(m.role.value, m.content) for m in messages] == [("user", "Hi"), ("ai", REPLY_TEXT)]

    @pytest.mark.asyncio
    async def test_conversation_list_after_first_message(self, client):
        response = await client.post("/api/ai", json=chat_body("Hi", sessionId="s1"))
        conversation_id = response.headers["x-conversation-id"]

        first = await client.get("/api/conversations", params={"sessionId": "s1"})
        second = await client.get("/api/conversations", params={"sessionId": "s1"})

        assert first.status_code == 200
        assert first.headers["x-cache"] == "MISS"
        assert second.headers["x-cache"] == "HIT"
        assert first.json() == second.json()
        summaries = first.json()
        assert len(summaries) == 1
        assert summaries[0]["id"] == conversation_id
        assert summaries[0]["firstMessage"] == "Hi"
        assert summaries[0]["createdAt"].endswith("Z")

    @pytest.mark.asyncio
    async def test_follow_up_invalidates_message_cache(self, client):
        response = await client.post("/api/ai", json=chat_body("Hi", sessionId="s1"))
        conversation_id = response.headers["x-conversation-id"]
        path = f"/api/conversations/{conversation_id}/messages"

        assert (await client.get(path)).headers["x-cache"] == "MISS"
        assert (await client.get(path)).headers["x-cache"] == "HIT"

        follow_up = chat_body("Where do you ship?", sessionId="s1", conversationId=conversation_id)
        response = await client.post("/api/ai", json=follow_up)
        assert response.headers["x-conversation-id"] == conversation_id

        after_write = await client.get(path)
        assert after_write.headers["x-cache"] == "MISS"
        assert [m["content"] for m in after_write.json()] == ["Hi", REPLY_TEXT, "Where do you ship?", REPLY_TEXT]
        assert [m["role"] for m in after_write.json()] == ["user", "ai", "user", "ai"]
        assert (await client.get(path)).headers["x-cache"] == "HIT"

        conversations = await client.get("/api/conversations", params={"sessionId": "s1"})
        assert conversations.headers["x-cache"] == "MISS"

    @pytest.mark.asyncio
    async def test_unknown_conversation_is_404_without_writes(self, client, app_container):
        response = await client.post("/api/ai", json=chat_body("Hi", conversationId="missing", sessionId="s1"))

        assert response.status_code == 404
        assert response.json() == {"error": "Conversation not found", "code": "NOT_FOUND"}
        assert await app_container.conversation_store.list_conversation_summaries() == []

    @pytest.mark.asyncio
    async def test_empty_history_is_500_without_model_call(self, client, app_container, make_reply_generator):
        model = MagicMock()
        app_container.set_reply_generator(make_reply_generator(model))

        response = await client.post("/api/ai", json={"messages": []})

        assert response.status_code == 500
        assert response.json()["code"] == "INVALID_INPUT"
        model.astream.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limit_is_429(self, client, app_container, make_reply_generator):
        class RateLimitError(Exception):
            pass

        model = ScriptedChatModel(chunks=[AIMessageChunk(content="x")], error=RateLimitError("Rate limit reached"))
        app_container.set_reply_generator(make_reply_generator(model))

        response = await client.post("/api/ai", json=chat_body("Hi", sessionId="s1"))

        assert response.status_code == 429
        assert response.json() == {
            "error": "Our service is busy right now. Please try again in a moment.",
            "code": "RATE_LIMIT",
        }

    @pytest.mark.asyncio
    async def test_model_failure_keeps_user_message_visible(self, client, app_container, make_reply_generator):
        response = await client.post("/api/ai", json=chat_body("Hi", sessionId="s1"))
        conversation_id = response.headers["x-conversation-id"]
        path = f"/api/conversations/{conversation_id}/messages"
        await client.get(path)

        app_container.set_reply_generator(
            make_reply_generator(ScriptedChatModel(error=RuntimeError("Error code: 502 - bad gateway")))
        )
        failed = await client.post(
            "/api/ai", json=chat_body("Are you there?", sessionId="s1", conversationId=conversation_id)
        )

        assert failed.status_code == 500
        assert failed.json()["code"] == "PROVIDER_ERROR"
        after = await client.get(path)
        assert after.headers["x-cache"] == "MISS"
        assert after.json()[-1]["content"] == "Are you there?"

    @pytest.mark.asyncio
    async def test_missing_api_key_is_500(self, client, app_container, chat_model, make_reply_generator):
        app_container.set_reply_generator(make_reply_generator(chat_model, api_key=None))

        response = await client.post("/api/ai", json=chat_body("Hi"))

        assert response.status_code == 500
        assert response.json()["code"] == "MISSING_API_KEY"

    @pytest.mark.asyncio
    async def test_resume_from_stored_transcript(self, client, app_container, make_reply_generator):
        response = await client.post("/api/ai", json=chat_body("Hi", sessionId="s1"))
        conversation_id = response.headers["x-conversation-id"]
        stored = (await client.get(f"/api/conversations/{conversation_id}/messages")).json()

        history = messages_to_chat_messages([MessageRecord.model_validate(m) for m in stored])
        history.append(ChatMessage(role="user", parts=[{"type": "text", "text": "Thanks"}]))
        model = ScriptedChatModel(chunks=[AIMessageChunk(content="Anytime")])
        app_container.set_reply_generator(make_reply_generator(model))

        resumed = await client.post("/api/ai", json={
            "messages": [m.model_dump(mode="json", exclude_none=True) for m in history],
            "conversationId": conversation_id,
            "sessionId": "s1",
        })

        assert resumed.status_code == 200
        assert [type(m) for m in model.calls[0][1:]] == [HumanMessage, AIMessage, HumanMessage]
        assert model.calls[0][2].content == REPLY_TEXT

    @pytest.mark.asyncio
    async def test_malformed_payload_is_400(self, client):
        response = await client.post("/api/ai", json={"messages": [{"role": "robot", "content": "beep"}]})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestConversationReads:
    """GET /api/conversations and /api/conversations/{id}/messages"""

    @pytest.mark.asyncio
    async def test_unknown_conversation_messages(self, client):
        response = await client.get("/api/conversations/bad-id/messages")

        assert response.status_code == 404
        assert response.json()["error"] == "Conversation not found"

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, client):
        await client.post("/api/ai", json=chat_body("Mine", sessionId="s1"))
        await client.post("/api/ai", json=chat_body("Theirs", sessionId="s2"))

        mine = (await client.get("/api/conversations", params={"sessionId": "s1"})).json()
        theirs = (await client.get("/api/conversations", params={"sessionId": "s2"})).json()

        assert [c["firstMessage"] for c in mine] == ["Mine"]
        assert [c["firstMessage"] for c in theirs] == ["Theirs"]

    @pytest.mark.asyncio
    async def test_list_without_session(self, client):
        await client.post("/api/ai", json=chat_body("One", sessionId="s1"))
        await client.post("/api/ai", json=chat_body("Two"))

        response = await client.get("/api/conversations")

        assert response.headers["x-cache"] == "MISS"
        assert [c["firstMessage"] for c in response.json()] == ["Two", "One"]

    @pytest.mark.asyncio
    async def test_store_failure_is_generic_500(self, lenient_client, app_container):
        app_container.conversation_store.list_conversation_summaries = AsyncMock(
            side_effect=RuntimeError("database is locked")
        )

        response = await lenient_client.get("/api/conversations", params={"sessionId": "s9"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error", "code": "INTERNAL_SERVER_ERROR"}


class TestServiceEndpoints:
    """GET / and GET /health"""

    @pytest.mark.asyncio
    async def test_root(self, client, test_settings):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == test_settings.app_name
        assert "x-process-time" in response.headers

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["services"] == {"store": "connected", "cache": "connected"}
        assert body["cache_backend"] == "MemoryBackend"
        assert "hit_rate" in body["cache_stats"]
