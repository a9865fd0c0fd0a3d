"""Helpers for interpreting LangChain stream chunks and framing them for the browser."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional

from support_chat.models.chat import TokenUsage

# Header advertising the UI message stream protocol understood by the web client.
UI_MESSAGE_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "x-vercel-ai-ui-message-stream": "v1",
}


def coerce_to_text(payload: Any) -> str:
    """Safely coerce streaming payload structures into plain text."""

    if payload is None:
        return ""

    if isinstance(payload, str):
        return payload

    if isinstance(payload, dict):
        if payload.get("type") == "text" and "text" in payload:
            return str(payload["text"])
        for key in ("text", "content", "delta"):
            if key in payload:
                text_value = coerce_to_text(payload[key])
                if text_value:
                    return text_value
        return ""

    for attr in ("content", "text"):
        if hasattr(payload, attr):
            text_value = coerce_to_text(getattr(payload, attr))
            if text_value:
                return text_value

    if hasattr(payload, "additional_kwargs"):
        # Message-like payload with no textual delta yet
        return ""

    if isinstance(payload, Iterable):
        fragments = [coerce_to_text(item) for item in payload]
        return "".join(fragment for fragment in fragments if fragment)

    return ""


def extract_chunk_text(chunk: Any) -> str:
    """Extract textual content from a LangChain chunk object."""

    if chunk is None:
        return ""

    if isinstance(chunk, str):
        return chunk

    return coerce_to_text(chunk)


def extract_token_usage_from_chunk(chunk: Any) -> Optional[TokenUsage]:
    """Best-effort extraction of token usage from a streaming chunk.

    OpenAI reports usage on the final chunk only (``stream_usage=True``).
    """

    if chunk is None:
        return None

    usage = getattr(chunk, "usage_metadata", None)
    if isinstance(usage, dict) and usage:
        return TokenUsage(
            prompt_tokens=int(usage.get("input_tokens", 0) or 0),
            completion_tokens=int(usage.get("output_tokens", 0) or 0),
            total_tokens=int(usage.get("total_tokens", 0) or 0),
        )

    metadata = getattr(chunk, "response_metadata", None)
    if isinstance(metadata, dict):
        token_usage = metadata.get("token_usage") or metadata.get("usage")
        if isinstance(token_usage, dict):
            return TokenUsage(
                prompt_tokens=int(token_usage.get("prompt_tokens", 0) or 0),
                completion_tokens=int(token_usage.get("completion_tokens", 0) or 0),
                total_tokens=int(token_usage.get("total_tokens", 0) or 0),
            )

    return None


def extract_finish_reason(chunk: Any) -> Optional[str]:
    """Finish reason reported by the provider on the last chunk, if any."""
    metadata = getattr(chunk, "response_metadata", None)
    if isinstance(metadata, dict):
        reason = metadata.get("finish_reason")
        if reason:
            return str(reason)
    return None


def format_ui_event(payload: Dict[str, Any]) -> str:
    """Frame one UI message stream event as an SSE ``data:`` line."""
    return f"data: {json.dumps(payload)}\n\n"


UI_STREAM_DONE = "data: [DONE]\n\n"
