"""Tests for the error taxonomy and model error classification."""

import asyncio

import pytest

from support_chat.core.errors import (
    ChatServiceError,
    ConversationNotFoundError,
    ErrorCode,
    GENERIC_ERROR_MESSAGE,
    LLMError,
    LLM_USER_MESSAGES,
    classify_llm_error,
    llm_error,
)


# Stand-ins named like the OpenAI SDK exceptions
class APIStatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(APIStatusError):
    pass


class AuthenticationError(APIStatusError):
    pass


class APITimeoutError(Exception):
    pass


class ProviderSpecificRateLimit(RateLimitError):
    pass


class TestServiceErrors:
    """Tests for the HTTP-facing error types."""

    def test_not_found_body(self):
        error = ConversationNotFoundError("abc")

        assert error.status_code == 404
        assert error.to_dict() == {"error": "Conversation not found", "code": "NOT_FOUND"}
        assert "abc" in error.message

    def test_default_service_error(self):
        error = ChatServiceError("database exploded")

        assert error.status_code == 500
        assert error.to_dict()["error"] == GENERIC_ERROR_MESSAGE
        assert "database" not in error.to_dict()["error"]

    @pytest.mark.parametrize(
        "code,status",
        [
            (ErrorCode.MISSING_API_KEY, 500),
            (ErrorCode.INVALID_INPUT, 500),
            (ErrorCode.TIMEOUT, 500),
            (ErrorCode.AUTH_ERROR, 500),
            (ErrorCode.RATE_LIMIT, 429),
            (ErrorCode.PROVIDER_ERROR, 500),
            (ErrorCode.UNKNOWN_ERROR, 500),
        ],
    )
    def test_llm_error_status(self, code, status):
        error = llm_error(code, "details for logs")

        assert error.status_code == status
        assert error.to_dict() == {"error": LLM_USER_MESSAGES[code], "code": code.value}


class TestClassifyLLMError:
    """Tests for the multi-stage classification."""

    def test_rate_limit_by_type_name(self):
        error = classify_llm_error(RateLimitError("slow down", status_code=429))
        assert error.code == ErrorCode.RATE_LIMIT
        assert error.status_code == 429

    def test_subclass_matches_base_type_name(self):
        error = classify_llm_error(ProviderSpecificRateLimit("slow down", status_code=429))
        assert error.code == ErrorCode.RATE_LIMIT

    def test_authentication_by_type_name(self):
        error = classify_llm_error(AuthenticationError("Incorrect API key provided", status_code=401))
        assert error.code == ErrorCode.AUTH_ERROR

    def test_sdk_timeout(self):
        assert classify_llm_error(APITimeoutError("Request timed out.")).code == ErrorCode.TIMEOUT

    def test_asyncio_timeout(self):
        assert classify_llm_error(asyncio.TimeoutError()).code == ErrorCode.TIMEOUT

    def test_status_code_fallback(self):
        assert classify_llm_error(APIStatusError("bad gateway", status_code=502)).code == ErrorCode.PROVIDER_ERROR
        assert classify_llm_error(APIStatusError("nope", status_code=401)).code == ErrorCode.AUTH_ERROR
        assert classify_llm_error(APIStatusError("later", status_code=429)).code == ErrorCode.RATE_LIMIT

    @pytest.mark.parametrize(
        "message,code",
        [
            ("Connection timed out", ErrorCode.TIMEOUT),
            ("Invalid API key supplied", ErrorCode.AUTH_ERROR),
            ("You exceeded your current quota", ErrorCode.RATE_LIMIT),
            ("Error code: 503 - service unavailable", ErrorCode.PROVIDER_ERROR),
            ("The model is overloaded", ErrorCode.PROVIDER_ERROR),
        ],
    )
    def test_message_patterns(self, message, code):
        assert classify_llm_error(RuntimeError(message)).code == code

    def test_unknown_error(self):
        error = classify_llm_error(ValueError("something odd"))

        assert error.code == ErrorCode.UNKNOWN_ERROR
        assert error.status_code == 500
        assert "something odd" not in error.user_message

    def test_classified_error_passes_through(self):
        original = llm_error(ErrorCode.INVALID_INPUT, "empty")
        assert classify_llm_error(original) is original
        assert isinstance(original, LLMError)
