"""Custom error types and error classification utilities."""

from typing import Optional, Dict, Any
from enum import Enum
import asyncio
import re


class ErrorCode(str, Enum):
    """Stable error codes returned to clients."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    # Model invocation failures
    MISSING_API_KEY = "MISSING_API_KEY"
    INVALID_INPUT = "INVALID_INPUT"
    TIMEOUT = "TIMEOUT"
    AUTH_ERROR = "AUTH_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


GENERIC_ERROR_MESSAGE = "We encountered an issue processing your request. Please try again."


class ChatServiceError(Exception):
    """Base exception for errors that cross the HTTP boundary.

    ``message`` is for logs only; ``user_message`` and ``code`` are what the
    client sees.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        user_message: str = GENERIC_ERROR_MESSAGE,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.user_message = user_message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Client-safe error body."""
        return {"error": self.user_message, "code": self.code.value}


class ConversationNotFoundError(ChatServiceError):
    """Requested conversation does not exist."""

    status_code = 404

    def __init__(self, conversation_id: str):
        super().__init__(
            message=f"Conversation {conversation_id} not found",
            code=ErrorCode.NOT_FOUND,
            user_message="Conversation not found",
            details={"conversation_id": conversation_id},
        )
        self.conversation_id = conversation_id


class LLMError(ChatServiceError):
    """Failure while invoking the language model."""

    def __init__(self, message: str, code: ErrorCode, user_message: str):
        super().__init__(
            message=message,
            code=code,
            user_message=user_message,
            status_code=LLM_ERROR_STATUS.get(code, 500),
        )


LLM_ERROR_STATUS = {
    ErrorCode.RATE_LIMIT: 429,
}

LLM_USER_MESSAGES = {
    ErrorCode.MISSING_API_KEY: "The chat service is not properly configured. Please contact support.",
    ErrorCode.INVALID_INPUT: "Unable to process your message. Please try again.",
    ErrorCode.TIMEOUT: "The response took too long. Please try again.",
    ErrorCode.AUTH_ERROR: "Authentication failed. Please contact support.",
    ErrorCode.RATE_LIMIT: "Our service is busy right now. Please try again in a moment.",
    ErrorCode.PROVIDER_ERROR: "Our AI service is temporarily unavailable. Please try again later.",
    ErrorCode.UNKNOWN_ERROR: "Something went wrong. Please try again or contact support if the issue persists.",
}


def llm_error(code: ErrorCode, message: str) -> LLMError:
    """Build an LLMError with the canonical user-facing message for ``code``."""
    return LLMError(message, code, LLM_USER_MESSAGES[code])


# Exception type name -> error code. Names are matched against the exception's
# class hierarchy so SDK subclasses are covered without importing the SDK.
LLM_EXCEPTION_TYPES = {
    "APITimeoutError": ErrorCode.TIMEOUT,
    "TimeoutError": ErrorCode.TIMEOUT,
    "TimeoutException": ErrorCode.TIMEOUT,
    "AuthenticationError": ErrorCode.AUTH_ERROR,
    "PermissionDeniedError": ErrorCode.AUTH_ERROR,
    "RateLimitError": ErrorCode.RATE_LIMIT,
    "InternalServerError": ErrorCode.PROVIDER_ERROR,
}

LLM_MESSAGE_PATTERNS = [
    (r"timed? ?out|timeout", ErrorCode.TIMEOUT),
    (r"invalid.*api.?key|incorrect api key|unauthorized|invalid_api_key", ErrorCode.AUTH_ERROR),
    (r"rate.?limit|too many requests|quota", ErrorCode.RATE_LIMIT),
    (r"\b(500|502|503)\b|service unavailable|overloaded|server error", ErrorCode.PROVIDER_ERROR),
]


def classify_llm_error(error: BaseException) -> LLMError:
    """Map an exception raised by the model client to an LLMError.

    Uses a multi-stage classification:
    1. Already-classified errors pass through
    2. Exception type names (including base classes)
    3. HTTP status code carried by the exception
    4. Error message patterns
    """
    if isinstance(error, LLMError):
        return error

    if isinstance(error, asyncio.TimeoutError):
        return llm_error(ErrorCode.TIMEOUT, "Request timeout")

    type_names = [cls.__name__ for cls in type(error).__mro__]
    for name in type_names:
        code = LLM_EXCEPTION_TYPES.get(name)
        if code is not None:
            return llm_error(code, f"{name}: {error}")

    status_code = getattr(error, "status_code", None) or getattr(error, "status", None)
    if isinstance(status_code, int):
        if status_code == 401:
            return llm_error(ErrorCode.AUTH_ERROR, f"Invalid API key: {error}")
        if status_code == 429:
            return llm_error(ErrorCode.RATE_LIMIT, f"Rate limit exceeded: {error}")
        if status_code >= 500:
            return llm_error(ErrorCode.PROVIDER_ERROR, f"LLM provider error ({status_code}): {error}")

    error_str = str(error).lower()
    for pattern, code in LLM_MESSAGE_PATTERNS:
        if re.search(pattern, error_str):
            return llm_error(code, f"{code.value}: {error}")

    return llm_error(ErrorCode.UNKNOWN_ERROR, f"Unexpected LLM error: {error}")
