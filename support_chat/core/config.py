"""Configuration settings for the support chat service."""

from pydantic_settings import BaseSettings
from typing import Optional, List
import os


class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    app_name: str = "Support Chat Service"
    app_version: str = "0.3.0"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 3000
    workers: int = 1

    # CORS
    cors_origins: List[str] = ["http://localhost:3001"]

    # OpenAI Configuration
    openai_api_key: Optional[str] = None
    openai_chat_model: str = "gpt-4o-mini"  # Cost-effective for support use cases

    # LLM guardrails
    llm_max_output_tokens: int = 500  # Prevents runaway costs
    llm_max_history_messages: int = 20  # Most recent messages sent to the model
    llm_timeout_seconds: float = 30.0  # Covers the whole streamed completion

    # Caching Configuration
    redis_url: Optional[str] = None  # Unset -> in-memory cache
    conversation_cache_ttl: int = 90  # seconds
    redis_max_retries: int = 3
    redis_backoff_base: float = 0.1  # seconds
    redis_backoff_cap: float = 3.0  # seconds
    redis_socket_timeout: float = 2.0

    # Database Configuration
    database_path: str = "./data/support_chat.db"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        env_prefix = "CHAT_"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields in .env file


def _sqlite_path_from_url(url: str) -> str:
    """Accept both plain paths and ``file:``/``sqlite:///`` URLs."""
    for prefix in ("sqlite+aiosqlite:///", "sqlite:///", "file:"):
        if url.startswith(prefix):
            return url[len(prefix):]
    return url


# Create settings instance
settings = Settings()

# Override with environment variables
if os.getenv("OPENAI_API_KEY"):
    settings.openai_api_key = os.getenv("OPENAI_API_KEY").strip()

if os.getenv("REDIS_URL"):
    settings.redis_url = os.getenv("REDIS_URL")

if os.getenv("DATABASE_URL"):
    settings.database_path = _sqlite_path_from_url(os.getenv("DATABASE_URL"))

if os.getenv("CORS_ORIGIN"):
    settings.cors_origins = [os.getenv("CORS_ORIGIN").strip()]
