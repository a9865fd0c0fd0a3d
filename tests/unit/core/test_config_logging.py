"""Tests for settings defaults and log formatting."""

import json
import logging

from support_chat.core.config import Settings, _sqlite_path_from_url
from support_chat.core.logging import JsonFormatter


def test_settings_defaults(monkeypatch):
    for name in ("CHAT_OPENAI_CHAT_MODEL", "CHAT_LLM_MAX_OUTPUT_TOKENS", "CHAT_CONVERSATION_CACHE_TTL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.openai_chat_model == "gpt-4o-mini"
    assert settings.llm_max_output_tokens == 500
    assert settings.llm_max_history_messages == 20
    assert settings.llm_timeout_seconds == 30.0
    assert settings.conversation_cache_ttl == 90


def test_settings_env_prefix(monkeypatch):
    monkeypatch.setenv("CHAT_CONVERSATION_CACHE_TTL", "15")

    assert Settings(_env_file=None).conversation_cache_ttl == 15


def test_sqlite_path_from_url():
    assert _sqlite_path_from_url("sqlite:///./data/chat.db") == "./data/chat.db"
    assert _sqlite_path_from_url("file:chat.db") == "chat.db"
    assert _sqlite_path_from_url("/var/lib/chat.db") == "/var/lib/chat.db"


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("support_chat.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.conversation_id = "c1"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "support_chat.test"
    assert payload["conversation_id"] == "c1"
