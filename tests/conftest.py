"""Shared test fixtures and configuration."""
import pytest
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture(autouse=True)
def mock_env(monkeypatch):
    """Set minimum required environment variables for all tests."""
    monkeypatch.setenv("DATABASE_URL", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("WHATSAPP_TOKEN", "test-wa-token")
    monkeypatch.setenv("WHATSAPP_PHONE_NUMBER_ID", "123456")
    monkeypatch.setenv("WHATSAPP_VERIFY_TOKEN", "verify-me")
    monkeypatch.setenv("CALLBELL_API_KEY", "test-callbell-key")
    monkeypatch.setenv("ALLOWED_OPERATORS", "")


@pytest.fixture
def failing_generator():
    """Text generator that always fails, so replies use the fixed fallbacks."""
    generator = MagicMock()
    generator.generate_text = AsyncMock(side_effect=RuntimeError("no model"))
    generator.generate_json = AsyncMock(side_effect=RuntimeError("no model"))
    return generator
