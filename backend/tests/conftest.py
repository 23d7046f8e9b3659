"""Shared test fixtures and configuration."""
from typing import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest

from chibigen.core.config import get_settings


@pytest.fixture(autouse=True)
def set_required_env_vars(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Set model credentials for all tests and drop any cached settings."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-api-key")
    monkeypatch.delenv("USE_VERTEXAI", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def genai_client() -> MagicMock:
    """Stand-in for google.genai.Client exposing the async model calls."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    client.aio.models.generate_images = AsyncMock()
    return client
