"""Shared fixtures for the API client test suite."""

import dataclasses
import json
from types import MappingProxyType
from unittest.mock import MagicMock

import pytest

from wordgpt_client.client.ratelimit import RateLimiter
from wordgpt_client.config.settings import get_settings
from wordgpt_client.credentials.adapter import CredentialStore
from wordgpt_client.credentials.store import MemorySecretStore
from wordgpt_client.providers import registry
from wordgpt_client.providers.base import RateLimits


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def secret_store() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture
def credentials(secret_store) -> CredentialStore:
    """Credential store with an OpenAI key already configured (not persisted)."""
    store = CredentialStore(secret_store)
    store.config.keys["openai"] = "sk-test"
    return store


@pytest.fixture
def tight_limits(monkeypatch):
    """Factory fixture: replace a provider's rate limits in the registry.

    Usage:
        tight_limits("openai", requests_per_minute=2, tokens_per_minute=1000)
    """
    def _override(provider: str, requests_per_minute: int, tokens_per_minute: int = 1_000_000):
        providers = dict(registry._providers)
        providers[provider] = dataclasses.replace(
            providers[provider],
            rate_limits=RateLimits(requests_per_minute, tokens_per_minute),
        )
        monkeypatch.setattr(registry, "_providers", MappingProxyType(providers))

    return _override


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(SECRET_STORE_BACKEND="memory", KMS_KEY_ID="key-1")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        get_settings.cache_clear()

    yield _override

    get_settings.cache_clear()


def make_response(status_code: int = 200, body=None, invalid_json: bool = False) -> MagicMock:
    """Build a mock httpx.Response."""
    response = MagicMock()
    response.status_code = status_code
    if invalid_json:
        response.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
    else:
        response.json.return_value = body if body is not None else {}
    return response


CHAT_BODY = {
    "id": "chatcmpl-1",
    "choices": [{"index": 0, "message": {"role": "assistant", "content": "A summary."}}],
    "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
}

COMPLETION_BODY = {"id": "cmpl-1", "choices": [{"index": 0, "text": "A summary."}]}
