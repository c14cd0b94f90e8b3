"""Provider registry — read-only map of provider id → descriptor."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from wordgpt_client.client.errors import UnknownProviderError
from wordgpt_client.providers.base import (
    CHAT_COMPLETIONS,
    COMPLETIONS,
    EMBEDDINGS,
    MODELS,
    AuthScheme,
    ProviderDescriptor,
    RateLimits,
)

if TYPE_CHECKING:
    from wordgpt_client.credentials.models import ClientConfiguration

OPENAI = ProviderDescriptor(
    id="openai",
    name="OpenAI",
    base_url="https://api.openai.com/v1",
    endpoints={
        COMPLETIONS: "/completions",
        CHAT_COMPLETIONS: "/chat/completions",
        EMBEDDINGS: "/embeddings",
        MODELS: "/models",
    },
    default_model="gpt-3.5-turbo",
    default_embedding_model="text-embedding-ada-002",
    rate_limits=RateLimits(requests_per_minute=60, tokens_per_minute=90000),
    auth_scheme=AuthScheme.BEARER,
)

AZURE = ProviderDescriptor(
    id="azure",
    name="Azure OpenAI",
    base_url=None,
    endpoints={
        COMPLETIONS: "/completions",
        CHAT_COMPLETIONS: "/chat/completions",
        EMBEDDINGS: "/embeddings",
    },
    deployment_required=True,
    rate_limits=RateLimits(requests_per_minute=240, tokens_per_minute=240000),
    auth_scheme=AuthScheme.API_KEY,
)

LOCAL = ProviderDescriptor(
    id="local",
    name="Local Inference Server",
    base_url="http://localhost:8080",
    endpoints={
        COMPLETIONS: "/v1/completions",
        CHAT_COMPLETIONS: "/v1/chat/completions",
        EMBEDDINGS: "/v1/embeddings",
        MODELS: "/v1/models",
    },
    default_model="local-model",
    default_embedding_model="local-model",
    rate_limits=None,  # bounded by local hardware
    auth_scheme=AuthScheme.NONE,
)

_providers: Mapping[str, ProviderDescriptor] = MappingProxyType(
    {p.id: p for p in (OPENAI, AZURE, LOCAL)}
)


def describe(provider_id: str) -> ProviderDescriptor:
    """Look up a provider descriptor by id."""
    try:
        return _providers[provider_id]
    except KeyError:
        raise UnknownProviderError(provider_id) from None


def is_known(provider_id: str) -> bool:
    return provider_id in _providers


def list_providers() -> list[ProviderDescriptor]:
    return list(_providers.values())


def is_configured(provider_id: str, config: "ClientConfiguration") -> bool:
    """True when the provider has every credential and endpoint it needs."""
    provider = _providers.get(provider_id)
    if provider is None:
        return False

    if provider.requires_api_key:
        key = config.keys.get(provider_id)
        if not isinstance(key, str) or not key:
            return False

    if provider.requires_custom_endpoint and not config.custom_endpoints.get(provider_id):
        return False

    return True
