"""Static provider descriptors.

Everything that differs between backends (auth header, deployment id,
default models, rate limits) is data on the descriptor so call sites
never branch on the provider id.
"""

from dataclasses import dataclass, field
from enum import Enum

from wordgpt_client.client.errors import UnsupportedOperationError

# Logical operations a provider may expose
COMPLETIONS = "completions"
CHAT_COMPLETIONS = "chat_completions"
EMBEDDINGS = "embeddings"
MODELS = "models"


class AuthScheme(str, Enum):
    BEARER = "bearer"    # Authorization: Bearer <key>
    API_KEY = "api-key"  # api-key: <key>
    NONE = "none"        # no credential sent


@dataclass(frozen=True)
class RateLimits:
    requests_per_minute: int
    tokens_per_minute: int


@dataclass(frozen=True)
class ProviderDescriptor:
    id: str
    name: str
    base_url: str | None  # None = must be supplied as a custom endpoint
    endpoints: dict[str, str] = field(default_factory=dict)
    default_model: str | None = None
    default_embedding_model: str | None = None
    deployment_required: bool = False
    rate_limits: RateLimits | None = None  # None = never throttled
    auth_scheme: AuthScheme = AuthScheme.BEARER

    @property
    def requires_api_key(self) -> bool:
        return self.auth_scheme is not AuthScheme.NONE

    @property
    def requires_custom_endpoint(self) -> bool:
        return self.base_url is None

    def supports(self, operation: str) -> bool:
        return operation in self.endpoints

    def endpoint_for(self, operation: str) -> str:
        """Path suffix for a logical operation."""
        try:
            return self.endpoints[operation]
        except KeyError:
            raise UnsupportedOperationError(self.id, operation) from None

    def auth_headers(self, api_key: str | None) -> dict[str, str]:
        if self.auth_scheme is AuthScheme.BEARER:
            return {"Authorization": f"Bearer {api_key}"}
        if self.auth_scheme is AuthScheme.API_KEY:
            return {"api-key": api_key or ""}
        return {}
