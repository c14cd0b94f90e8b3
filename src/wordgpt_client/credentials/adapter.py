"""Credential store adapter — loads and persists the client configuration.

The configuration lives as one JSON record in the secret store. When an
encryptor is available each API key is encrypted on its own, so a key
that fails to decrypt only affects its own provider.
"""

import json

from wordgpt_client.client.errors import MissingConfigurationError
from wordgpt_client.credentials.encryption import Encryptor
from wordgpt_client.credentials.models import ClientConfiguration
from wordgpt_client.credentials.store import SecretStore
from wordgpt_client.logging.structured import get_logger
from wordgpt_client.providers import registry

DEFAULT_RECORD_KEY = "wordGptPlusApiConfig"
ENCRYPTION_SCOPE = "local"

logger = get_logger("credentials")


class CredentialStore:
    """Owns the mutable ClientConfiguration and writes it through on every change."""

    def __init__(
        self,
        secret_store: SecretStore,
        encryptor: Encryptor | None = None,
        record_key: str = DEFAULT_RECORD_KEY,
        default_provider: str = "openai",
    ):
        registry.describe(default_provider)
        self._secret_store = secret_store
        self._encryptor = encryptor
        self._record_key = record_key
        self._default_provider = default_provider
        self.config = self._defaults()

    def _defaults(self) -> ClientConfiguration:
        return ClientConfiguration(active_provider=self._default_provider)

    async def load(self) -> ClientConfiguration:
        """Read the persisted record and merge it over the defaults."""
        blob = await self._secret_store.read(self._record_key)
        if blob is None:
            self.config = self._defaults()
            return self.config

        try:
            data = json.loads(blob)
        except json.JSONDecodeError:
            logger.error("Stored API configuration is not valid JSON, using defaults")
            self.config = self._defaults()
            return self.config

        if not isinstance(data, dict):
            logger.error("Stored API configuration has unexpected shape, using defaults")
            self.config = self._defaults()
            return self.config

        for field in ("keys", "customEndpoints"):
            if data.get(field) is not None and not isinstance(data[field], dict):
                logger.warning(
                    "Stored API configuration field has unexpected shape, ignoring it",
                    extra={"audit_data": {"field": field}},
                )
                data[field] = {}

        if self._encryptor is not None:
            data["keys"] = await self._decrypt_keys(data.get("keys") or {})

        config = ClientConfiguration.from_dict(data, defaults=self._defaults())
        if not registry.is_known(config.active_provider):
            logger.warning(
                "Stored active provider is unknown, falling back to default",
                extra={"audit_data": {
                    "stored_provider": config.active_provider,
                    "default_provider": self._default_provider,
                }},
            )
            config.active_provider = self._default_provider

        self.config = config
        logger.info(
            "API configuration loaded",
            extra={"audit_data": {
                "active_provider": config.active_provider,
                "providers_with_keys": sorted(config.keys),
            }},
        )
        return self.config

    async def save(self) -> None:
        """Serialize the configuration and write it through to the secret store."""
        record = self.config.to_dict()
        if self._encryptor is not None:
            record["keys"] = await self._encrypt_keys(record["keys"])
        await self._secret_store.write(self._record_key, json.dumps(record))

    async def _decrypt_keys(self, stored: dict[str, str]) -> dict[str, str]:
        keys = {}
        for provider, value in stored.items():
            try:
                keys[provider] = await self._encryptor.decrypt(value, ENCRYPTION_SCOPE)
            except Exception:
                # Keep the raw value so the other providers still load
                logger.warning(
                    "Failed to decrypt API key, using stored value",
                    exc_info=True,
                    extra={"audit_data": {"provider": provider}},
                )
                keys[provider] = value
        return keys

    async def _encrypt_keys(self, plain: dict[str, str]) -> dict[str, str]:
        keys = {}
        for provider, value in plain.items():
            try:
                keys[provider] = await self._encryptor.encrypt(value, ENCRYPTION_SCOPE)
            except Exception:
                logger.warning(
                    "Failed to encrypt API key, storing unencrypted",
                    exc_info=True,
                    extra={"audit_data": {"provider": provider}},
                )
                keys[provider] = value
        return keys

    # --- Mutators (each persists) ---

    async def set_api_key(self, provider: str, key: str) -> None:
        registry.describe(provider)
        self.config.keys[provider] = key
        await self.save()

    async def set_custom_endpoint(self, provider: str, endpoint: str) -> None:
        registry.describe(provider)
        self.config.custom_endpoints[provider] = endpoint
        await self.save()

    async def set_active_provider(self, provider: str) -> None:
        descriptor = registry.describe(provider)
        if descriptor.requires_custom_endpoint and not self.config.custom_endpoints.get(provider):
            raise MissingConfigurationError(provider, "custom endpoint is required")
        self.config.active_provider = provider
        await self.save()

    # --- Lookups ---

    @property
    def active_provider(self) -> str:
        return self.config.active_provider

    def api_key(self, provider: str) -> str | None:
        return self.config.keys.get(provider)

    def base_url(self, provider: str) -> str:
        """Custom endpoint override if set, else the registry's base URL."""
        override = self.config.custom_endpoints.get(provider)
        if override:
            return override
        base_url = registry.describe(provider).base_url
        if not base_url:
            raise MissingConfigurationError(provider, "custom endpoint is required")
        return base_url

    def is_configured(self, provider: str) -> bool:
        return registry.is_configured(provider, self.config)
