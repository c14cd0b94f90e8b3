"""Public entry points of the multi-provider API client.

``ApiClient`` composes the credential store, rate limiter, retry engine,
request queue and executor. Build one per process with
``await ApiClient.from_settings()``; tests build isolated instances
directly with in-memory collaborators.
"""

import asyncio
from dataclasses import asdict

from wordgpt_client.client.errors import InvalidResponseShapeError, MissingConfigurationError
from wordgpt_client.client.executor import ApiRequestExecutor
from wordgpt_client.client.queue import RequestQueue
from wordgpt_client.client.ratelimit import RateLimiter, estimate_tokens
from wordgpt_client.client.retry import RetryEngine, RetryPolicy, Sleep
from wordgpt_client.config.settings import get_settings
from wordgpt_client.credentials.adapter import CredentialStore
from wordgpt_client.credentials.factory import get_encryptor, get_secret_store
from wordgpt_client.logging.structured import get_logger, request_scope
from wordgpt_client.providers import registry
from wordgpt_client.providers.base import CHAT_COMPLETIONS, COMPLETIONS, EMBEDDINGS, ProviderDescriptor

logger = get_logger("client")

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000


class ApiClient:
    """Multi-provider LLM client with rate limiting, queueing and retries."""

    def __init__(
        self,
        credentials: CredentialStore,
        executor: ApiRequestExecutor | None = None,
        limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        queue_poll_interval: float = 5.0,
        queue_timeout: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.credentials = credentials
        self.limiter = limiter or RateLimiter()
        self.executor = executor or ApiRequestExecutor(credentials, self.limiter)
        self.retry = RetryEngine(self.executor.execute, retry_policy, sleep=sleep)
        self.queue = RequestQueue(
            self.limiter, self.retry, poll_interval=queue_poll_interval, sleep=sleep
        )
        self._queue_timeout = queue_timeout

    @classmethod
    async def create(cls, credentials: CredentialStore, **kwargs) -> "ApiClient":
        """Build a client and load its persisted configuration once."""
        client = cls(credentials, **kwargs)
        await credentials.load()
        return client

    @classmethod
    async def from_settings(cls) -> "ApiClient":
        settings = get_settings()
        credentials = CredentialStore(
            secret_store=get_secret_store(),
            encryptor=get_encryptor(),
            record_key=settings.secret_store_key,
            default_provider=settings.default_provider,
        )
        limiter = RateLimiter()
        executor = ApiRequestExecutor(
            credentials,
            limiter,
            timeout=settings.request_timeout,
            connect_timeout=settings.connect_timeout,
        )
        return await cls.create(
            credentials,
            executor=executor,
            limiter=limiter,
            retry_policy=RetryPolicy(
                max_retries=settings.max_retries,
                initial_delay=settings.retry_initial_delay,
                backoff_factor=settings.retry_backoff_factor,
            ),
            queue_poll_interval=settings.queue_poll_interval,
            queue_timeout=settings.queue_timeout_or_none,
        )

    # --- Configuration ---

    @property
    def active_provider(self) -> str:
        return self.credentials.active_provider

    def is_configured(self, provider: str | None = None) -> bool:
        return self.credentials.is_configured(provider or self.active_provider)

    async def set_api_key(self, provider: str, key: str) -> None:
        await self.credentials.set_api_key(provider, key)

    async def set_custom_endpoint(self, provider: str, endpoint: str) -> None:
        await self.credentials.set_custom_endpoint(provider, endpoint)

    async def set_active_provider(self, provider: str) -> None:
        await self.credentials.set_active_provider(provider)

    def provider_status(self) -> list[dict]:
        """Configuration and rate window state per provider. Never includes keys."""
        return [
            {
                "id": p.id,
                "name": p.name,
                "active": p.id == self.active_provider,
                "configured": self.is_configured(p.id),
                "custom_endpoint": self.credentials.config.custom_endpoints.get(p.id),
                "rate_limit": asdict(self.limiter.snapshot(p.id)),
            }
            for p in registry.list_providers()
        ]

    # --- Request assembly ---

    def _resolve_provider(self, provider: str | None) -> ProviderDescriptor:
        name = provider or self.active_provider
        descriptor = registry.describe(name)
        if not self.credentials.is_configured(name):
            raise MissingConfigurationError(name, "API key or endpoint not set")
        return descriptor

    @staticmethod
    def _resolve_model(descriptor: ProviderDescriptor, model: str | None, default: str | None,
                       deployment: str | None) -> str:
        resolved = model or default
        if not resolved and descriptor.deployment_required:
            resolved = deployment
        if not resolved:
            raise MissingConfigurationError(descriptor.id, "no model specified and no default model")
        return resolved

    @staticmethod
    def _add_deployment(params: dict, descriptor: ProviderDescriptor, deployment: str | None) -> None:
        if descriptor.deployment_required:
            params["deployment_id"] = deployment or params["model"]

    async def _submit(self, descriptor: ProviderDescriptor, operation: str, params: dict,
                      estimated_tokens: int, timeout: float | None) -> dict:
        endpoint = descriptor.endpoint_for(operation)
        with request_scope():
            logger.debug(
                "Submitting API request",
                extra={"audit_data": {
                    "provider": descriptor.id,
                    "endpoint": endpoint,
                    "model": params.get("model"),
                    "estimated_tokens": estimated_tokens,
                }},
            )
            return await self.queue.submit(
                descriptor.id,
                endpoint,
                params,
                estimated_tokens,
                timeout=timeout if timeout is not None else self._queue_timeout,
            )

    async def create_chat_completion(
        self,
        messages: list[dict],
        *,
        provider: str | None = None,
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        top_p: float = 1.0,
        frequency_penalty: float = 0.0,
        presence_penalty: float = 0.0,
        deployment: str | None = None,
        timeout: float | None = None,
    ) -> dict:
        descriptor = self._resolve_provider(provider)
        params = {
            "model": self._resolve_model(descriptor, model, descriptor.default_model, deployment),
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "top_p": top_p,
            "frequency_penalty": frequency_penalty,
            "presence_penalty": presence_penalty,
        }
        self._add_deployment(params, descriptor, deployment)

        estimated = estimate_tokens({"messages": messages}) + max_tokens
        return await self._submit(descriptor, CHAT_COMPLETIONS, params, estimated, timeout)

    async def create_completion(
        self,
        prompt: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        top_p: float = 1.0,
        frequency_penalty: float = 0.0,
        presence_penalty: float = 0.0,
        deployment: str | None = None,
        timeout: float | None = None,
    ) -> dict:
        descriptor = self._resolve_provider(provider)
        params = {
            "model": self._resolve_model(descriptor, model, descriptor.default_model, deployment),
            "prompt": prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "top_p": top_p,
            "frequency_penalty": frequency_penalty,
            "presence_penalty": presence_penalty,
        }
        self._add_deployment(params, descriptor, deployment)

        estimated = estimate_tokens({"prompt": prompt}) + max_tokens
        return await self._submit(descriptor, COMPLETIONS, params, estimated, timeout)

    async def create_embedding(
        self,
        input: str | list[str],
        *,
        provider: str | None = None,
        model: str | None = None,
        deployment: str | None = None,
        timeout: float | None = None,
    ) -> dict:
        descriptor = self._resolve_provider(provider)
        params = {
            "model": self._resolve_model(descriptor, model, descriptor.default_embedding_model, deployment),
            "input": input,
        }
        self._add_deployment(params, descriptor, deployment)

        estimated = estimate_tokens({"input": input})
        return await self._submit(descriptor, EMBEDDINGS, params, estimated, timeout)

    async def generate_text(self, prompt: str, *, use_chat_model: bool = True, **options) -> str:
        """Generate text for a prompt and return only the generated string.

        Uses the chat completions shape unless ``use_chat_model`` is False,
        in which case the legacy completions endpoint is called.
        """
        if use_chat_model:
            response = await self.create_chat_completion(
                [{"role": "user", "content": prompt}], **options
            )
            message = _first_choice(response).get("message")
            if not isinstance(message, dict) or not isinstance(message.get("content"), str):
                raise InvalidResponseShapeError("choices[0].message.content")
            return message["content"]

        response = await self.create_completion(prompt, **options)
        text = _first_choice(response).get("text")
        if not isinstance(text, str):
            raise InvalidResponseShapeError("choices[0].text")
        return text

    async def get_available_models(self, provider: str | None = None) -> list:
        descriptor = self._resolve_provider(provider)
        return await self.executor.list_models(descriptor.id)

    # --- Lifecycle ---

    async def close(self) -> None:
        await self.queue.close()
        await self.executor.close()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()


def _first_choice(response) -> dict:
    if not isinstance(response, dict):
        return {}
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    return choices[0]
