"""Retry with exponential backoff for transient provider failures."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from wordgpt_client.client.errors import ProviderHttpError, RetriesExhaustedError, is_retryable_status
from wordgpt_client.logging.structured import get_logger

logger = get_logger("retry")

Execute = Callable[[str, str, dict, int], Awaitable[dict]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_delay: float = 1.0  # seconds
    backoff_factor: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt`` (0-based)."""
        return self.initial_delay * self.backoff_factor ** attempt


def should_retry(status_code: int | None) -> bool:
    """Retry on rate limiting and server errors only."""
    return is_retryable_status(status_code)


class RetryEngine:
    """Runs a request, re-running it after retryable failures."""

    def __init__(self, execute: Execute, policy: RetryPolicy | None = None, sleep: Sleep = asyncio.sleep):
        self._execute = execute
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def run(
        self,
        provider: str,
        endpoint: str,
        params: dict,
        estimated_tokens: int,
        on_retry: Callable[[int], None] | None = None,
    ) -> dict:
        try:
            return await self._execute(provider, endpoint, params, estimated_tokens)
        except ProviderHttpError as e:
            if not e.retryable:
                raise
            last_error = e

        for attempt in range(self.policy.max_retries):
            delay = self.policy.delay_for(attempt)
            logger.info(
                "Retrying API request",
                extra={"audit_data": {
                    "provider": provider,
                    "endpoint": endpoint,
                    "attempt": attempt + 1,
                    "max_retries": self.policy.max_retries,
                    "delay_seconds": delay,
                    "last_status": last_error.status,
                }},
            )
            if on_retry is not None:
                on_retry(attempt + 1)
            await self._sleep(delay)

            try:
                return await self._execute(provider, endpoint, params, estimated_tokens)
            except ProviderHttpError as e:
                if not e.retryable:
                    raise
                last_error = e

        logger.error(
            "API request failed after retries",
            extra={"audit_data": {
                "provider": provider,
                "endpoint": endpoint,
                "max_retries": self.policy.max_retries,
                "last_status": last_error.status,
            }},
        )
        raise RetriesExhaustedError(provider, endpoint, self.policy.max_retries, last_error)
