"""FIFO queue for requests that would exceed a provider's rate window.

A single background drain task services the queue head. While the head
is still rate limited the task sleeps for the poll interval and checks
the same request again; requests behind it wait their turn. All
providers share the one queue in insertion order.
"""

import asyncio
import contextlib
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from wordgpt_client.client.errors import QueueTimeoutError
from wordgpt_client.client.ratelimit import RateLimiter
from wordgpt_client.client.retry import RetryEngine, Sleep
from wordgpt_client.logging.structured import get_logger

logger = get_logger("queue")


class RequestState(str, Enum):
    PENDING = "pending"
    QUEUED = "queued"
    EXECUTING = "executing"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class QueuedRequest:
    provider: str
    endpoint: str
    params: dict
    estimated_tokens: int
    future: asyncio.Future
    retry_count: int = 0
    state: RequestState = field(default=RequestState.PENDING)
    task: asyncio.Task | None = None


class RequestQueue:
    """Dispatches requests immediately when they fit, queues them otherwise."""

    def __init__(
        self,
        limiter: RateLimiter,
        engine: RetryEngine,
        poll_interval: float = 5.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self._limiter = limiter
        self._engine = engine
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._queue: deque[QueuedRequest] = deque()
        self._draining = False
        self._drain_task: asyncio.Task | None = None

    def pending(self) -> int:
        return sum(1 for r in self._queue if not r.future.done())

    def _has_queued(self, provider: str) -> bool:
        return any(r.provider == provider and not r.future.done() for r in self._queue)

    async def submit(
        self,
        provider: str,
        endpoint: str,
        params: dict,
        estimated_tokens: int = 0,
        timeout: float | None = None,
    ) -> dict:
        """Run a request now, or once the provider's rate window allows it.

        ``timeout`` bounds how long the caller waits for a queued request;
        on expiry the request is withdrawn, any dispatch already under way
        is cancelled, and QueueTimeoutError raised.
        """
        # Requests behind an already-queued one for the same provider keep FIFO order
        if not self._has_queued(provider) and not self._limiter.check_would_exceed(
            provider, estimated_tokens
        ):
            return await self._engine.run(provider, endpoint, params, estimated_tokens)

        request = QueuedRequest(
            provider=provider,
            endpoint=endpoint,
            params=params,
            estimated_tokens=estimated_tokens,
            future=asyncio.get_running_loop().create_future(),
            state=RequestState.QUEUED,
        )
        self._queue.append(request)
        logger.info(
            "Request queued by rate limit",
            extra={"audit_data": {
                "provider": provider,
                "endpoint": endpoint,
                "estimated_tokens": estimated_tokens,
                "queue_length": len(self._queue),
            }},
        )
        self._ensure_draining()

        if timeout is None:
            return await request.future

        try:
            return await asyncio.wait_for(request.future, timeout)
        except asyncio.TimeoutError:
            self._withdraw(request)
            logger.warning(
                "Queued request timed out",
                extra={"audit_data": {"provider": provider, "endpoint": endpoint, "timeout": timeout}},
            )
            raise QueueTimeoutError(provider, endpoint, timeout) from None

    def _withdraw(self, request: QueuedRequest) -> None:
        request.state = RequestState.FAILED
        if request.task is not None:
            request.task.cancel()
        with contextlib.suppress(ValueError):
            self._queue.remove(request)

    def _ensure_draining(self) -> None:
        if self._draining:
            return
        self._draining = True
        self._drain_task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._queue:
                request = self._queue[0]

                # Timed out or cancelled by its caller
                if request.future.done():
                    self._queue.popleft()
                    continue

                if self._limiter.check_would_exceed(request.provider, request.estimated_tokens):
                    await self._sleep(self._poll_interval)
                    continue

                self._queue.popleft()
                await self._dispatch(request)
        finally:
            self._draining = False
            self._drain_task = None

    async def _dispatch(self, request: QueuedRequest) -> None:
        request.state = RequestState.EXECUTING

        def _mark_retry(attempt: int) -> None:
            request.retry_count = attempt
            request.state = RequestState.RETRYING

        task = request.task = asyncio.ensure_future(
            self._engine.run(
                request.provider,
                request.endpoint,
                request.params,
                request.estimated_tokens,
                on_retry=_mark_retry,
            )
        )
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            request.state = RequestState.FAILED
            request.future.cancel()
            raise

        # Withdrawn by a caller timeout after dispatch started
        if task.cancelled():
            request.state = RequestState.FAILED
            return

        error = task.exception()
        if error is not None:
            request.state = RequestState.FAILED
            if not request.future.done():
                request.future.set_exception(error)
            return

        request.state = RequestState.SUCCEEDED
        if not request.future.done():
            request.future.set_result(task.result())

    async def close(self) -> None:
        """Stop draining and cancel every request still waiting."""
        task = self._drain_task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        while self._queue:
            request = self._queue.popleft()
            request.state = RequestState.FAILED
            if not request.future.done():
                request.future.cancel()
