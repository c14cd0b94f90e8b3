"""Per-provider sliding window accounting for requests and tokens.

Each rate-limited provider gets a RateWindow holding the timestamps of
recent requests and the token counts they consumed. Entries older than
the window are pruned before every check. Checking never reserves
capacity: usage is recorded only after a request is dispatched, so two
interleaved callers may both pass the check (soft over-limit bursts).
"""

import math
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from wordgpt_client.logging.structured import get_logger
from wordgpt_client.providers import registry

WINDOW_SECONDS = 60.0
CHARS_PER_TOKEN = 4

logger = get_logger("ratelimit")


@dataclass
class TokenEntry:
    time: float
    count: int


@dataclass
class RateWindow:
    request_timestamps: deque[float] = field(default_factory=deque)
    token_counts: deque[TokenEntry] = field(default_factory=deque)

    def prune(self, now: float) -> None:
        window_start = now - WINDOW_SECONDS
        while self.request_timestamps and self.request_timestamps[0] <= window_start:
            self.request_timestamps.popleft()
        while self.token_counts and self.token_counts[0].time <= window_start:
            self.token_counts.popleft()

    @property
    def token_total(self) -> int:
        return sum(entry.count for entry in self.token_counts)


@dataclass
class RateLimitStatus:
    limited: bool
    requests: int
    tokens: int
    requests_per_minute: int | None
    tokens_per_minute: int | None
    reset_seconds: float


class RateLimiter:
    """Sliding window accounting for every rate-limited provider."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._windows: dict[str, RateWindow] = {
            p.id: RateWindow() for p in registry.list_providers() if p.rate_limits
        }

    def check_would_exceed(self, provider: str, estimated_tokens: int = 0) -> bool:
        """True if dispatching a request of this size now would break a limit."""
        limits = registry.describe(provider).rate_limits
        window = self._windows.get(provider)
        if limits is None or window is None:
            return False

        window.prune(self._clock())

        if len(window.request_timestamps) >= limits.requests_per_minute:
            logger.warning(
                "Rate limit reached: too many requests",
                extra={"audit_data": {"provider": provider, "requests": len(window.request_timestamps)}},
            )
            return True

        if window.token_total + estimated_tokens >= limits.tokens_per_minute:
            logger.warning(
                "Rate limit reached: token limit exceeded",
                extra={"audit_data": {
                    "provider": provider,
                    "tokens": window.token_total,
                    "estimated_tokens": estimated_tokens,
                }},
            )
            return True

        return False

    def record_usage(self, provider: str, token_count: int = 0) -> None:
        """Record one dispatched request and the tokens it is expected to use."""
        window = self._windows.get(provider)
        if window is None:
            return

        now = self._clock()
        window.request_timestamps.append(now)
        if token_count > 0:
            window.token_counts.append(TokenEntry(time=now, count=token_count))

    def correct_last_usage(self, provider: str, actual_tokens: int) -> None:
        """Replace the most recent token estimate with the reported usage."""
        window = self._windows.get(provider)
        if window is None or not window.token_counts:
            return
        window.token_counts[-1].count = max(0, actual_tokens)

    def snapshot(self, provider: str) -> RateLimitStatus:
        limits = registry.describe(provider).rate_limits
        window = self._windows.get(provider)
        if limits is None or window is None:
            return RateLimitStatus(
                limited=False, requests=0, tokens=0,
                requests_per_minute=None, tokens_per_minute=None, reset_seconds=0.0,
            )

        now = self._clock()
        window.prune(now)
        oldest = [
            t for t in (
                window.request_timestamps[0] if window.request_timestamps else None,
                window.token_counts[0].time if window.token_counts else None,
            ) if t is not None
        ]
        reset = min(oldest) + WINDOW_SECONDS - now if oldest else 0.0

        return RateLimitStatus(
            limited=(
                len(window.request_timestamps) >= limits.requests_per_minute
                or window.token_total >= limits.tokens_per_minute
            ),
            requests=len(window.request_timestamps),
            tokens=window.token_total,
            requests_per_minute=limits.requests_per_minute,
            tokens_per_minute=limits.tokens_per_minute,
            reset_seconds=round(max(0.0, reset), 1),
        )

    def reset(self, provider: str | None = None) -> None:
        """Clear accounting for one provider, or all of them."""
        targets = [provider] if provider else list(self._windows)
        for name in targets:
            if name in self._windows:
                self._windows[name] = RateWindow()


def _approx_tokens(text) -> int:
    if not isinstance(text, str):
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_tokens(request: dict) -> int:
    """Cheap pre-flight token estimate: roughly 4 characters per token."""
    if request.get("messages"):
        return sum(_approx_tokens(m.get("content")) for m in request["messages"])
    if request.get("prompt"):
        return _approx_tokens(request["prompt"])
    if request.get("input"):
        value = request["input"]
        if isinstance(value, list):
            return sum(_approx_tokens(item) for item in value)
        return _approx_tokens(value)
    return 0
