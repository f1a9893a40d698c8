"""Client-side rate limiting for outbound CRM calls.

Uses a sliding window counter so bulk jobs (the rent backfill) stay under
the CRM's per-minute request quota.
"""

import asyncio
import logging
import time
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Rate limit configuration."""

    requests: int  # Number of requests allowed
    window_seconds: int  # Time window in seconds
    key_prefix: str = "ratelimit"


# Default outbound limits
RATE_LIMITS = {
    # Contact updates during backfills
    "crm_contacts": RateLimitConfig(requests=150, window_seconds=60, key_prefix="rl:crm"),
}


class InMemoryRateLimiter:
    """In-memory sliding window rate limiter for a single process."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        # Structure: {key: [(timestamp, count), ...]}
        self._windows: dict[str, list[tuple[float, int]]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._clock = clock
        self._sleep = sleep

    async def is_rate_limited(
        self,
        key: str,
        config: RateLimitConfig,
    ) -> tuple[bool, int, float]:
        """Check if a call should be held back, recording it when allowed.

        Args:
            key: Unique identifier (location id, job name, etc.)
            config: Rate limit configuration

        Returns:
            Tuple of (is_limited, remaining_requests, reset_time_seconds)
        """
        async with self._lock:
            now = self._clock()
            window_start = now - config.window_seconds
            full_key = f"{config.key_prefix}:{key}"

            # Clean old entries and count requests in current window
            self._windows[full_key] = [
                (ts, count)
                for ts, count in self._windows[full_key]
                if ts > window_start
            ]

            total_requests = sum(count for _, count in self._windows[full_key])

            if total_requests >= config.requests:
                # Calculate reset time (oldest entry expiration)
                if self._windows[full_key]:
                    oldest_ts = min(ts for ts, _ in self._windows[full_key])
                    reset_seconds = oldest_ts + config.window_seconds - now
                else:
                    reset_seconds = float(config.window_seconds)
                return True, 0, max(0.01, reset_seconds)

            self._windows[full_key].append((now, 1))
            remaining = config.requests - total_requests - 1

            return False, remaining, float(config.window_seconds)

    async def wait_for_slot(self, key: str, config: RateLimitConfig) -> None:
        """Block until a call is allowed, then record it."""
        while True:
            is_limited, _, reset_seconds = await self.is_rate_limited(key, config)
            if not is_limited:
                return
            logger.info(
                f"Rate limit reached for {key} "
                f"(limit: {config.requests}/{config.window_seconds}s), waiting {reset_seconds:.1f}s"
            )
            await self._sleep(reset_seconds)
