"""
Rate Limiter module for the VAT checker system.

This module provides per-client admission control with:
- A sliding window of request timestamps per client identity
- Lazy expiry of an identity's timestamps on that identity's own call
- A probabilistic global sweep that forgets identities with no recent requests
- An asyncio.Lock around the shared map so concurrent requests from the same
  identity cannot both be admitted past the limit

State lives in process memory only. Each process instance enforces its own
limit; horizontally scaled deployments get proportionally looser limits.
"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .config import RateLimitRule


@dataclass
class RateLimitStatus:
    """Result of an admission check."""

    allowed: bool
    retry_after_seconds: Optional[int] = None
    request_count: int = 0


class SlidingWindowRateLimiter:
    """
    Sliding-window rate limiter keyed by client identity.

    Rejected requests are not recorded, so they never extend a client's
    lockout beyond the requests that were actually admitted.
    """

    def __init__(
        self,
        rule: Optional[RateLimitRule] = None,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            rule: Window length, request allowance and sweep probability
            random_source: Returns a float in [0, 1); decides when to sweep
        """
        self._rule = rule or RateLimitRule()
        self._random = random_source
        self._request_times: dict[str, list[float]] = {}
        self._lock = asyncio.Lock()

    @property
    def rule(self) -> RateLimitRule:
        return self._rule

    @property
    def tracked_identities(self) -> set[str]:
        """Identities currently holding a timestamp record."""
        return set(self._request_times)

    async def admit(self, identity: str, now: Optional[float] = None) -> RateLimitStatus:
        """
        Decide whether a request from ``identity`` is admitted.

        Args:
            identity: Client identity (usually the client IP)
            now: Current time in seconds; defaults to ``time.time()``

        Returns:
            RateLimitStatus; when rejected, ``retry_after_seconds`` is the full
            window length
        """
        if now is None:
            now = time.time()

        async with self._lock:
            recent = self._recent(self._request_times.get(identity, []), now)

            if len(recent) >= self._rule.max_requests:
                self._request_times[identity] = recent
                status = RateLimitStatus(
                    allowed=False,
                    retry_after_seconds=int(self._rule.window_seconds),
                    request_count=len(recent),
                )
            else:
                recent.append(now)
                self._request_times[identity] = recent
                status = RateLimitStatus(allowed=True, request_count=len(recent))

            if self._random() < self._rule.sweep_probability:
                self._sweep_locked(now)

        return status

    async def sweep(self, now: Optional[float] = None) -> int:
        """
        Drop expired timestamps for every identity and forget empty ones.

        Returns:
            Number of identities removed
        """
        if now is None:
            now = time.time()
        async with self._lock:
            return self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> int:
        removed = 0
        for identity in list(self._request_times):
            recent = self._recent(self._request_times[identity], now)
            if recent:
                self._request_times[identity] = recent
            else:
                del self._request_times[identity]
                removed += 1
        return removed

    def _recent(self, times: list[float], now: float) -> list[float]:
        """Timestamps still inside the window ending at ``now``."""
        return [t for t in times if now - t < self._rule.window_seconds]

    def request_count(self, identity: str, now: Optional[float] = None) -> int:
        """Number of admitted requests for ``identity`` still inside the window."""
        if now is None:
            now = time.time()
        return len(self._recent(self._request_times.get(identity, []), now))
