"""Sliding-window rate limiting for turns and tool calls."""

from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter

from console_ai.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Rate limiter backed by the limits library's moving window strategy."""

    def __init__(self, storage: Storage | None = None):
        """Initialize rate limiter.

        Args:
            storage: limits storage backend (defaults to in-process memory)
        """
        self.storage = storage or MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

    def allow(self, key: str, limit: int, window_ms: int) -> bool:
        """Consume one unit for ``key``; False when ``limit`` is already used up in the window."""
        window_seconds = max(1, window_ms // 1000)
        item = RateLimitItemPerSecond(limit, window_seconds)
        allowed = self.limiter.hit(item, key)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {key} ({limit} per {window_seconds}s)")
        return allowed

    def reset(self) -> None:
        """Clear every counter."""
        self.storage.reset()
