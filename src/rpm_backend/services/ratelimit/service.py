"""Fixed-window request counting behind an injectable store.

The default store delegates counting and expiry to ``limits``: ``memory://``
keeps windows in process, a ``redis://`` URI shares them between workers.
Handlers only see :class:`RateLimitStore`, so tests can swap in their own.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address

from src.rpm_backend.config import settings

logger = logging.getLogger(__name__)


class RateLimitStore(ABC):
    @abstractmethod
    def hit(self, key: str, *, window_seconds: int, max_requests: int) -> bool:
        """Count one request for ``key``; return False once the window is full."""

        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop expired windows and return how many were removed."""

        raise NotImplementedError


class LimitsRateLimitStore(RateLimitStore):
    def __init__(self, storage_uri: str = "memory://") -> None:
        self._storage = storage_from_string(storage_uri)
        self._limiter = FixedWindowRateLimiter(self._storage)
        # Keys seen so far and the limit they were counted under.
        self._items: Dict[str, RateLimitItem] = {}

    def hit(self, key: str, *, window_seconds: int, max_requests: int) -> bool:
        item = RateLimitItemPerSecond(max_requests, int(window_seconds))
        self._items[key] = item
        return self._limiter.hit(item, key)

    def sweep(self) -> int:
        expired = []
        for key, item in list(self._items.items()):
            stats = self._limiter.get_window_stats(item, key)
            if stats.reset_time <= time.time():
                expired.append(key)

        for key in expired:
            self._limiter.clear(self._items.pop(key), key)
        if expired:
            logger.debug("Swept %d expired rate-limit windows", len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._items)


rate_limit_store: RateLimitStore = LimitsRateLimitStore(settings.rate_limit_storage_uri)


def get_rate_limit_store() -> RateLimitStore:
    """Dependency hook; override in tests or point at a shared cache."""

    return rate_limit_store


def rate_limit(window_seconds: Optional[int] = None, max_requests: Optional[int] = None):
    """Build a dependency limiting each client to ``max_requests`` per window and path."""

    async def _dependency(request: Request, store: RateLimitStore = Depends(get_rate_limit_store)) -> None:
        window = window_seconds if window_seconds is not None else settings.auth_rate_limit_window_seconds
        limit = max_requests if max_requests is not None else settings.auth_rate_limit_max_requests
        key = f"{get_remote_address(request)}:{request.url.path}"
        if not store.hit(key, window_seconds=window, max_requests=limit):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later.",
            )

    return _dependency
