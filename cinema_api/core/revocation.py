"""Token revocation storage.

Revoked token ids live in a shared key-value cache with a per-key TTL equal
to the token's remaining validity, so an entry disappears on its own once
the token it blocks would have expired anyway.
"""
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional, Union
import asyncio
import heapq
import logging
import time

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from cinema_api.core.config import Settings
from cinema_api.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

Ttl = Union[int, float, timedelta]


def _ttl_seconds(ttl: Ttl) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)


class RevocationStore(ABC):
    """Key-value store with automatic per-key expiry."""

    @abstractmethod
    async def put(self, key: str, value: str, ttl: Ttl) -> None:
        """Store ``value`` under ``key`` until ``ttl`` elapses. Overwriting resets the TTL."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None once expired or never set."""

    async def close(self) -> None:
        return None


class _Entry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: str, ttl: float) -> None:
        self.value = value
        self.expires_at = time.monotonic() + ttl

    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class InMemoryRevocationStore(RevocationStore):
    """Process-local store for tests and single-process development."""

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        # (expires_at, key), may hold stale pairs for overwritten keys
        self._expiry_heap: list[tuple[float, str]] = []

    def _purge_expired(self) -> None:
        now = time.monotonic()
        while self._expiry_heap and self._expiry_heap[0][0] <= now:
            expires_at, key = heapq.heappop(self._expiry_heap)
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at == expires_at:
                del self._entries[key]

    async def put(self, key: str, value: str, ttl: Ttl) -> None:
        seconds = _ttl_seconds(ttl)
        if seconds <= 0:
            raise ValueError("ttl must be positive")
        self._purge_expired()
        entry = _Entry(value, seconds)
        self._entries[key] = entry
        heapq.heappush(self._expiry_heap, (entry.expires_at, key))

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired():
            self._entries.pop(key, None)
            return None
        return entry.value

    def __len__(self) -> int:
        return sum(1 for e in self._entries.values() if not e.is_expired())


class RedisRevocationStore(RevocationStore):
    """Redis-backed store shared by every API process."""

    def __init__(self, redis_url: str, *, prefix: str = "", socket_timeout: float = 5.0, client=None):
        self.prefix = prefix
        self.client = client or aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def put(self, key: str, value: str, ttl: Ttl) -> None:
        seconds = _ttl_seconds(ttl)
        if seconds <= 0:
            raise ValueError("ttl must be positive")
        # floor to whole milliseconds so the entry never outlives the token
        millis = int(seconds * 1000)
        if millis == 0:
            return
        try:
            await self.client.set(self._key(key), value, px=millis)
        except (RedisError, asyncio.TimeoutError, OSError) as e:
            logger.error("Revocation store write failed", extra={"key": key}, exc_info=e)
            raise StoreUnavailableError("Revocation store is unavailable") from e

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(self._key(key))
        except (RedisError, asyncio.TimeoutError, OSError) as e:
            logger.error("Revocation store read failed", extra={"key": key}, exc_info=e)
            raise StoreUnavailableError("Revocation store is unavailable") from e

    async def close(self) -> None:
        await self.client.aclose()


def build_revocation_store(settings: Settings) -> RevocationStore:
    if settings.redis_url.startswith("memory://"):
        logger.warning("Using process-local revocation store; revocations are not shared")
        return InMemoryRevocationStore()
    return RedisRevocationStore(
        settings.redis_url,
        prefix=settings.redis_prefix,
        socket_timeout=settings.redis_timeout,
    )
