"""
Result Store
============

Keyed store of hex-encoded render results.

Each request id maps to at most one value; a later write replaces the earlier
one. The store never evicts on its own, retention belongs to the transport.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
import threading

import redis.asyncio as redis  # type: ignore[import-untyped]

from url2img.config.logging import get_logger
from url2img.config.settings import Settings, get_settings

logger = get_logger(__name__)


class ResultStore(ABC):
    """Request id to encoded result mapping shared by all render sessions."""

    async def initialize(self) -> None:
        """Prepare the store for use."""

    async def close(self) -> None:
        """Release store resources."""

    @abstractmethod
    async def set(self, request_id: str, value: str) -> None:
        """Store value under request_id, replacing any previous value."""

    @abstractmethod
    async def get(self, request_id: str) -> Optional[str]:
        """Return the value stored under request_id, or None."""

    @abstractmethod
    async def delete(self, request_id: str) -> bool:
        """Remove request_id; return whether a value was stored."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove all stored results."""

    @abstractmethod
    async def size(self) -> int:
        """Number of stored results."""

    async def ping(self) -> bool:
        return True


class MemoryResultStore(ResultStore):
    """
    In-process result store.

    The lock makes the store safe for transports that read it from threads
    other than the event loop thread.
    """

    def __init__(self) -> None:
        self._results: Dict[str, str] = {}
        self._lock = threading.Lock()

    async def set(self, request_id: str, value: str) -> None:
        with self._lock:
            self._results[request_id] = value

    async def get(self, request_id: str) -> Optional[str]:
        with self._lock:
            return self._results.get(request_id)

    async def delete(self, request_id: str) -> bool:
        with self._lock:
            return self._results.pop(request_id, None) is not None

    async def clear(self) -> None:
        with self._lock:
            self._results.clear()

    async def size(self) -> int:
        with self._lock:
            return len(self._results)


class RedisResultStore(ResultStore):
    """Result store backed by Redis string keys."""

    key_prefix = "url2img:result:"

    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        self.settings = settings or get_settings()
        self.ttl = self.settings.result_ttl
        self._client = client
        self._owns_client = client is None
        self.logger: Any = logger.bind(component="redis_result_store")

    async def initialize(self) -> None:
        """Connect to Redis and verify the connection."""
        if self._client is None:
            self._client = redis.from_url(
                self.settings.redis_url,
                max_connections=self.settings.redis_max_connections,
                decode_responses=True,
            )
        try:
            await self._client.ping()
        except Exception as e:
            self.logger.error("Failed to connect to Redis", error=str(e))
            raise

        self.logger.info("Redis result store connected", ttl=self.ttl)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            self.logger.info("Redis connection closed")

    def _key(self, request_id: str) -> str:
        return f"{self.key_prefix}{request_id}"

    @property
    def client(self) -> Any:
        if self._client is None:
            raise RuntimeError("Redis result store not initialized")
        return self._client

    async def set(self, request_id: str, value: str) -> None:
        await self.client.set(self._key(request_id), value, ex=self.ttl)

    async def get(self, request_id: str) -> Optional[str]:
        value = await self.client.get(self._key(request_id))
        if isinstance(value, bytes):
            return value.decode("ascii")
        return value

    async def delete(self, request_id: str) -> bool:
        return bool(await self.client.delete(self._key(request_id)))

    async def clear(self) -> None:
        keys = [key async for key in self.client.scan_iter(match=f"{self.key_prefix}*")]
        if keys:
            await self.client.delete(*keys)

    async def size(self) -> int:
        count = 0
        async for _ in self.client.scan_iter(match=f"{self.key_prefix}*"):
            count += 1
        return count

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except Exception as e:
            self.logger.warning("Redis ping failed", error=str(e))
            return False


def create_result_store(settings: Optional[Settings] = None) -> ResultStore:
    """
    Create the result store selected by settings.

    Args:
        settings: Application settings, defaults to the global settings

    Returns:
        Uninitialized result store
    """
    settings = settings or get_settings()
    if settings.result_backend == "redis":
        return RedisResultStore(settings)
    return MemoryResultStore()
