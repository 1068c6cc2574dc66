"""Read-through cache for public, rarely changing data such as the menu.

Values are stored as JSON so a Redis instance can be shared by several API
workers. When Redis is not configured or stops answering, reads fall through to
the wrapped function and an in-process store is used instead.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Protocol

from redis import Redis
from redis.exceptions import RedisError

from .config import get_settings

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl: int) -> None:
        ...

    def clear_prefix(self, prefix: str) -> int:
        ...


class RedisCacheBackend:
    def __init__(self, client: Redis):
        self.client = client

    def get(self, key: str) -> Optional[str]:
        raw = self.client.get(key)
        if raw is None:
            return None
        return raw.decode("utf-8") if isinstance(raw, bytes) else raw

    def set(self, key: str, value: str, ttl: int) -> None:
        self.client.setex(key, ttl, value)

    def clear_prefix(self, prefix: str) -> int:
        keys = list(self.client.scan_iter(f"{prefix}*"))
        if keys:
            self.client.delete(*keys)
        return len(keys)


@dataclass
class _Entry:
    value: str
    expires_at: float


class InMemoryCacheBackend:
    def __init__(self) -> None:
        self._data: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.expires_at < time.monotonic():
                del self._data[key]
                return None
            return entry.value

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._data[key] = _Entry(value=value, expires_at=time.monotonic() + ttl)

    def clear_prefix(self, prefix: str) -> int:
        with self._lock:
            stale = [key for key in self._data if key.startswith(prefix)]
            for key in stale:
                del self._data[key]
        return len(stale)


class CacheManager:
    def __init__(self) -> None:
        self.backend: CacheBackend | None = None

    def init_backend(self) -> None:
        if self.backend is not None:
            return

        settings = get_settings()
        if settings.REDIS_URL:
            try:
                client = Redis.from_url(settings.REDIS_URL, socket_timeout=2)
                client.ping()
                self.backend = RedisCacheBackend(client)
                logger.info("Using Redis cache backend.")
                return
            except (RedisError, OSError) as exc:
                logger.warning("Redis unavailable (%s). Falling back to in-memory cache.", exc)
        self.backend = InMemoryCacheBackend()
        logger.info("Using in-memory cache backend.")

    def use(self, backend: CacheBackend) -> None:
        self.backend = backend

    def get_backend(self) -> CacheBackend:
        if self.backend is None:
            self.init_backend()
        assert self.backend is not None
        return self.backend

    def key(self, namespace: str, identifier: str = "") -> str:
        return f"{get_settings().CACHE_KEY_PREFIX}:{namespace}:{identifier}"

    def read(self, key: str) -> Any | None:
        try:
            raw = self.get_backend().get(key)
        except RedisError as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        return json.loads(raw) if raw is not None else None

    def write(self, key: str, value: Any, ttl: int) -> None:
        try:
            self.get_backend().set(key, json.dumps(value), ttl)
        except RedisError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    def invalidate(self, namespace: str) -> None:
        try:
            removed = self.get_backend().clear_prefix(self.key(namespace))
        except RedisError as exc:
            logger.error("Cache invalidation failed for %s: %s", namespace, exc)
            return
        logger.debug("Invalidated %s cached entries in %s", removed, namespace)


cache_manager = CacheManager()


def cache(
    namespace: str,
    *,
    ttl: Optional[int] = None,
    key_builder: Optional[Callable[..., str]] = None,
):
    """Cache the JSON-serialisable result of a function under ``namespace``.

    ``key_builder`` receives the call arguments and returns the key suffix;
    without one every call shares a single entry. ``ttl`` defaults to
    ``CACHE_TTL_SECONDS``.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args, **kwargs):
            identifier = key_builder(*args, **kwargs) if key_builder else "default"
            key = cache_manager.key(namespace, identifier)
            cached = cache_manager.read(key)
            if cached is not None:
                return cached

            result = func(*args, **kwargs)
            cache_manager.write(key, result, ttl or get_settings().CACHE_TTL_SECONDS)
            return result

        return wrapper

    return decorator


def invalidate_cache(*namespaces: str) -> None:
    for namespace in namespaces:
        cache_manager.invalidate(namespace)
