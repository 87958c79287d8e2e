"""
Fast-path duplicate cache and the global append lock.

Two interchangeable backends, picked by ``CACHE_BACKEND``:

* ``memory``: a ``cachetools.TTLCache`` and a ``threading.Lock``. Correct for a
  single process, which is how the service is normally deployed.
* ``redis``: ``SET ... PX`` keys and a redis-py ``Lock``. Correct across
  processes sharing one Redis.

The cache is a throughput optimisation only. Correctness of dedup rests on the
locked scan in ``quizdrill.services.event_log``.
"""
import logging
import threading
import time
from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Iterator

import redis
from cachetools import TTLCache
from redis.exceptions import LockNotOwnedError

from quizdrill.core.config import get_settings
from quizdrill.core.errors import ConfigurationError, LockTimeoutError

logger = logging.getLogger(__name__)


class MemoryDedupCache:
    def __init__(self, ttl_ms: int, maxsize: int = 10000, timer: Callable[[], float] = time.monotonic):
        self._entries = TTLCache(maxsize=maxsize, ttl=ttl_ms / 1000.0, timer=timer)
        # TTLCache is not thread-safe on its own
        self._mutex = threading.Lock()

    def get(self, key: str) -> bool:
        with self._mutex:
            return self._entries.get(key) is not None

    def put(self, key: str) -> None:
        with self._mutex:
            self._entries[key] = "1"


class RedisDedupCache:
    def __init__(self, client: redis.Redis, ttl_ms: int):
        self.redis = client
        self.ttl_ms = ttl_ms

    def get(self, key: str) -> bool:
        return self.redis.get(key) is not None

    def put(self, key: str) -> None:
        self.redis.set(key, "1", px=self.ttl_ms)


class LocalAppendLock:
    def __init__(self, wait_ms: int):
        self.wait_ms = wait_ms
        self._lock = threading.Lock()

    @contextmanager
    def hold(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.wait_ms / 1000.0):
            logger.warning(f"Append lock not acquired within {self.wait_ms} ms")
            raise LockTimeoutError(f"could not acquire append lock within {self.wait_ms} ms")
        try:
            yield
        finally:
            self._lock.release()


class RedisAppendLock:
    def __init__(self, client: redis.Redis, name: str, wait_ms: int, timeout_ms: int):
        self.redis = client
        self.name = name
        self.wait_ms = wait_ms
        self.timeout_ms = timeout_ms

    @contextmanager
    def hold(self) -> Iterator[None]:
        lock = self.redis.lock(
            self.name,
            timeout=self.timeout_ms / 1000.0,
            blocking_timeout=self.wait_ms / 1000.0,
        )
        if not lock.acquire():
            logger.warning(f"Redis lock {self.name} not acquired within {self.wait_ms} ms")
            raise LockTimeoutError(f"could not acquire append lock within {self.wait_ms} ms")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockNotOwnedError:
                # held past LOCK_TIMEOUT_MS; the key already expired
                logger.warning(f"Redis lock {self.name} expired before release")


@lru_cache()
def get_redis_client() -> redis.Redis:
    return redis.Redis.from_url(get_settings().REDIS_URL, decode_responses=True)


@lru_cache()
def get_dedup_cache():
    settings = get_settings()
    if settings.CACHE_BACKEND == "memory":
        return MemoryDedupCache(settings.DEDUP_CACHE_TTL_MS)
    if settings.CACHE_BACKEND == "redis":
        return RedisDedupCache(get_redis_client(), settings.DEDUP_CACHE_TTL_MS)
    raise ConfigurationError(f"unknown CACHE_BACKEND: {settings.CACHE_BACKEND!r}")


@lru_cache()
def get_append_lock():
    settings = get_settings()
    if settings.CACHE_BACKEND == "memory":
        return LocalAppendLock(settings.LOCK_WAIT_MS)
    if settings.CACHE_BACKEND == "redis":
        return RedisAppendLock(
            get_redis_client(), settings.LOCK_NAME, settings.LOCK_WAIT_MS, settings.LOCK_TIMEOUT_MS
        )
    raise ConfigurationError(f"unknown CACHE_BACKEND: {settings.CACHE_BACKEND!r}")
