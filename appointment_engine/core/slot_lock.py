"""
Per-slot mutual exclusion for capacity ledger mutations.

The ledger's conditional UPDATE is what keeps booked_count inside
[0, capacity]; the lock additionally serializes whole booking operations
that touch the same slot. InProcessSlotLock covers the single-process
deployment. RedisSlotLock extends the same contract across processes and
fails open when Redis is unreachable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from functools import lru_cache
import logging
import threading
import time
from typing import Dict, Iterator, List, Optional

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import Settings, get_settings
from .exceptions import ConflictException

logger = logging.getLogger(__name__)

_POLL_INTERVAL_S = 0.05


def _lock_key(slot_id: str) -> str:
    return f"slot:{slot_id}:mutex"


def _ordered(slot_ids: tuple[str, ...]) -> List[str]:
    # Sorted, de-duplicated order prevents lock-order deadlocks on reschedule.
    return sorted({slot_id for slot_id in slot_ids if slot_id})


class SlotLock(ABC):
    """Context-managed lock over one or more slot ids."""

    backend = "abstract"

    def __init__(self, wait_s: float = 5.0) -> None:
        self.wait_s = wait_s

    @abstractmethod
    def _acquire(self, key: str, deadline: float) -> bool:
        """Acquire one key before the monotonic deadline."""

    @abstractmethod
    def _release(self, key: str) -> None:
        """Release one previously acquired key."""

    @contextmanager
    def hold(self, *slot_ids: str) -> Iterator[None]:
        keys = [_lock_key(slot_id) for slot_id in _ordered(slot_ids)]
        deadline = time.monotonic() + self.wait_s
        acquired: List[str] = []
        try:
            for key in keys:
                if not self._acquire(key, deadline):
                    prometheus_metrics.record_slot_lock(self.backend, "acquire", "timeout")
                    raise ConflictException(
                        "This appointment slot is busy, please try again",
                        code="SLOT_BUSY",
                        details={"lock_key": key},
                    )
                prometheus_metrics.record_slot_lock(self.backend, "acquire", "success")
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._release(key)
                prometheus_metrics.record_slot_lock(self.backend, "release", "success")


class InProcessSlotLock(SlotLock):
    """Refcounted registry of threading locks keyed by slot id."""

    backend = "memory"

    def __init__(self, wait_s: float = 5.0) -> None:
        super().__init__(wait_s)
        self._registry_lock = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._refs: Dict[str, int] = {}

    def _acquire(self, key: str, deadline: float) -> bool:
        with self._registry_lock:
            lock = self._locks.setdefault(key, threading.Lock())
            self._refs[key] = self._refs.get(key, 0) + 1
        acquired = lock.acquire(timeout=max(deadline - time.monotonic(), 0))
        if not acquired:
            self._drop_ref(key)
        return acquired

    def _release(self, key: str) -> None:
        with self._registry_lock:
            lock = self._locks.get(key)
        if lock is not None:
            lock.release()
        self._drop_ref(key)

    def _drop_ref(self, key: str) -> None:
        with self._registry_lock:
            remaining = self._refs.get(key, 0) - 1
            if remaining <= 0:
                self._refs.pop(key, None)
                self._locks.pop(key, None)
            else:
                self._refs[key] = remaining

    def active_keys(self) -> List[str]:
        with self._registry_lock:
            return sorted(self._locks)


class RedisSlotLock(SlotLock):
    """SET NX EX lock shared by every process pointing at the same Redis."""

    backend = "redis"

    def __init__(
        self,
        client: Optional[Redis] = None,
        *,
        redis_url: Optional[str] = None,
        namespace: str = "appointments",
        ttl_s: int = 30,
        wait_s: float = 5.0,
    ) -> None:
        super().__init__(wait_s)
        self._client = client
        self._redis_url = redis_url
        self.namespace = namespace
        self.ttl_s = ttl_s

    def _namespaced_key(self, key: str) -> str:
        return f"{self.namespace}:lock:{key}"

    def _get_client(self) -> Optional[Redis]:
        if self._client is not None:
            return self._client
        if not self._redis_url:
            return None
        try:
            client = Redis.from_url(self._redis_url, encoding="utf-8", decode_responses=True)
            client.ping()
        except Exception as exc:
            logger.warning("slot_lock_redis_unavailable: %s", exc)
            return None
        self._client = client
        return client

    def _acquire(self, key: str, deadline: float) -> bool:
        client = self._get_client()
        if client is None:
            prometheus_metrics.record_slot_lock(self.backend, "acquire", "redis_unavailable")
            logger.warning("slot_lock_proceeding_without_redis", extra={"lock_key": key})
            return True
        namespaced = self._namespaced_key(key)
        while True:
            try:
                if client.set(namespaced, str(time.time()), nx=True, ex=self.ttl_s):
                    return True
            except Exception as exc:
                prometheus_metrics.record_slot_lock(self.backend, "acquire", "error")
                logger.warning(
                    "slot_lock_acquire_failed",
                    extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
                )
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(_POLL_INTERVAL_S)

    def _release(self, key: str) -> None:
        client = self._get_client()
        if client is None:
            return
        try:
            client.delete(self._namespaced_key(key))
        except Exception as exc:
            prometheus_metrics.record_slot_lock(self.backend, "release", "error")
            logger.warning(
                "slot_lock_release_failed",
                extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
            )


def build_slot_lock(config: Settings) -> SlotLock:
    if config.slot_lock_backend == "redis":
        return RedisSlotLock(
            redis_url=config.redis_url,
            namespace=config.slot_lock_namespace,
            ttl_s=config.slot_lock_ttl_seconds,
            wait_s=config.slot_lock_wait_seconds,
        )
    return InProcessSlotLock(wait_s=config.slot_lock_wait_seconds)


@lru_cache(maxsize=1)
def default_slot_lock() -> SlotLock:
    """Process-wide lock used when a service is not handed one explicitly."""
    return build_slot_lock(get_settings())
