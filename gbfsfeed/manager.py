"""Registry of GBFS subscriptions driven by an external scheduler."""
from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from gbfsfeed.config import ManagerConfig, SubscriptionOptions
from gbfsfeed.subscription import Consumer, Subscription

logger = logging.getLogger(__name__)

SubscriptionFactory = Callable[[SubscriptionOptions, Consumer], Subscription]


@dataclass
class _RegistryEntry:
    subscription: Subscription
    lock: threading.Lock = field(default_factory=threading.Lock)
    retired: bool = False


class SubscriptionManager:
    """Hold many subscriptions and tick them all on demand.

    ``subscribe``, ``unsubscribe`` and ``tick`` may be called from different
    threads. A subscription is never ticked twice concurrently; a tick that
    finds the previous one still running skips that subscription.
    """

    def __init__(
        self,
        config: Optional[ManagerConfig] = None,
        subscription_factory: Optional[SubscriptionFactory] = None,
    ) -> None:
        self._config = config or ManagerConfig()
        self._factory: SubscriptionFactory = subscription_factory or Subscription
        self._registry: Dict[str, _RegistryEntry] = {}
        self._lock = threading.Lock()
        self._executor: Optional[ThreadPoolExecutor] = None

    def subscribe(self, options: SubscriptionOptions, consumer: Consumer) -> str:
        """Start polling the system described by ``options``; returns the subscription id."""

        subscription = self._factory(options, consumer)
        subscription.init()
        identifier = str(uuid.uuid4())
        with self._lock:
            self._registry[identifier] = _RegistryEntry(subscription)
        logger.info("Subscribed %s to %s", identifier, options.discovery_url)
        return identifier

    def unsubscribe(self, identifier: str) -> bool:
        """Remove a subscription; a tick already in flight finishes but none follow."""

        with self._lock:
            entry = self._registry.pop(identifier, None)
        if entry is None:
            return False
        entry.retired = True
        self._release_if_idle(entry)
        logger.info("Unsubscribed %s", identifier)
        return True

    def tick(self) -> None:
        """Tick every registered subscription; never raises."""

        with self._lock:
            entries = list(self._registry.items())
        if not entries:
            return
        if self._config.max_workers == 1 or len(entries) == 1:
            for identifier, entry in entries:
                self._tick_one(identifier, entry)
            return
        executor = self._get_executor()
        futures = [executor.submit(self._tick_one, identifier, entry) for identifier, entry in entries]
        wait(futures)
        for (identifier, _), future in zip(entries, futures):
            error = future.exception()
            if error is not None:
                logger.error("Worker for subscription %s failed", identifier, exc_info=error)

    update = tick

    def _tick_one(self, identifier: str, entry: _RegistryEntry) -> None:
        if not entry.lock.acquire(blocking=False):
            logger.debug("Skipping %s: previous tick still running", identifier)
            return
        try:
            if not entry.retired:
                entry.subscription.tick()
        except Exception:
            logger.exception(
                "Subscription %s (%s) failed during tick",
                identifier,
                entry.subscription.options.discovery_url,
            )
        finally:
            entry.lock.release()
        if entry.retired:
            self._release_if_idle(entry)

    @staticmethod
    def _release_if_idle(entry: _RegistryEntry) -> None:
        if entry.lock.acquire(blocking=False):
            try:
                entry.subscription.close()
            except Exception:
                logger.exception("Could not release %s", entry.subscription.options.discovery_url)
            finally:
                entry.lock.release()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._config.max_workers,
                    thread_name_prefix="gbfs-tick",
                )
            return self._executor

    def get(self, identifier: str) -> Optional[Subscription]:
        with self._lock:
            entry = self._registry.get(identifier)
        return entry.subscription if entry is not None else None

    def subscription_ids(self) -> List[str]:
        with self._lock:
            return list(self._registry)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._registry

    def __len__(self) -> int:
        with self._lock:
            return len(self._registry)

    def close(self) -> None:
        """Unsubscribe everything and stop the worker pool."""

        for identifier in self.subscription_ids():
            self.unsubscribe(identifier)
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
