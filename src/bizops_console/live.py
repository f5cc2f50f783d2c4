# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Live subscriptions for BizOps Console.

A live subscription is a push-based read: a callback that receives a fresh
snapshot of a query every time the underlying collection changes. The
document store (``db.py``) calls :func:`notify` after each committed write,
and every subscription registered on the same database file and collection
re-runs its query and invokes its callback.

Subscriptions live in-process. There is no reconnection logic and no
delivery guarantee beyond "the callback runs after each write made through
this process". A subscription stays active until ``unsubscribe()`` is
called, or until the ``with`` block that opened it exits.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class Subscription:
    """Handle on an active live query."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        key: str,
        collection: str,
        fetch: Callable[[], Any],
        callback: Callable[[Any], None],
    ) -> None:
        self._registry = registry
        self.key = key
        self.collection = collection
        self._fetch = fetch
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def refresh(self) -> None:
        """Re-run the query and hand the snapshot to the callback."""
        if not self._active:
            return
        self._callback(self._fetch())

    def unsubscribe(self) -> None:
        """Stop receiving updates. Calling it more than once is harmless."""
        if self._active:
            self._active = False
            self._registry.discard(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class SubscriptionRegistry:
    """
    Registry of active subscriptions, keyed by (database, collection).

    The registry only guards its own bookkeeping with a lock; callbacks run
    outside the lock, in the thread that performed the write.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: dict[tuple[str, str], list[Subscription]] = {}

    def register(self, sub: Subscription) -> None:
        with self._lock:
            self._subs.setdefault((sub.key, sub.collection), []).append(sub)

    def discard(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get((sub.key, sub.collection), [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop((sub.key, sub.collection), None)

    def notify(self, key: str, collection: str) -> int:
        """
        Refresh every subscription watching `collection` in database `key`.

        A callback that raises is logged and skipped; the write that triggered
        the notification has already been committed.

        Returns
        -------
        int
            Number of subscriptions refreshed successfully.
        """
        with self._lock:
            subs = list(self._subs.get((key, collection), []))

        refreshed = 0
        for sub in subs:
            try:
                sub.refresh()
            except Exception:
                logger.exception(
                    "Live subscription on %s failed to refresh", collection
                )
                continue
            refreshed += 1

        if subs:
            logger.debug(
                "Refreshed %d of %d subscription(s) on %s after a write",
                refreshed,
                len(subs),
                collection,
            )
        return refreshed

    def active_count(self, key: str | None = None) -> int:
        with self._lock:
            return sum(
                len(subs)
                for (sub_key, _), subs in self._subs.items()
                if key is None or sub_key == key
            )


_registry = SubscriptionRegistry()


def subscribe(
    key: str,
    collection: str,
    fetch: Callable[[], Any],
    callback: Callable[[Any], None],
) -> Subscription:
    """
    Register a live query and deliver its initial snapshot.

    Parameters
    ----------
    key:
        Identifier of the database (resolved file path).
    collection:
        Collection whose writes trigger a refresh.
    fetch:
        Zero-argument callable returning the current snapshot.
    callback:
        Called with each snapshot.

    Returns
    -------
    Subscription
        The active subscription.
    """
    sub = Subscription(_registry, key, collection, fetch, callback)
    _registry.register(sub)
    try:
        sub.refresh()
    except Exception:
        sub.unsubscribe()
        raise
    return sub


def notify(key: str, collection: str) -> int:
    """Refresh the subscriptions watching `collection` in database `key`."""
    return _registry.notify(key, collection)


def active_subscriptions(key: str | None = None) -> int:
    """Return the number of active subscriptions (optionally for one database)."""
    return _registry.active_count(key)
