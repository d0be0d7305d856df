"""View-bound data synchronisation: mutate, then invalidate and reload.

A :class:`SyncedView` owns the result of one query (``loader``) and watches
tables on a :class:`~kinship.services.change_feed.ChangeFeed`. A matching row
change only marks the view stale; reloading is always an explicit step, and
:meth:`SyncedView.mutate` runs a write and then reloads unconditionally, so
the returned value never depends on the order in which change events arrive.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, TypeVar

from .change_feed import ChangeFeed, RowChange, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class Watch:
    table: str
    where: tuple[str, Any] | None = None


class SyncedView(Generic[T]):
    def __init__(self, loader: Callable[[], T], feed: ChangeFeed, watches: Iterable[Watch | str] = ()) -> None:
        self._loader = loader
        self._feed = feed
        self._lock = threading.Lock()
        self._value: T | None = None
        self._loaded = False
        self._stale = True
        self.load_count = 0
        self._subscriptions: list[Subscription] = []
        for watch in watches:
            if isinstance(watch, str):
                watch = Watch(watch)
            self._subscriptions.append(feed.subscribe(watch.table, self._on_change, where=watch.where))

    def _on_change(self, change: RowChange) -> None:
        logger.debug("View invalidated by %s on %s", change.event, change.table)
        self.invalidate()

    @property
    def stale(self) -> bool:
        return self._stale

    @property
    def value(self) -> T:
        """Last loaded value; loads on first access."""

        if not self._loaded:
            return self.reload()
        return self._value  # type: ignore[return-value]

    def invalidate(self) -> None:
        with self._lock:
            self._stale = True

    def reload(self) -> T:
        value = self._loader()
        with self._lock:
            self._value = value
            self._loaded = True
            self._stale = False
            self.load_count += 1
        return value

    def refresh(self) -> T:
        """Reload only when a watched change arrived since the last load."""

        return self.reload() if self._stale or not self._loaded else self.value

    def mutate(self, action: Callable[[], R]) -> R:
        """Run ``action`` and reload the view whether or not events were seen."""

        result = action()
        self.reload()
        return result

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    def __enter__(self) -> "SyncedView[T]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["Watch", "SyncedView"]
