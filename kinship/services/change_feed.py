"""Row-level change notifications driven by SQLAlchemy session events.

``ChangeFeed.bind_session_events`` hooks a ``sessionmaker`` so that every ORM
insert, update and delete is collected at flush time and published once the
surrounding transaction commits. Rolled back changes are never published.
Subscribers register per table, optionally narrowed to rows whose column
equals a value.
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable
from uuid import UUID

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

_PENDING_KEY = "kinship.change_feed.pending"

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class RowChange:
    table: str
    event: str
    record: dict[str, Any] = field(default_factory=dict)


ChangeCallback = Callable[[RowChange], None]


def _jsonable(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def serialize_row(instance: Any) -> dict[str, Any]:
    """Return the column values of an ORM instance as JSON-friendly data."""

    state = inspect(instance)
    return {
        attr.key: _jsonable(state.dict.get(attr.key))
        for attr in state.mapper.column_attrs
    }


class Subscription:
    def __init__(
        self,
        feed: "ChangeFeed",
        subscription_id: int,
        table: str,
        callback: ChangeCallback,
        where: tuple[str, Any] | None,
    ) -> None:
        self._feed = feed
        self.id = subscription_id
        self.table = table
        self.callback = callback
        self.where = where

    def matches(self, change: RowChange) -> bool:
        if change.table != self.table:
            return False
        if self.where is None:
            return True
        column, value = self.where
        return str(change.record.get(column)) == str(_jsonable(value))

    def unsubscribe(self) -> None:
        self._feed._remove(self)


class ChangeFeed:
    """Publish/subscribe hub for committed row changes."""

    def __init__(self) -> None:
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        *,
        where: tuple[str, Any] | None = None,
    ) -> Subscription:
        with self._lock:
            subscription = Subscription(self, next(self._ids), table, callback, where)
            self._subscriptions[subscription.id] = subscription
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.pop(subscription.id, None)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, change: RowChange) -> int:
        """Deliver ``change`` to matching subscribers and return how many received it."""

        with self._lock:
            targets = [sub for sub in self._subscriptions.values() if sub.matches(change)]
        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(change)
                delivered += 1
            except Exception:
                logger.exception("Change subscriber %s failed for %s", subscription.id, change.table)
        return delivered

    # Session wiring -----------------------------------------------------------------

    def bind_session_events(self, factory: sessionmaker) -> None:
        if event.contains(factory, "after_flush", self._after_flush):
            return
        event.listen(factory, "after_flush", self._after_flush)
        event.listen(factory, "after_commit", self._after_commit)
        event.listen(factory, "after_rollback", self._after_rollback)

    def unbind_session_events(self, factory: sessionmaker) -> None:
        if not event.contains(factory, "after_flush", self._after_flush):
            return
        event.remove(factory, "after_flush", self._after_flush)
        event.remove(factory, "after_commit", self._after_commit)
        event.remove(factory, "after_rollback", self._after_rollback)

    def _after_flush(self, session: Session, flush_context: Any) -> None:
        pending: list[RowChange] = session.info.setdefault(_PENDING_KEY, [])
        for instance in session.new:
            pending.append(RowChange(instance.__table__.name, INSERT, serialize_row(instance)))
        for instance in session.dirty:
            if session.is_modified(instance, include_collections=False):
                pending.append(RowChange(instance.__table__.name, UPDATE, serialize_row(instance)))
        for instance in session.deleted:
            pending.append(RowChange(instance.__table__.name, DELETE, serialize_row(instance)))

    def _after_commit(self, session: Session) -> None:
        pending = session.info.pop(_PENDING_KEY, None)
        for change in pending or ():
            self.publish(change)

    def _after_rollback(self, session: Session) -> None:
        session.info.pop(_PENDING_KEY, None)


__all__ = ["INSERT", "UPDATE", "DELETE", "RowChange", "Subscription", "ChangeFeed", "serialize_row"]
