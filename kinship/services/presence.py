"""In-memory presence channels for online and typing status.

A :class:`PresenceChannel` keeps one record per key (usually an account id)
and notifies subscribers with ``sync``/``join``/``leave`` events. Every record
carries a deadline of ``ttl`` seconds and disappears unless it is announced
again, which bounds how long a disconnected client can appear online or
typing. Channels are transport independent; the WebSocket route in
``kinship.routers.realtime`` is one subscriber among others.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

from ..constants import ONLINE_CHANNEL

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class PresenceEvent:
    channel: str
    event: str
    key: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


PresenceCallback = Callable[[PresenceEvent], Union[Awaitable[None], None]]


class PresenceSubscription:
    def __init__(self, channel: "PresenceChannel", callback: PresenceCallback) -> None:
        self.channel = channel
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.channel._subscribers.remove(self)


class PresenceChannel:
    """Publish/subscribe channel with a bounded lifetime per tracked record."""

    def __init__(self, name: str, *, ttl: float, clock: Clock = time.monotonic) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.name = name
        self.ttl = ttl
        self._clock = clock
        self._records: dict[str, tuple[dict[str, Any], float]] = {}
        self._subscribers: list[PresenceSubscription] = []

    def state(self) -> dict[str, dict[str, Any]]:
        """Return live records keyed by presence key; expired ones are skipped."""

        now = self._clock()
        return {key: dict(record) for key, (record, deadline) in self._records.items() if deadline > now}

    def __contains__(self, key: object) -> bool:
        return key in self.state()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, callback: PresenceCallback) -> PresenceSubscription:
        """Register ``callback`` and deliver the current state as a ``sync`` event."""

        subscription = PresenceSubscription(self, callback)
        self._subscribers.append(subscription)
        await self._deliver(subscription, self._sync_event())
        return subscription

    async def track(self, key: str, record: dict[str, Any] | None = None) -> None:
        """Announce or refresh ``key``; a new key emits ``join``."""

        await self.sweep()
        is_new = key not in self._records
        self._records[key] = (dict(record or {}), self._clock() + self.ttl)
        if is_new:
            await self._emit(PresenceEvent(self.name, "join", key, dict(record or {})))
        await self._emit(self._sync_event())

    async def untrack(self, key: str) -> None:
        entry = self._records.pop(key, None)
        if entry is None:
            return
        await self._emit(PresenceEvent(self.name, "leave", key, dict(entry[0])))
        await self._emit(self._sync_event())

    async def broadcast(self, event: str, payload: dict[str, Any] | None = None) -> None:
        await self._emit(PresenceEvent(self.name, event, None, dict(payload or {})))

    async def sweep(self) -> list[str]:
        """Drop expired records, emitting ``leave`` for each; returns the dropped keys."""

        now = self._clock()
        expired = [key for key, (_, deadline) in self._records.items() if deadline <= now]
        for key in expired:
            record, _ = self._records.pop(key)
            await self._emit(PresenceEvent(self.name, "leave", key, dict(record)))
        if expired:
            await self._emit(self._sync_event())
        return expired

    def _sync_event(self) -> PresenceEvent:
        return PresenceEvent(self.name, "sync", None, {"state": self.state()})

    async def _emit(self, event: PresenceEvent) -> None:
        for subscription in list(self._subscribers):
            await self._deliver(subscription, event)

    async def _deliver(self, subscription: PresenceSubscription, event: PresenceEvent) -> None:
        try:
            result = subscription.callback(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Presence subscriber on %s failed; dropping it", self.name)
            subscription.unsubscribe()


class PresenceHub:
    """Named presence channels sharing one TTL and clock."""

    def __init__(self, *, ttl: float, clock: Clock = time.monotonic) -> None:
        self.ttl = ttl
        self.clock = clock
        self._channels: dict[str, PresenceChannel] = {}

    def channel(self, name: str) -> PresenceChannel:
        existing = self._channels.get(name)
        if existing is None:
            existing = PresenceChannel(name, ttl=self.ttl, clock=self.clock)
            self._channels[name] = existing
        return existing

    def remove(self, name: str) -> None:
        self._channels.pop(name, None)

    def names(self) -> list[str]:
        return sorted(self._channels)

    async def sweep(self) -> int:
        dropped = 0
        for name in list(self._channels):
            channel = self._channels[name]
            dropped += len(await channel.sweep())
            # typing channels are created per conversation; forget idle ones
            if name != ONLINE_CHANNEL and not channel.state() and channel.subscriber_count == 0:
                self._channels.pop(name, None)
        return dropped


class OnlineTracker:
    """Set of online account ids maintained from ``online-users`` channel events."""

    def __init__(self, hub: PresenceHub, *, channel_name: str = ONLINE_CHANNEL) -> None:
        self.channel = hub.channel(channel_name)
        self._online: set[str] = set()
        self._connections: dict[str, int] = {}
        self._subscription: PresenceSubscription | None = None

    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = await self.channel.subscribe(self._on_event)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _on_event(self, event: PresenceEvent) -> None:
        if event.event == "sync":
            self._online = set(event.payload.get("state", {}))
        elif event.event == "join" and event.key:
            self._online.add(event.key)
        elif event.event == "leave" and event.key:
            self._online.discard(event.key)

    @property
    def online_ids(self) -> frozenset[str]:
        return frozenset(self._online)

    def is_online(self, account_id: object) -> bool:
        return str(account_id) in self._online

    async def announce(self, account_id: object) -> None:
        await self.channel.track(str(account_id), {"account_id": str(account_id), "online_at": time.time()})

    async def withdraw(self, account_id: object) -> None:
        await self.channel.untrack(str(account_id))

    def connection_count(self, account_id: object) -> int:
        return self._connections.get(str(account_id), 0)

    async def connect(self, account_id: object) -> int:
        """Count one more open connection for the account and announce it online."""

        key = str(account_id)
        self._connections[key] = self._connections.get(key, 0) + 1
        await self.announce(key)
        return self._connections[key]

    async def disconnect(self, account_id: object) -> int:
        """Release one connection; the account goes offline when none remain."""

        key = str(account_id)
        remaining = self._connections.get(key, 0) - 1
        if remaining > 0:
            self._connections[key] = remaining
            return remaining
        self._connections.pop(key, None)
        await self.withdraw(key)
        return 0


def typing_channel_name(sender_id: object, receiver_id: object) -> str:
    return f"typing:{sender_id}:{receiver_id}"


class TypingIndicator:
    """Typing status per (sender, receiver) pair with a local auto-expiry.

    ``start_typing`` announces ``typing=True`` and schedules a timer that
    re-announces ``typing=False`` after ``expiry`` seconds. If the timer never
    runs (the client went away), the channel TTL still removes the record.
    """

    def __init__(self, hub: PresenceHub, *, expiry: float = 2.0) -> None:
        self.hub = hub
        self.expiry = expiry
        self._timers: dict[tuple[str, str], asyncio.Task[None]] = {}

    def channel_for(self, sender_id: object, receiver_id: object) -> PresenceChannel:
        return self.hub.channel(typing_channel_name(sender_id, receiver_id))

    async def start_typing(self, sender_id: object, receiver_id: object) -> None:
        pair = (str(sender_id), str(receiver_id))
        self._cancel_timer(pair)
        await self.channel_for(*pair).track(pair[0], {"typing": True})
        self._timers[pair] = asyncio.get_running_loop().create_task(self._expire_later(pair))

    async def stop_typing(self, sender_id: object, receiver_id: object) -> None:
        pair = (str(sender_id), str(receiver_id))
        self._cancel_timer(pair)
        await self.channel_for(*pair).track(pair[0], {"typing": False})

    def is_typing(self, sender_id: object, receiver_id: object) -> bool:
        record = self.channel_for(sender_id, receiver_id).state().get(str(sender_id))
        return bool(record and record.get("typing"))

    async def _expire_later(self, pair: tuple[str, str]) -> None:
        try:
            await asyncio.sleep(self.expiry)
        except asyncio.CancelledError:
            return
        self._timers.pop(pair, None)
        await self.channel_for(*pair).track(pair[0], {"typing": False})

    def _cancel_timer(self, pair: tuple[str, str]) -> None:
        timer = self._timers.pop(pair, None)
        if timer is not None and not timer.done():
            timer.cancel()

    def close(self) -> None:
        for pair in list(self._timers):
            self._cancel_timer(pair)


__all__ = [
    "PresenceEvent",
    "PresenceSubscription",
    "PresenceChannel",
    "PresenceHub",
    "OnlineTracker",
    "TypingIndicator",
    "typing_channel_name",
]
