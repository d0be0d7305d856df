"""Tests for presence channels, online tracking and typing indicators."""
from __future__ import annotations

import asyncio

from kinship.services.presence import OnlineTracker, PresenceEvent, PresenceHub, TypingIndicator


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_online_tracker_follows_join_and_leave() -> None:
    async def scenario() -> None:
        hub = PresenceHub(ttl=30, clock=_Clock())
        tracker = OnlineTracker(hub)
        await tracker.start()

        await tracker.announce("alice")
        await tracker.announce("bob")
        assert tracker.online_ids == frozenset({"alice", "bob"})

        await tracker.withdraw("alice")
        assert not tracker.is_online("alice")
        assert tracker.is_online("bob")
        tracker.stop()

    asyncio.run(scenario())


def test_account_stays_online_until_its_last_connection_closes() -> None:
    async def scenario() -> None:
        hub = PresenceHub(ttl=30, clock=_Clock())
        tracker = OnlineTracker(hub)
        await tracker.start()

        assert await tracker.connect("alice") == 1
        assert await tracker.connect("alice") == 2
        assert await tracker.disconnect("alice") == 1
        assert tracker.connection_count("alice") == 1
        assert tracker.is_online("alice")

        assert await tracker.disconnect("alice") == 0
        assert not tracker.is_online("alice")
        tracker.stop()

    asyncio.run(scenario())


def test_records_expire_without_refresh() -> None:
    async def scenario() -> None:
        clock = _Clock()
        hub = PresenceHub(ttl=10, clock=clock)
        tracker = OnlineTracker(hub)
        await tracker.start()
        events: list[PresenceEvent] = []
        await tracker.channel.subscribe(events.append)

        await tracker.announce("carol")
        clock.advance(6)
        # a ping refreshes the deadline
        await tracker.announce("carol")
        clock.advance(6)
        assert await hub.sweep() == 0
        assert tracker.is_online("carol")

        clock.advance(5)
        assert "carol" not in tracker.channel
        assert await hub.sweep() == 1
        assert not tracker.is_online("carol")
        assert [event.event for event in events if event.key == "carol"] == ["join", "leave"]

    asyncio.run(scenario())


def test_failing_subscriber_is_dropped() -> None:
    async def scenario() -> None:
        hub = PresenceHub(ttl=30, clock=_Clock())
        channel = hub.channel("room")
        received: list[str] = []

        def broken(event: PresenceEvent) -> None:
            raise RuntimeError("subscriber crashed")

        await channel.subscribe(received.append)
        await channel.subscribe(broken)
        assert channel.subscriber_count == 1

        await channel.track("dave")
        assert channel.subscriber_count == 1
        assert received

    asyncio.run(scenario())


def test_typing_clears_itself_after_expiry() -> None:
    async def scenario() -> None:
        hub = PresenceHub(ttl=30)
        typing = TypingIndicator(hub, expiry=0.05)

        await typing.start_typing("erin", "frank")
        assert typing.is_typing("erin", "frank")
        # direction matters
        assert not typing.is_typing("frank", "erin")

        await asyncio.sleep(0.2)
        assert not typing.is_typing("erin", "frank")
        typing.close()

    asyncio.run(scenario())


def test_stop_typing_cancels_pending_expiry() -> None:
    async def scenario() -> None:
        hub = PresenceHub(ttl=30)
        typing = TypingIndicator(hub, expiry=10)
        events: list[PresenceEvent] = []
        await typing.channel_for("gina", "hank").subscribe(events.append)

        await typing.start_typing("gina", "hank")
        await typing.stop_typing("gina", "hank")
        assert not typing.is_typing("gina", "hank")
        typing.close()
        assert events[-1].payload["state"]["gina"] == {"typing": False}

    asyncio.run(scenario())


def test_idle_typing_channels_are_forgotten_on_sweep() -> None:
    async def scenario() -> None:
        clock = _Clock()
        hub = PresenceHub(ttl=5, clock=clock)
        typing = TypingIndicator(hub, expiry=60)
        await typing.start_typing("ivy", "jack")
        typing.close()

        clock.advance(6)
        await hub.sweep()
        assert hub.names() == []

    asyncio.run(scenario())
