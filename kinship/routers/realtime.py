"""WebSocket endpoints for presence (online/typing) and row change streams."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from ..database import create_session
from ..models import User
from ..services.auth_service import resolve_token_user
from ..services.change_feed import ChangeFeed, RowChange, Subscription
from ..services.presence import OnlineTracker, PresenceEvent, PresenceSubscription, TypingIndicator

router = APIRouter()
logger = logging.getLogger(__name__)

# tables anyone signed in may follow without a filter
PUBLIC_TABLES = frozenset(
    {
        "posts",
        "post_likes",
        "comments",
        "comment_likes",
        "videos",
        "video_likes",
        "video_comments",
        "stories",
        "followers",
        "live_streams",
        "stream_viewers",
    }
)
# tables that must be filtered on one of these columns equal to the caller's id
OWNED_TABLES: dict[str, frozenset[str]] = {
    "messages": frozenset({"sender_id", "receiver_id"}),
    "notifications": frozenset({"recipient_id"}),
    "friend_requests": frozenset({"sender_id", "receiver_id"}),
    "friendships": frozenset({"user_a_id", "user_b_id"}),
}


def _authenticate(token: str | None) -> User:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    db = create_session()
    try:
        return resolve_token_user(db, token)
    finally:
        db.close()


def authorize_subscription(table: str, where: tuple[str, Any] | None, user_id: UUID) -> None:
    """Raise 403 unless ``user_id`` may follow ``table`` with the filter ``where``."""

    if table in PUBLIC_TABLES:
        return
    columns = OWNED_TABLES.get(table)
    if columns is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Table '{table}' is not available")
    if where is None or where[0] not in columns or str(where[1]) != str(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Subscriptions to '{table}' must filter on your own {' or '.join(sorted(columns))}",
        )


def _parse(raw: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        return {"type": raw}
    return payload if isinstance(payload, dict) else {"type": ""}


async def _pump(websocket: WebSocket, queue: "asyncio.Queue[dict[str, Any]]") -> None:
    while True:
        message = await queue.get()
        await websocket.send_text(json.dumps(message))


async def _stop_pump(pump: "asyncio.Task[None]") -> None:
    """Cancel the writer task and surface any error it died with."""

    pump.cancel()
    try:
        await pump
    except asyncio.CancelledError:
        pass
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.info("Socket writer stopped after the client went away: %r", exc)
    except Exception:
        logger.exception("Socket writer failed")


async def _authenticated_accept(websocket: WebSocket, token: str | None) -> User | None:
    try:
        user = _authenticate(token)
    except HTTPException as exc:
        logger.info("Rejected socket from %s: %s", websocket.client, exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    await websocket.accept()
    return user


@router.websocket("/ws/presence")
async def presence_socket(websocket: WebSocket, token: str | None = None) -> None:
    """Announce the caller online and relay presence and typing events.

    Client frames: ``ping`` (refreshes the online record), ``typing`` /
    ``stop_typing`` with ``to``, and ``watch_typing`` with ``from``.
    """

    user = await _authenticated_accept(websocket, token)
    if user is None:
        return
    app_state = websocket.app.state
    tracker: OnlineTracker = app_state.online_tracker
    typing: TypingIndicator = app_state.typing_indicator
    user_id = str(user.id)

    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def _relay(event: PresenceEvent) -> None:
        queue.put_nowait(
            {"type": "presence", "channel": event.channel, "event": event.event, "key": event.key, "payload": event.payload}
        )

    subscriptions: list[PresenceSubscription] = [await tracker.channel.subscribe(_relay)]
    pump = asyncio.create_task(_pump(websocket, queue))
    connections = await tracker.connect(user_id)
    logger.info("Presence socket connected for %s (%d open)", user_id, connections)
    try:
        while True:
            try:
                payload = _parse(await websocket.receive_text())
            except WebSocketDisconnect:
                break

            message_type = str(payload.get("type") or "").lower()
            if message_type == "ping":
                await tracker.announce(user_id)
                queue.put_nowait({"type": "pong"})
            elif message_type == "typing" and payload.get("to"):
                await typing.start_typing(user_id, payload["to"])
            elif message_type == "stop_typing" and payload.get("to"):
                await typing.stop_typing(user_id, payload["to"])
            elif message_type == "watch_typing" and payload.get("from"):
                channel = typing.channel_for(payload["from"], user_id)
                subscriptions.append(await channel.subscribe(_relay))
            else:
                queue.put_nowait({"type": "error", "detail": f"Unsupported frame '{message_type}'"})
    finally:
        for subscription in subscriptions:
            subscription.unsubscribe()
        await _stop_pump(pump)
        await tracker.disconnect(user_id)
        logger.info("Presence socket disconnected for %s", user_id)


@router.websocket("/ws/changes")
async def changes_socket(websocket: WebSocket, token: str | None = None) -> None:
    """Stream committed row changes for the tables the client subscribes to.

    Client frame: ``{"type": "subscribe", "table": ..., "where": {"column": ..., "value": ...}}``.
    Server frames: ``subscribed``, ``change`` (with ``table``, ``event`` and
    ``record``), ``error`` and ``pong``.
    """

    user = await _authenticated_accept(websocket, token)
    if user is None:
        return
    feed: ChangeFeed = websocket.app.state.change_feed
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def _relay(change: RowChange) -> None:
        # commits may happen on worker threads
        message = {"type": "change", "table": change.table, "event": change.event, "record": change.record}
        loop.call_soon_threadsafe(queue.put_nowait, message)

    subscriptions: list[Subscription] = []
    pump = asyncio.create_task(_pump(websocket, queue))
    try:
        while True:
            try:
                payload = _parse(await websocket.receive_text())
            except WebSocketDisconnect:
                break

            message_type = str(payload.get("type") or "").lower()
            if message_type == "ping":
                queue.put_nowait({"type": "pong"})
                continue
            if message_type != "subscribe":
                queue.put_nowait({"type": "error", "detail": f"Unsupported frame '{message_type}'"})
                continue

            table = str(payload.get("table") or "")
            raw_where = payload.get("where")
            where = None
            if isinstance(raw_where, dict) and raw_where.get("column"):
                where = (str(raw_where["column"]), raw_where.get("value"))
            try:
                authorize_subscription(table, where, user.id)
            except HTTPException as exc:
                queue.put_nowait({"type": "error", "detail": exc.detail})
                continue
            subscription = feed.subscribe(table, _relay, where=where)
            subscriptions.append(subscription)
            queue.put_nowait({"type": "subscribed", "id": subscription.id, "table": table})
    finally:
        for subscription in subscriptions:
            subscription.unsubscribe()
        await _stop_pump(pump)


__all__ = ["router", "authorize_subscription", "PUBLIC_TABLES", "OWNED_TABLES"]
