"""Application entry point for the FastAPI backend."""
from __future__ import annotations

import asyncio
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .config import get_settings
from .database import SessionLocal, create_session, init_db
from .routers import (
    admin_router,
    api_keys_router,
    auth_router,
    comments_router,
    follows_router,
    friends_router,
    groups_router,
    live_router,
    messages_router,
    notifications_router,
    posts_router,
    profiles_router,
    realtime_router,
    reports_router,
    stories_router,
    uploads_router,
    verification_router,
    videos_router,
)
from .services import ChangeFeed, CleanupError, OnlineTracker, PresenceHub, TypingIndicator, run_cleanup
from .services.auth_service import build_login_throttle

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version
DISABLE_CLEANUP = os.getenv("DISABLE_CLEANUP", "").lower() == "true" or os.getenv("PYTEST_CURRENT_TEST") is not None

app = FastAPI(title=APP_NAME, version=API_VERSION)

if settings.cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Shared realtime collaborators; routes reach them through request.app.state.
app.state.change_feed = ChangeFeed()
app.state.change_feed.bind_session_events(SessionLocal)
app.state.presence_hub = PresenceHub(ttl=settings.presence_ttl_seconds)
app.state.online_tracker = OnlineTracker(app.state.presence_hub)
app.state.typing_indicator = TypingIndicator(app.state.presence_hub, expiry=settings.typing_ttl_seconds)
app.state.login_throttle = build_login_throttle()

for router in (
    auth_router,
    profiles_router,
    posts_router,
    comments_router,
    videos_router,
    stories_router,
    friends_router,
    follows_router,
    messages_router,
    groups_router,
    notifications_router,
    reports_router,
    verification_router,
    admin_router,
    live_router,
    api_keys_router,
    uploads_router,
    realtime_router,
):
    app.include_router(router)

_CLEANUP_INTERVAL = timedelta(hours=1)
_cleanup_task: asyncio.Task[None] | None = None
_sweeper_task: asyncio.Task[None] | None = None
_stop: asyncio.Event | None = None


async def _run_cleanup_once() -> None:
    """Execute a single cleanup pass in a worker thread."""

    try:
        summary = await asyncio.to_thread(run_cleanup, create_session)
        logger.info("Cleanup summary (stories=%d, reset_tokens=%d)", summary.stories, summary.reset_tokens)
    except CleanupError:
        logger.exception("Scheduled cleanup failed")


async def _cleanup_loop(stop: asyncio.Event) -> None:
    """Background task that runs cleanup on a fixed interval."""

    while not stop.is_set():
        await _run_cleanup_once()
        try:
            await asyncio.wait_for(stop.wait(), timeout=_CLEANUP_INTERVAL.total_seconds())
        except asyncio.TimeoutError:
            continue


async def _presence_sweeper(stop: asyncio.Event) -> None:
    """Expire presence records whose clients stopped refreshing them."""

    hub: PresenceHub = app.state.presence_hub
    interval = max(hub.ttl / 2, 0.5)
    while not stop.is_set():
        dropped = await hub.sweep()
        if dropped:
            logger.debug("Presence sweep dropped %d records", dropped)
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue


@app.on_event("startup")
async def _startup() -> None:
    """Ensure database schema and background tasks are ready before serving."""

    try:
        init_db()
    except Exception:
        logger.exception("Database initialisation failed")
        raise

    global _cleanup_task, _sweeper_task, _stop
    # the event belongs to the serving loop, so it is created here
    _stop = asyncio.Event()
    await app.state.online_tracker.start()
    _sweeper_task = asyncio.create_task(_presence_sweeper(_stop))

    if DISABLE_CLEANUP:
        logger.info("Background cleanup disabled (testing mode)")
        return

    await _run_cleanup_once()
    _cleanup_task = asyncio.create_task(_cleanup_loop(_stop))


@app.on_event("shutdown")
async def _shutdown() -> None:
    """Stop background tasks cleanly during application shutdown."""

    global _cleanup_task, _sweeper_task
    if _stop is not None:
        _stop.set()
    app.state.typing_indicator.close()
    app.state.online_tracker.stop()
    for task in (_sweeper_task, _cleanup_task):
        if task is not None:
            await task
    _sweeper_task = _cleanup_task = None


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, object]:
    return {"status": "ok", "online": len(app.state.online_tracker.online_ids)}


if not settings.s3_bucket:
    # local storage backend; uploaded files are served by the app itself
    _storage_root = Path(settings.storage_root)
    _storage_root.mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.storage_public_prefix,
        StaticFiles(directory=str(_storage_root), check_dir=False),
        name="storage",
    )


__all__ = ["app"]
