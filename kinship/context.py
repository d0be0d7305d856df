"""Per-request context handed explicitly to routes that need shared hubs."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .database import get_session
from .models import User
from .services.auth_service import get_current_user
from .services.change_feed import ChangeFeed
from .services.presence import OnlineTracker, PresenceHub, TypingIndicator


@dataclass(slots=True)
class ClientContext:
    """The signed-in account plus the realtime collaborators bound to the app."""

    user: User
    db: Session
    presence: PresenceHub
    changes: ChangeFeed
    online: OnlineTracker
    typing: TypingIndicator


async def get_client_context(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ClientContext:
    state = request.app.state
    return ClientContext(
        user=user,
        db=db,
        presence=state.presence_hub,
        changes=state.change_feed,
        online=state.online_tracker,
        typing=state.typing_indicator,
    )


def get_online_tracker(request: Request) -> OnlineTracker:
    return request.app.state.online_tracker


__all__ = ["ClientContext", "get_client_context", "get_online_tracker"]
