"""Friend management API routes.

Mutating routes answer with the caller's refreshed friends overview. The
overview is held in a :class:`SyncedView` watching the friendship tables, and
every mutation reloads it after the write completes.
"""
from __future__ import annotations

from typing import Callable, cast
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..context import ClientContext, get_client_context
from ..database import get_session
from ..models import FriendRequest, User
from ..schemas import (
    FriendRequestPayload,
    FriendRequestResponse,
    FriendsOverviewResponse,
    FriendStatusResponse,
    UserSummary,
)
from ..services import (
    SyncedView,
    Watch,
    accept_friend_request,
    cancel_friend_request,
    friend_status,
    get_current_user,
    list_friend_requests,
    list_friends,
    reject_friend_request,
    remove_friend,
    send_friend_request,
)

router = APIRouter(prefix="/friends", tags=["friends"])

_WATCHED_TABLES = (Watch("friend_requests"), Watch("friendships"))


def _request_response(request: FriendRequest) -> FriendRequestResponse:
    return FriendRequestResponse.model_validate(request)


def _build_overview(db: Session, user: User) -> FriendsOverviewResponse:
    incoming, outgoing = list_friend_requests(db, user=user)
    return FriendsOverviewResponse(
        friends=[UserSummary.model_validate(friend) for friend in list_friends(db, user=user)],
        incoming_requests=[_request_response(item) for item in incoming],
        outgoing_requests=[_request_response(item) for item in outgoing],
    )


def _mutate_and_reload(ctx: ClientContext, action: Callable[[], object]) -> FriendsOverviewResponse:
    with SyncedView(lambda: _build_overview(ctx.db, ctx.user), ctx.changes, _WATCHED_TABLES) as view:
        view.mutate(action)
        return view.value


@router.get("/", response_model=FriendsOverviewResponse)
async def friends_overview(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> FriendsOverviewResponse:
    return _build_overview(db, current_user)


@router.get("/status/{user_id}", response_model=FriendStatusResponse)
async def friend_status_endpoint(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> FriendStatusResponse:
    relation = friend_status(db, viewer_id=cast(UUID, current_user.id), other_id=user_id)
    return FriendStatusResponse(user_id=user_id, status=relation)


@router.post("/requests", response_model=FriendRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_friend_request(
    payload: FriendRequestPayload,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> FriendRequestResponse:
    request = send_friend_request(db, sender=current_user, receiver_id=payload.receiver_id)
    return _request_response(request)


@router.post("/requests/{request_id}/accept", response_model=FriendsOverviewResponse)
async def accept_request(
    request_id: UUID,
    ctx: ClientContext = Depends(get_client_context),
) -> FriendsOverviewResponse:
    return _mutate_and_reload(
        ctx, lambda: accept_friend_request(ctx.db, request_id=request_id, recipient=ctx.user)
    )


@router.post("/requests/{request_id}/reject", response_model=FriendsOverviewResponse)
async def reject_request(
    request_id: UUID,
    ctx: ClientContext = Depends(get_client_context),
) -> FriendsOverviewResponse:
    return _mutate_and_reload(
        ctx, lambda: reject_friend_request(ctx.db, request_id=request_id, recipient=ctx.user)
    )


@router.delete("/requests/{request_id}", response_model=FriendsOverviewResponse)
async def cancel_request(
    request_id: UUID,
    ctx: ClientContext = Depends(get_client_context),
) -> FriendsOverviewResponse:
    return _mutate_and_reload(ctx, lambda: cancel_friend_request(ctx.db, request_id=request_id, sender=ctx.user))


@router.delete("/{friend_id}", response_model=FriendsOverviewResponse)
async def unfriend(
    friend_id: UUID,
    ctx: ClientContext = Depends(get_client_context),
) -> FriendsOverviewResponse:
    return _mutate_and_reload(ctx, lambda: remove_friend(ctx.db, user=ctx.user, friend_id=friend_id))


__all__ = ["router"]
