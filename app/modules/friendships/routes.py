from fastapi import APIRouter, Depends
from app.config import settings
from app.core.dependencies import get_current_profile_id, get_relationship_store, get_notification_dispatcher
from app.core.results import unwrap_or_raise
from app.database.store import RelationshipStore
from app.modules.friendships.schemas import (
    FriendshipStatusResponse, RelationshipResponse,
    FriendResponse, PendingRequestsResponse
)
from app.modules.friendships.service import FriendshipManager
from app.modules.notifications.service import NotificationDispatcher
from typing import List

router = APIRouter(prefix="/friends", tags=["friends"])


def get_friendship_manager(
    store: RelationshipStore = Depends(get_relationship_store),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
) -> FriendshipManager:
    return FriendshipManager(store, dispatcher)


def _unwrap(result):
    return unwrap_or_raise(result, retry_after=settings.storage_retry_after_seconds)


@router.get("", response_model=List[FriendResponse])
async def list_friends(
    profile_id: str = Depends(get_current_profile_id),
    manager: FriendshipManager = Depends(get_friendship_manager)
):
    """List accepted friends of the current profile, newest first"""
    return _unwrap(manager.list_friends(profile_id))


@router.get("/requests", response_model=PendingRequestsResponse)
async def list_pending_requests(
    profile_id: str = Depends(get_current_profile_id),
    manager: FriendshipManager = Depends(get_friendship_manager)
):
    """List pending friend requests sent and received by the current profile"""
    return _unwrap(manager.list_pending_requests(profile_id))


@router.get("/{other_id}", response_model=FriendshipStatusResponse)
async def get_status(
    other_id: str,
    profile_id: str = Depends(get_current_profile_id),
    manager: FriendshipManager = Depends(get_friendship_manager)
):
    """Relationship status between the current profile and another profile"""
    status = _unwrap(manager.status(profile_id, other_id))
    return FriendshipStatusResponse(profile_id=other_id, status=status)


@router.post("/{other_id}", response_model=RelationshipResponse, status_code=201)
async def send_request(
    other_id: str,
    profile_id: str = Depends(get_current_profile_id),
    manager: FriendshipManager = Depends(get_friendship_manager)
):
    """Send a friend request to another profile"""
    return _unwrap(manager.send_request(profile_id, other_id))


@router.post("/{other_id}/accept", response_model=RelationshipResponse)
async def accept_request(
    other_id: str,
    profile_id: str = Depends(get_current_profile_id),
    manager: FriendshipManager = Depends(get_friendship_manager)
):
    """Accept a pending friend request sent by another profile"""
    return _unwrap(manager.accept(profile_id, other_id))


@router.post("/{other_id}/reject", status_code=204)
async def reject_request(
    other_id: str,
    profile_id: str = Depends(get_current_profile_id),
    manager: FriendshipManager = Depends(get_friendship_manager)
):
    """Reject a pending friend request sent by another profile"""
    _unwrap(manager.reject(profile_id, other_id))
    return None


@router.delete("/{other_id}/request", status_code=204)
async def cancel_request(
    other_id: str,
    profile_id: str = Depends(get_current_profile_id),
    manager: FriendshipManager = Depends(get_friendship_manager)
):
    """Cancel a friend request the current profile sent (no-op if none is pending)"""
    _unwrap(manager.cancel(profile_id, other_id))
    return None
