from fastapi import APIRouter, Depends
from app.config import settings
from app.core.dependencies import get_current_profile_id, get_relationship_store, get_notification_dispatcher
from app.core.results import unwrap_or_raise
from app.database.store import MembershipTable, RelationshipStore
from app.modules.memberships.models import GROUP_MEMBERSHIP, ACTIVITY_PARTICIPATION
from app.modules.memberships.schemas import CapacityResponse, MembershipResponse
from app.modules.memberships.service import MembershipManager
from app.modules.notifications.service import NotificationDispatcher
from typing import List, Optional


def _unwrap(result):
    return unwrap_or_raise(result, retry_after=settings.storage_retry_after_seconds)


def build_router(table: MembershipTable, prefix: str, members_path: str, tag: str) -> APIRouter:
    """Routes for one membership relation; groups and activities share the same shape."""
    router = APIRouter(prefix=prefix, tags=[tag])

    def get_manager(
        store: RelationshipStore = Depends(get_relationship_store),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
    ) -> MembershipManager:
        return MembershipManager(table, store, dispatcher)

    @router.post(f"/{{entity_id}}/{members_path}", response_model=MembershipResponse, status_code=201)
    async def join(
        entity_id: str,
        profile_id: str = Depends(get_current_profile_id),
        manager: MembershipManager = Depends(get_manager)
    ):
        """Join as the current profile; 409 capacity_exceeded when full"""
        return _unwrap(manager.join(entity_id, profile_id))

    @router.delete(f"/{{entity_id}}/{members_path}/me", status_code=204)
    async def leave(
        entity_id: str,
        profile_id: str = Depends(get_current_profile_id),
        manager: MembershipManager = Depends(get_manager)
    ):
        """Leave (no-op if the current profile is not a member)"""
        _unwrap(manager.leave(entity_id, profile_id))
        return None

    @router.get(f"/{{entity_id}}/{members_path}", response_model=List[MembershipResponse])
    async def list_members(
        entity_id: str,
        limit: int = 50,
        offset: int = 0,
        profile_id: str = Depends(get_current_profile_id),
        manager: MembershipManager = Depends(get_manager)
    ):
        """List members ordered by join time"""
        return _unwrap(manager.list_members(entity_id, limit=limit, offset=offset))

    @router.get(f"/{{entity_id}}/{members_path}/me", response_model=Optional[MembershipResponse])
    async def get_my_membership(
        entity_id: str,
        profile_id: str = Depends(get_current_profile_id),
        manager: MembershipManager = Depends(get_manager)
    ):
        """Current profile's membership, or null"""
        return _unwrap(manager.membership(entity_id, profile_id))

    @router.get("/{entity_id}/capacity", response_model=CapacityResponse)
    async def get_capacity(
        entity_id: str,
        profile_id: str = Depends(get_current_profile_id),
        manager: MembershipManager = Depends(get_manager)
    ):
        """Current occupancy snapshot"""
        return _unwrap(manager.capacity(entity_id))

    return router


groups_router = build_router(GROUP_MEMBERSHIP, "/groups", "members", "groups")
activities_router = build_router(ACTIVITY_PARTICIPATION, "/activities", "participants", "activities")
