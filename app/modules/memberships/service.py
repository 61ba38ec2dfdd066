import logging
from typing import Any, Dict, List, Optional

from app.core.results import ErrorKind, Result
from app.database.store import (
    JoinOutcome, MembershipTable, ReferenceMissing, RelationshipStore, StorageUnavailable
)
from app.modules.memberships.schemas import CapacityResponse, MembershipResponse
from app.modules.notifications.schemas import EventType, NotificationEvent
from app.modules.notifications.service import NotificationDispatcher, NullNotificationDispatcher

logger = logging.getLogger(__name__)

_FULL_EVENTS = {
    "group": EventType.GROUP_FULL,
    "activity": EventType.ACTIVITY_FULL,
}


def membership_from_row(table: MembershipTable, row: Dict[str, Any]) -> MembershipResponse:
    return MembershipResponse(
        id=row["id"],
        entity_id=row[table.entity_fk],
        profile_id=row["profile_id"],
        role=row.get("role"),
        status=row.get("status"),
        joined_at=row["joined_at"],
    )


class MembershipManager:
    """
    Capacity-bounded membership shared by groups and activities.

    Capacity is never decided from a value read here: the read only gives an
    early answer, and the store's conditional join re-checks it at commit time.
    """

    def __init__(
        self,
        table: MembershipTable,
        store: RelationshipStore,
        dispatcher: Optional[NotificationDispatcher] = None
    ):
        self.table = table
        self.store = store
        self.dispatcher = dispatcher or NullNotificationDispatcher()

    @property
    def kind(self) -> str:
        return self.table.kind

    def _storage_failure(self) -> Result:
        return Result.failure(
            ErrorKind.STORAGE_ERROR,
            f"{self.kind.capitalize()} data is temporarily unavailable, please retry"
        )

    def _not_found(self) -> Result:
        return Result.failure(ErrorKind.NOT_FOUND, f"{self.kind.capitalize()} not found")

    def _profile_not_found(self) -> Result:
        return Result.failure(ErrorKind.NOT_FOUND, "Profile not found")

    def _full(self) -> Result:
        return Result.failure(ErrorKind.CAPACITY_EXCEEDED, f"This {self.kind} is full")

    def _already_member(self) -> Result:
        return Result.failure(ErrorKind.CONFLICT, f"You already joined this {self.kind}")

    def join(self, entity_id: str, profile_id: str) -> Result[MembershipResponse]:
        try:
            entity = self.store.get_entity(self.table, entity_id)
        except StorageUnavailable:
            return self._storage_failure()
        except ReferenceMissing:
            return self._not_found()
        if entity is None:
            return self._not_found()

        try:
            if self.store.get_membership(self.table, entity_id, profile_id) is not None:
                return self._already_member()
            if (entity.get(self.table.counter_column) or 0) >= entity[self.table.capacity_column]:
                logger.info(f"Join {self.kind} {entity_id} by {profile_id} rejected: full")
                return self._full()

            write = self.store.conditional_join(self.table, entity_id, profile_id)
        except StorageUnavailable:
            return self._storage_failure()
        except ReferenceMissing:
            # The entity was just read, so the dangling reference is the profile
            return self._profile_not_found()

        if write.outcome == JoinOutcome.ENTITY_NOT_FOUND:
            return self._not_found()
        if write.outcome == JoinOutcome.ALREADY_MEMBER:
            return self._already_member()
        if write.outcome == JoinOutcome.FULL:
            logger.info(f"Join {self.kind} {entity_id} by {profile_id} rejected at commit: full")
            return self._full()

        logger.info(
            f"Profile {profile_id} joined {self.kind} {entity_id} "
            f"({write.current_count}/{write.max_count})"
        )
        owner_id = entity.get(self.table.owner_column)
        if write.current_count >= write.max_count and owner_id:
            self.dispatcher.dispatch(NotificationEvent(
                event_type=_FULL_EVENTS[self.kind],
                target_profile_id=owner_id,
                payload={"entity_id": entity_id, "max_count": write.max_count},
            ))
        return Result.success(membership_from_row(self.table, write.membership))

    def leave(self, entity_id: str, profile_id: str) -> Result[bool]:
        """Remove the membership. Success(False) when the profile was not a member."""
        try:
            left = self.store.conditional_leave(self.table, entity_id, profile_id)
        except StorageUnavailable:
            return self._storage_failure()
        except ReferenceMissing:
            return self._not_found()
        if left:
            logger.info(f"Profile {profile_id} left {self.kind} {entity_id}")
        return Result.success(left)

    def list_members(self, entity_id: str, limit: int = 50, offset: int = 0) -> Result[List[MembershipResponse]]:
        """Members ordered by joined_at, oldest first"""
        if limit < 1 or offset < 0:
            return Result.failure(ErrorKind.INVALID_ARGUMENT, "limit must be positive and offset non-negative")
        try:
            if self.store.get_entity(self.table, entity_id) is None:
                return self._not_found()
            rows = self.store.list_members(self.table, entity_id, limit=limit, offset=offset)
        except StorageUnavailable:
            return self._storage_failure()
        except ReferenceMissing:
            return self._not_found()
        return Result.success([membership_from_row(self.table, row) for row in rows])

    def membership(self, entity_id: str, profile_id: str) -> Result[Optional[MembershipResponse]]:
        try:
            row = self.store.get_membership(self.table, entity_id, profile_id)
        except StorageUnavailable:
            return self._storage_failure()
        except ReferenceMissing:
            return self._not_found()
        return Result.success(membership_from_row(self.table, row) if row else None)

    def capacity(self, entity_id: str) -> Result[CapacityResponse]:
        try:
            entity = self.store.get_entity(self.table, entity_id)
            if entity is None:
                return self._not_found()
            counted_rows = self.store.count(self.table, entity_id)
        except StorageUnavailable:
            return self._storage_failure()
        except ReferenceMissing:
            return self._not_found()
        maximum = entity[self.table.capacity_column]
        current = entity.get(self.table.counter_column) or 0
        if counted_rows != current:
            logger.warning(
                f"{self.kind.capitalize()} {entity_id} counter drift: "
                f"{self.table.counter_column}={current}, rows={counted_rows}"
            )
        return Result.success(CapacityResponse(
            entity_id=entity_id,
            max=maximum,
            current=current,
            available=max(maximum - current, 0),
            is_full=current >= maximum,
        ))
