import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.results import ErrorKind, Result
from app.database.store import ReferenceMissing, RelationshipStore, StorageUnavailable
from app.modules.friendships.schemas import (
    FriendshipStatus, RelationshipStatus, RelationshipResponse,
    FriendResponse, PendingRequestsResponse
)
from app.modules.notifications.schemas import EventType, NotificationEvent
from app.modules.notifications.service import NotificationDispatcher, NullNotificationDispatcher

logger = logging.getLogger(__name__)

STORAGE_MESSAGE = "Friendship data is temporarily unavailable, please retry"
PROFILE_NOT_FOUND = "Profile not found"

_CONFLICT_MESSAGES = {
    FriendshipStatus.PENDING_OUTGOING: "You already sent a friend request to this profile",
    FriendshipStatus.PENDING_INCOMING: "This profile already sent you a friend request",
    FriendshipStatus.ACCEPTED: "You are already friends",
    FriendshipStatus.BLOCKED: "Friend requests between these profiles are blocked",
}


def viewer_status(row: Optional[Dict[str, Any]], viewer: str) -> FriendshipStatus:
    """Map a relationship row to the status seen from ``viewer``'s side."""
    if row is None:
        return FriendshipStatus.NONE
    status = row["status"]
    if status == RelationshipStatus.ACCEPTED.value:
        return FriendshipStatus.ACCEPTED
    if status == RelationshipStatus.BLOCKED.value:
        return FriendshipStatus.BLOCKED
    if row["requester_id"] == viewer:
        return FriendshipStatus.PENDING_OUTGOING
    return FriendshipStatus.PENDING_INCOMING


class FriendshipManager:
    """Friend request lifecycle over a single row per unordered pair of profiles."""

    def __init__(self, store: RelationshipStore, dispatcher: Optional[NotificationDispatcher] = None):
        self.store = store
        self.dispatcher = dispatcher or NullNotificationDispatcher()

    def status(self, viewer: str, other: str) -> Result[FriendshipStatus]:
        """Viewer-relative status of the pair; a profile has no relationship with itself."""
        if viewer == other:
            return Result.success(FriendshipStatus.NONE)
        try:
            row = self.store.get_by_unordered_pair(viewer, other)
        except StorageUnavailable:
            return Result.failure(ErrorKind.STORAGE_ERROR, STORAGE_MESSAGE)
        except ReferenceMissing:
            return Result.failure(ErrorKind.NOT_FOUND, PROFILE_NOT_FOUND)
        return Result.success(viewer_status(row, viewer))

    def send_request(self, requester: str, addressee: str) -> Result[RelationshipResponse]:
        if requester == addressee:
            return Result.failure(ErrorKind.INVALID_ARGUMENT, "You cannot send a friend request to yourself")
        try:
            existing = self.store.get_by_unordered_pair(requester, addressee)
            if existing is not None:
                current = viewer_status(existing, requester)
                logger.info(f"Friend request {requester} -> {addressee} rejected: {current.value}")
                return Result.failure(ErrorKind.CONFLICT, _CONFLICT_MESSAGES[current])

            # The pair index arbitrates between concurrent senders, including B -> A racing A -> B
            row = self.store.conditional_insert_relationship({
                "requester_id": requester,
                "addressee_id": addressee,
                "status": RelationshipStatus.PENDING.value,
            })
        except StorageUnavailable:
            return Result.failure(ErrorKind.STORAGE_ERROR, STORAGE_MESSAGE)
        except ReferenceMissing:
            return Result.failure(ErrorKind.NOT_FOUND, PROFILE_NOT_FOUND)

        if row is None:
            logger.info(f"Friend request {requester} -> {addressee} lost a race on the pair")
            return Result.failure(ErrorKind.CONFLICT, "A friend request between you already exists")

        logger.info(f"Friend request {row['id']} sent: {requester} -> {addressee}")
        self.dispatcher.dispatch(NotificationEvent(
            event_type=EventType.FRIEND_REQUEST,
            target_profile_id=addressee,
            payload={"requester_id": requester, "relationship_id": row["id"]},
        ))
        return Result.success(RelationshipResponse(**row))

    def _pending_for_addressee(self, addressee: str, requester: str) -> Result[Dict[str, Any]]:
        """Locate the pending row ``requester -> addressee`` and verify ``addressee`` may act on it."""
        if addressee == requester:
            return Result.failure(ErrorKind.INVALID_ARGUMENT, "You cannot answer your own friend request")
        row = self.store.get_by_unordered_pair(addressee, requester)
        if row is None or row["status"] != RelationshipStatus.PENDING.value:
            return Result.failure(ErrorKind.NOT_FOUND, "No pending friend request from this profile")
        if row["addressee_id"] != addressee:
            return Result.failure(ErrorKind.PERMISSION_DENIED, "Only the recipient can answer this friend request")
        return Result.success(row)

    def accept(self, addressee: str, requester: str) -> Result[RelationshipResponse]:
        try:
            found = self._pending_for_addressee(addressee, requester)
            if not found.ok:
                return found
            row = self.store.conditional_update_relationship(
                found.value["id"],
                expected={"status": RelationshipStatus.PENDING.value, "addressee_id": addressee},
                patch={
                    "status": RelationshipStatus.ACCEPTED.value,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                },
            )
        except StorageUnavailable:
            return Result.failure(ErrorKind.STORAGE_ERROR, STORAGE_MESSAGE)
        except ReferenceMissing:
            return Result.failure(ErrorKind.NOT_FOUND, PROFILE_NOT_FOUND)

        if row is None:
            return Result.failure(ErrorKind.NOT_FOUND, "No pending friend request from this profile")

        logger.info(f"Friend request {row['id']} accepted by {addressee}")
        self.dispatcher.dispatch(NotificationEvent(
            event_type=EventType.FRIEND_ACCEPTED,
            target_profile_id=requester,
            payload={"friend_id": addressee, "relationship_id": row["id"]},
        ))
        return Result.success(RelationshipResponse(**row))

    def reject(self, addressee: str, requester: str) -> Result[bool]:
        try:
            found = self._pending_for_addressee(addressee, requester)
            if not found.ok:
                return found
            deleted = self.store.delete_relationship(
                found.value["id"],
                expected={"status": RelationshipStatus.PENDING.value, "addressee_id": addressee},
            )
        except StorageUnavailable:
            return Result.failure(ErrorKind.STORAGE_ERROR, STORAGE_MESSAGE)
        except ReferenceMissing:
            return Result.failure(ErrorKind.NOT_FOUND, PROFILE_NOT_FOUND)

        if not deleted:
            return Result.failure(ErrorKind.NOT_FOUND, "No pending friend request from this profile")
        logger.info(f"Friend request {found.value['id']} rejected by {addressee}")
        return Result.success(True)

    def cancel(self, requester: str, addressee: str) -> Result[bool]:
        """Withdraw an outgoing request. Success(False) when there was nothing to cancel."""
        if requester == addressee:
            return Result.failure(ErrorKind.INVALID_ARGUMENT, "You cannot cancel a friend request to yourself")
        try:
            row = self.store.get_by_unordered_pair(requester, addressee)
            if row is None:
                return Result.success(False)
            if row["status"] != RelationshipStatus.PENDING.value:
                return Result.failure(ErrorKind.CONFLICT, "This friend request is no longer pending")
            if row["requester_id"] != requester:
                return Result.failure(ErrorKind.PERMISSION_DENIED, "Only the sender can cancel this friend request")

            deleted = self.store.delete_relationship(
                row["id"],
                expected={"status": RelationshipStatus.PENDING.value, "requester_id": requester},
            )
            if not deleted:
                # Lost to a concurrent accept or reject; report what the pair looks like now
                current = self.store.get_by_unordered_pair(requester, addressee)
                if current is not None:
                    return Result.failure(ErrorKind.CONFLICT, "This friend request is no longer pending")
                return Result.success(False)
        except StorageUnavailable:
            return Result.failure(ErrorKind.STORAGE_ERROR, STORAGE_MESSAGE)
        except ReferenceMissing:
            return Result.failure(ErrorKind.NOT_FOUND, PROFILE_NOT_FOUND)

        logger.info(f"Friend request {row['id']} cancelled by {requester}")
        return Result.success(True)

    def list_friends(self, profile_id: str) -> Result[List[FriendResponse]]:
        try:
            rows = self.store.list_relationships(profile_id, RelationshipStatus.ACCEPTED.value)
        except StorageUnavailable:
            return Result.failure(ErrorKind.STORAGE_ERROR, STORAGE_MESSAGE)
        except ReferenceMissing:
            return Result.failure(ErrorKind.NOT_FOUND, PROFILE_NOT_FOUND)
        friends = []
        for row in rows:
            other = row["addressee_id"] if row["requester_id"] == profile_id else row["requester_id"]
            friends.append(FriendResponse(
                profile_id=other,
                relationship_id=row["id"],
                since=row.get("updated_at") or row.get("created_at"),
            ))
        return Result.success(friends)

    def list_pending_requests(self, profile_id: str) -> Result[PendingRequestsResponse]:
        try:
            rows = self.store.list_relationships(profile_id, RelationshipStatus.PENDING.value)
        except StorageUnavailable:
            return Result.failure(ErrorKind.STORAGE_ERROR, STORAGE_MESSAGE)
        except ReferenceMissing:
            return Result.failure(ErrorKind.NOT_FOUND, PROFILE_NOT_FOUND)
        incoming = [RelationshipResponse(**r) for r in rows if r["addressee_id"] == profile_id]
        outgoing = [RelationshipResponse(**r) for r in rows if r["requester_id"] == profile_id]
        return Result.success(PendingRequestsResponse(incoming=incoming, outgoing=outgoing))
