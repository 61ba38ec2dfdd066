from enum import Enum
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class RelationshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


class FriendshipStatus(str, Enum):
    """Relationship state as seen by one side of the pair."""
    NONE = "none"
    PENDING_OUTGOING = "pending_outgoing"
    PENDING_INCOMING = "pending_incoming"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


class RelationshipResponse(BaseModel):
    id: str
    requester_id: str
    addressee_id: str
    status: RelationshipStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FriendshipStatusResponse(BaseModel):
    profile_id: str
    status: FriendshipStatus


class FriendResponse(BaseModel):
    profile_id: str
    relationship_id: str
    since: Optional[datetime] = None


class PendingRequestsResponse(BaseModel):
    incoming: List[RelationshipResponse]
    outgoing: List[RelationshipResponse]
