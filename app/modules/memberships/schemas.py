from enum import Enum
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class MemberRole(str, Enum):
    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"


class ParticipationStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    ATTENDED = "attended"


class MembershipResponse(BaseModel):
    id: str
    entity_id: str
    profile_id: str
    role: Optional[MemberRole] = None  # groups only
    status: Optional[ParticipationStatus] = None  # activities only
    joined_at: datetime

    class Config:
        from_attributes = True


class CapacityResponse(BaseModel):
    entity_id: str
    max: int
    current: int
    available: int
    is_full: bool
