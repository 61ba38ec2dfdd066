from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Dict


class EventType(str, Enum):
    FRIEND_REQUEST = "friend_request"
    FRIEND_ACCEPTED = "friend_accepted"
    GROUP_FULL = "group_full"
    ACTIVITY_FULL = "activity_full"


class NotificationEvent(BaseModel):
    event_type: EventType
    target_profile_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
