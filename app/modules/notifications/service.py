import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from supabase import Client

from app.modules.notifications.schemas import EventType, NotificationEvent

logger = logging.getLogger(__name__)


# (title, message template, link template) per event type
_TEMPLATES: Dict[EventType, Tuple[str, str, str]] = {
    EventType.FRIEND_REQUEST: (
        "New friend request",
        "You have a new friend request",
        "/dashboard/users/{requester_id}",
    ),
    EventType.FRIEND_ACCEPTED: (
        "Friend request accepted",
        "Your friend request was accepted",
        "/dashboard/users/{friend_id}",
    ),
    EventType.GROUP_FULL: (
        "Group is full",
        "Your group reached {max_count} members",
        "/dashboard/groups/{entity_id}",
    ),
    EventType.ACTIVITY_FULL: (
        "Activity is full",
        "Your activity reached {max_count} participants",
        "/dashboard/activities/{entity_id}",
    ),
}


def render_event(event: NotificationEvent) -> Dict[str, object]:
    """Build the notifications row for an event."""
    title, message, link = _TEMPLATES[event.event_type]
    try:
        message = message.format(**event.payload)
        link_url: Optional[str] = link.format(**event.payload)
    except KeyError:
        link_url = None
    return {
        "user_id": event.target_profile_id,
        "type": event.event_type.value,
        "title": title,
        "message": message,
        "link_url": link_url,
        "metadata": event.payload or None,
    }


class NotificationDispatcher(ABC):
    """Fire-and-forget sink for state-transition events. Implementations must not raise."""

    @abstractmethod
    def dispatch(self, event: NotificationEvent) -> None:
        ...


class NullNotificationDispatcher(NotificationDispatcher):
    def dispatch(self, event: NotificationEvent) -> None:
        logger.debug(f"Notifications disabled, dropping {event.event_type.value} for {event.target_profile_id}")


class SupabaseNotificationDispatcher(NotificationDispatcher):
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def dispatch(self, event: NotificationEvent) -> None:
        try:
            self.supabase.table("notifications").insert(render_event(event)).execute()
            logger.debug(f"Notification {event.event_type.value} queued for {event.target_profile_id}")
        except Exception as e:
            logger.warning(f"Failed to deliver {event.event_type.value} notification to {event.target_profile_id}: {e}")
