"""
Core dependencies: caller identity, relationship store and notification dispatcher
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client
import logging

from app.config import settings
from app.database.store import RelationshipStore, SupabaseRelationshipStore
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.auth.service import AuthService
from app.modules.notifications.service import (
    NotificationDispatcher, NullNotificationDispatcher, SupabaseNotificationDispatcher
)

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    return auth_service.get_current_user(credentials.credentials)


def get_current_profile_id(user_data: dict = Depends(get_current_user)) -> str:
    """The acting profile for every transition is always the authenticated caller"""
    return user_data["id"]


def get_relationship_store(supabase: Client = Depends(get_service_supabase)) -> RelationshipStore:
    return SupabaseRelationshipStore(supabase)


def get_notification_dispatcher(supabase: Client = Depends(get_service_supabase)) -> NotificationDispatcher:
    if not settings.notifications_enabled:
        return NullNotificationDispatcher()
    return SupabaseNotificationDispatcher(supabase)
