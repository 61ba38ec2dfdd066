"""Pytest configuration and shared fixtures."""

import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402

from app.modules.friendships.service import FriendshipManager  # noqa: E402
from app.modules.memberships.models import GROUP_MEMBERSHIP, ACTIVITY_PARTICIPATION  # noqa: E402
from app.modules.memberships.service import MembershipManager  # noqa: E402
from tests.fakes import InMemoryRelationshipStore, RecordingDispatcher  # noqa: E402

ALICE = "00000000-0000-0000-0000-00000000000a"
BOB = "00000000-0000-0000-0000-00000000000b"
CAROL = "00000000-0000-0000-0000-00000000000c"
DAVE = "00000000-0000-0000-0000-00000000000d"
OWNER = "00000000-0000-0000-0000-0000000000ff"

GROUP_ID = "11111111-1111-1111-1111-111111111111"
ACTIVITY_ID = "22222222-2222-2222-2222-222222222222"


@pytest.fixture
def store() -> InMemoryRelationshipStore:
    return InMemoryRelationshipStore()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def friendships(store, dispatcher) -> FriendshipManager:
    return FriendshipManager(store, dispatcher)


@pytest.fixture
def groups(store, dispatcher) -> MembershipManager:
    return MembershipManager(GROUP_MEMBERSHIP, store, dispatcher)


@pytest.fixture
def activities(store, dispatcher) -> MembershipManager:
    return MembershipManager(ACTIVITY_PARTICIPATION, store, dispatcher)
