"""
Relationship store: the only place that talks to the friendships and
membership tables.

Every mutation here is a single conditional write. Friendship uniqueness is
enforced by the ``(pair_low, pair_high)`` unique index, friendship
transitions by filtered UPDATE/DELETE statements, and membership joins/leaves
by the ``join_*`` / ``leave_*`` Postgres functions shipped in
``supabase/migrations``. Nothing in this module reads a value and then writes
based on it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError
from supabase import Client

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
# foreign_key_violation, invalid_text_representation (malformed uuid)
MISSING_REFERENCE_CODES = ("23503", "22P02")


class StorageUnavailable(Exception):
    """Raised when the backing store fails for infrastructure reasons."""


class ReferenceMissing(Exception):
    """Raised when a referenced profile, group or activity does not exist or its id is malformed."""


def pair_key(a: str, b: str) -> Tuple[str, str]:
    """Canonical key for an unordered pair of profiles."""
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class MembershipTable:
    """Describes one capacity-bounded membership relation (groups, activities)."""
    kind: str
    entity_table: str
    member_table: str
    entity_fk: str
    capacity_column: str
    counter_column: str
    owner_column: str
    join_function: str
    leave_function: str
    # Rows counted toward capacity; empty means every row counts
    counted_filter: Dict[str, Any] = field(default_factory=dict)


class JoinOutcome(str, Enum):
    JOINED = "joined"
    ALREADY_MEMBER = "already_member"
    FULL = "full"
    ENTITY_NOT_FOUND = "entity_not_found"


@dataclass(frozen=True)
class JoinWrite:
    outcome: JoinOutcome
    membership: Optional[Dict[str, Any]] = None
    current_count: int = 0
    max_count: int = 0


class RelationshipStore(ABC):
    """
    Implementations raise ``StorageUnavailable`` for infrastructure faults and
    ``ReferenceMissing`` when a referenced profile or entity is absent.
    """

    # Friendships

    @abstractmethod
    def get_by_unordered_pair(self, a: str, b: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def conditional_insert_relationship(self, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Insert only if no row exists for the unordered pair. None means the predicate failed."""

    @abstractmethod
    def conditional_update_relationship(
        self, relationship_id: str, expected: Dict[str, Any], patch: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Apply ``patch`` only if the row still matches ``expected``. None means the predicate failed."""

    @abstractmethod
    def delete_relationship(self, relationship_id: str, expected: Dict[str, Any]) -> bool:
        """Delete only if the row still matches ``expected``. False means nothing was deleted."""

    @abstractmethod
    def list_relationships(self, profile_id: str, status: str) -> List[Dict[str, Any]]:
        ...

    # Memberships

    @abstractmethod
    def get_entity(self, table: MembershipTable, entity_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def get_membership(self, table: MembershipTable, entity_id: str, profile_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def conditional_join(self, table: MembershipTable, entity_id: str, profile_id: str) -> JoinWrite:
        """Insert the membership row and increment the counter in one step, re-checking capacity at commit."""

    @abstractmethod
    def conditional_leave(self, table: MembershipTable, entity_id: str, profile_id: str) -> bool:
        """Delete the membership row and decrement the counter in one step. False if not a member."""

    @abstractmethod
    def list_members(
        self, table: MembershipTable, entity_id: str, limit: int = 50, offset: int = 0
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def count(self, table: MembershipTable, entity_id: str) -> int:
        """Raw row count. Reporting only; never used for capacity decisions."""


class SupabaseRelationshipStore(RelationshipStore):
    FRIENDSHIPS = "friendships"

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _translate_error(self, operation: str, exc: Exception) -> Exception:
        """Translate a client error: absent or malformed references are final, everything else is retryable."""
        if isinstance(exc, APIError) and exc.code in MISSING_REFERENCE_CODES:
            logger.info(f"Missing reference during {operation}: {exc.code} {exc.message}")
            return ReferenceMissing(f"{operation}: {exc.message}")
        logger.error(f"Storage failure during {operation}: {exc}")
        return StorageUnavailable(f"{operation} failed: {exc}")

    def get_by_unordered_pair(self, a: str, b: str) -> Optional[Dict[str, Any]]:
        low, high = pair_key(a, b)
        try:
            result = self.supabase.table(self.FRIENDSHIPS)\
                .select("*")\
                .eq("pair_low", low)\
                .eq("pair_high", high)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise self._translate_error("get_by_unordered_pair", e) from e
        return result.data[0] if result.data else None

    def conditional_insert_relationship(self, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table(self.FRIENDSHIPS).insert(record).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                return None
            raise self._translate_error("conditional_insert_relationship", e) from e
        except Exception as e:
            raise self._translate_error("conditional_insert_relationship", e) from e
        return result.data[0] if result.data else None

    def conditional_update_relationship(
        self, relationship_id: str, expected: Dict[str, Any], patch: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        try:
            query = self.supabase.table(self.FRIENDSHIPS)\
                .update(patch)\
                .eq("id", relationship_id)
            for column, value in expected.items():
                query = query.eq(column, value)
            result = query.execute()
        except Exception as e:
            raise self._translate_error("conditional_update_relationship", e) from e
        return result.data[0] if result.data else None

    def delete_relationship(self, relationship_id: str, expected: Dict[str, Any]) -> bool:
        try:
            query = self.supabase.table(self.FRIENDSHIPS)\
                .delete()\
                .eq("id", relationship_id)
            for column, value in expected.items():
                query = query.eq(column, value)
            result = query.execute()
        except Exception as e:
            raise self._translate_error("delete_relationship", e) from e
        return len(result.data or []) > 0

    def list_relationships(self, profile_id: str, status: str) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table(self.FRIENDSHIPS)\
                .select("*")\
                .or_(f"requester_id.eq.{profile_id},addressee_id.eq.{profile_id}")\
                .eq("status", status)\
                .order("updated_at", desc=True)\
                .execute()
        except Exception as e:
            raise self._translate_error("list_relationships", e) from e
        return result.data or []

    def get_entity(self, table: MembershipTable, entity_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table(table.entity_table)\
                .select(f"id, {table.capacity_column}, {table.counter_column}, {table.owner_column}")\
                .eq("id", entity_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise self._translate_error("get_entity", e) from e
        return result.data[0] if result.data else None

    def get_membership(self, table: MembershipTable, entity_id: str, profile_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table(table.member_table)\
                .select("*")\
                .eq(table.entity_fk, entity_id)\
                .eq("profile_id", profile_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise self._translate_error("get_membership", e) from e
        return result.data[0] if result.data else None

    def conditional_join(self, table: MembershipTable, entity_id: str, profile_id: str) -> JoinWrite:
        try:
            result = self.supabase.rpc(table.join_function, {
                "p_entity_id": entity_id,
                "p_profile_id": profile_id,
            }).execute()
        except Exception as e:
            raise self._translate_error("conditional_join", e) from e
        payload = result.data
        if isinstance(payload, list):
            payload = payload[0] if payload else None
        if not payload or "outcome" not in payload:
            raise StorageUnavailable(f"{table.join_function} returned no outcome")
        return JoinWrite(
            outcome=JoinOutcome(payload["outcome"]),
            membership=payload.get("membership"),
            current_count=payload.get("current_count") or 0,
            max_count=payload.get("max_count") or 0,
        )

    def conditional_leave(self, table: MembershipTable, entity_id: str, profile_id: str) -> bool:
        try:
            result = self.supabase.rpc(table.leave_function, {
                "p_entity_id": entity_id,
                "p_profile_id": profile_id,
            }).execute()
        except Exception as e:
            raise self._translate_error("conditional_leave", e) from e
        return bool(result.data)

    def list_members(
        self, table: MembershipTable, entity_id: str, limit: int = 50, offset: int = 0
    ) -> List[Dict[str, Any]]:
        try:
            result = self.supabase.table(table.member_table)\
                .select("*")\
                .eq(table.entity_fk, entity_id)\
                .order("joined_at")\
                .limit(limit)\
                .offset(offset)\
                .execute()
        except Exception as e:
            raise self._translate_error("list_members", e) from e
        return result.data or []

    def count(self, table: MembershipTable, entity_id: str) -> int:
        try:
            query = self.supabase.table(table.member_table)\
                .select("id", count="exact")\
                .eq(table.entity_fk, entity_id)
            for column, value in table.counted_filter.items():
                query = query.eq(column, value)
            result = query.execute()
        except Exception as e:
            raise self._translate_error("count", e) from e
        return result.count or 0
