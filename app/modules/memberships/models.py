# Supabase tables: groups, group_members, activities, activity_participants
# This file documents the expected database schema and describes both
# membership relations to the RelationshipStore

"""
Expected Supabase table structure (see supabase/migrations/0001_relationship_engine.sql):

groups:
- id: uuid (primary key)
- created_by: uuid (foreign key to profiles.id) - owner
- max_members: integer (not null)
- current_members: integer (not null, default: 0) - maintained only by join_group / leave_group

group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, not null)
- profile_id: uuid (foreign key to profiles.id, not null)
- role: text (not null, default: 'member') - values: member, moderator, admin
- joined_at: timestamp (default: now())
- unique constraint on (group_id, profile_id)

activities:
- id: uuid (primary key)
- profile_id: uuid (foreign key to profiles.id) - owner
- max_participants: integer (not null)
- current_participants: integer (not null, default: 0) - maintained only by join_activity / leave_activity

activity_participants:
- id: uuid (primary key)
- activity_id: uuid (foreign key to activities.id, not null)
- profile_id: uuid (foreign key to profiles.id, not null)
- status: text (not null, default: 'confirmed') - values: confirmed, pending, cancelled, attended
- joined_at: timestamp (default: now())
- unique constraint on (activity_id, profile_id)
- only confirmed rows hold a slot
"""

from app.database.store import MembershipTable

GROUP_MEMBERSHIP = MembershipTable(
    kind="group",
    entity_table="groups",
    member_table="group_members",
    entity_fk="group_id",
    capacity_column="max_members",
    counter_column="current_members",
    owner_column="created_by",
    join_function="join_group",
    leave_function="leave_group",
)

ACTIVITY_PARTICIPATION = MembershipTable(
    kind="activity",
    entity_table="activities",
    member_table="activity_participants",
    entity_fk="activity_id",
    capacity_column="max_participants",
    counter_column="current_participants",
    owner_column="profile_id",
    join_function="join_activity",
    leave_function="leave_activity",
    counted_filter={"status": "confirmed"},
)
