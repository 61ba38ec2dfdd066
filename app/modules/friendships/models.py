# Supabase table: friendships
# This file documents the expected database schema
# Actual operations are handled via RelationshipStore in app/database/store.py

"""
Expected Supabase table structure (see supabase/migrations/0001_relationship_engine.sql):

friendships:
- id: uuid (primary key)
- requester_id: uuid (foreign key to profiles.id, not null)
- addressee_id: uuid (foreign key to profiles.id, not null)
- status: text (not null, default: 'pending') - values: pending, accepted, blocked
- pair_low: uuid (generated: least(requester_id, addressee_id))
- pair_high: uuid (generated: greatest(requester_id, addressee_id))
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
- check requester_id <> addressee_id
- unique index on (pair_low, pair_high): one row per unordered pair

Lifecycle: inserted as pending by the requester, updated to accepted by the
addressee, deleted on reject or cancel. blocked is set only by moderation.
"""
