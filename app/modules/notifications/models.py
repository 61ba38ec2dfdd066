# Supabase table: notifications
# This file documents the expected database schema
# Rows are written by SupabaseNotificationDispatcher in service.py

"""
Expected Supabase table structure:

notifications:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null) - recipient
- type: text (not null) - values: friend_request, friend_accepted, group_full, activity_full
- title: text (not null)
- message: text (not null)
- link_url: text (nullable)
- metadata: jsonb (nullable)
- is_read: boolean (default: false)
- created_at: timestamp (default: now())
"""
