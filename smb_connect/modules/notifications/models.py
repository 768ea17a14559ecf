# Supabase tables: notifications
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

notifications:
- id: uuid (primary key)
- member_id: uuid (foreign key to members.id, not null) - recipient
- type: text (not null) - connection_request, connection_accepted, post_like, post_comment, ...
- title: text (not null)
- message: text (nullable)
- link: text (nullable) - in-app path the notification opens
- is_read: boolean (nullable, default: false) - null is treated as unread
- created_at: timestamp (nullable, default: now())

Rows are inserted by database triggers when a qualifying event happens.
This service only flips is_read from false to true; it never deletes rows.
"""
