# Supabase tables: connections
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

connections:
- id: uuid (primary key)
- sender_id: uuid (foreign key to members.id, not null)
- receiver_id: uuid (foreign key to members.id, not null)
- status: text (not null, default: 'pending') - values: pending, accepted, rejected
- message: text (nullable) - note attached to the request
- created_at: timestamp (default: now())
- responded_at: timestamp (nullable) - set once, when the receiver decides

At most one row per unordered (sender_id, receiver_id) pair. accepted and
rejected are terminal. A pending row may be deleted by its sender (withdrawal).
"""
