# Supabase tables: members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

members:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, unique, not null)
- company_id: uuid (nullable)
- created_at: timestamp (default: now())

One member per authenticated user, created when registration completes and
never changed afterwards. Admin-only accounts have no member row.
"""
