# Supabase tables: chats, chat_participants, messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

chats:
- id: uuid (primary key)
- type: text (not null) - values: direct, group
- name: text (nullable)
- last_message_at: timestamp (nullable)

chat_participants:
- id: uuid (primary key)
- chat_id: uuid (foreign key to chats.id, not null)
- member_id: uuid (foreign key to members.id, not null)
- last_read_at: timestamp (nullable) - advanced when the member views the chat
- joined_at: timestamp (default: now()) - unread cutoff while last_read_at is null
- unique constraint on (chat_id, member_id)

messages:
- id: uuid (primary key)
- chat_id: uuid (foreign key to chats.id, not null)
- sender_id: uuid (foreign key to members.id, not null)
- content: text (not null)
- created_at: timestamp (default: now())

Messages are append-only; no edit or delete is modelled here.
"""
