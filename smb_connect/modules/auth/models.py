# Supabase Auth
# Identities live in Supabase's auth.users table; this service never writes them.
# A user becomes a member once registration creates their row in public.members
# (see modules/members/models.py).

"""
Supabase Auth calls used here:
- auth.get_user(jwt) - Resolve the bearer token sent by the web/mobile client

Only the id and email of the returned user are relied upon; metadata is passed
through untouched.
"""
