import logging
from supabase import Client
from typing import Optional

from smb_connect.core.errors import TransientFetchFailure

logger = logging.getLogger(__name__)


class MemberResolver:
    """Maps an auth user id to the member id that scopes every personal aggregate."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def resolve(self, user_id: Optional[str]) -> Optional[str]:
        """Return the member id for user_id, or None when the user has no member profile."""
        if not user_id:
            return None
        try:
            result = self.supabase.table("members")\
                .select("id")\
                .eq("user_id", user_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error resolving member for user {user_id}: {e}")
            raise TransientFetchFailure(f"Member lookup failed: {e}") from e
        if result is None or not result.data:
            return None
        return result.data["id"]
