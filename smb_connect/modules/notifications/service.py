import logging
from pydantic import ValidationError
from supabase import Client
from typing import List, Optional

from smb_connect.config.settings import settings
from smb_connect.core.errors import MutationFailure, NotAuthenticated, NotificationNotFound, TransientFetchFailure
from smb_connect.modules.notifications.schemas import Notification, parse_notification

logger = logging.getLogger(__name__)

# is_read is nullable; a null counts as unread
UNREAD_FILTER = "is_read.is.null,is_read.eq.false"


class NotificationFeed:
    """
    Newest-first notification list for one member, with read-state updates.

    Read state only moves from unread to read. Mark operations refuse to run
    without a resolved member id and are scoped to that member's rows.
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list(
        self,
        member_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        unread_only: bool = False
    ) -> List[Notification]:
        limit = settings.clamp_page_size(limit)
        offset = max(offset, 0)
        try:
            query = self.supabase.table("notifications")\
                .select("*")\
                .eq("member_id", member_id)
            if unread_only:
                query = query.or_(UNREAD_FILTER)
            result = query.order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
        except Exception as e:
            logger.error(f"Error listing notifications for member {member_id}: {e}")
            raise TransientFetchFailure(f"Failed to load notifications: {e}") from e
        try:
            return [parse_notification(row) for row in result.data or []]
        except ValidationError as e:
            logger.error(f"Unreadable notification row for member {member_id}: {e}")
            raise TransientFetchFailure(f"Failed to read notifications: {e.error_count()} invalid field(s)") from e

    def get_unread_count(self, member_id: str) -> int:
        try:
            result = self.supabase.table("notifications")\
                .select("id", count="exact", head=True)\
                .eq("member_id", member_id)\
                .or_(UNREAD_FILTER)\
                .execute()
        except Exception as e:
            logger.error(f"Error counting unread notifications for member {member_id}: {e}")
            raise TransientFetchFailure(f"Failed to count unread notifications: {e}") from e
        return result.count or 0

    def mark_read(self, notification_id: str, member_id: Optional[str]) -> bool:
        """Mark one notification read. Marking an already read notification is a no-op success."""
        if not member_id:
            raise NotAuthenticated("A member profile is required to update notifications")
        try:
            result = self.supabase.table("notifications")\
                .update({"is_read": True})\
                .eq("id", notification_id)\
                .eq("member_id", member_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error marking notification {notification_id} read: {e}")
            raise MutationFailure(f"Failed to mark notification as read: {e}") from e
        if not result.data:
            raise NotificationNotFound("Notification not found")
        return True

    def mark_all_read(self, member_id: Optional[str]) -> int:
        """Mark every currently unread notification of the member read. Returns how many changed."""
        if not member_id:
            raise NotAuthenticated("A member profile is required to update notifications")
        try:
            result = self.supabase.table("notifications")\
                .update({"is_read": True})\
                .eq("member_id", member_id)\
                .or_(UNREAD_FILTER)\
                .execute()
        except Exception as e:
            logger.error(f"Error marking all notifications read for member {member_id}: {e}")
            raise MutationFailure(f"Failed to mark notifications as read: {e}") from e
        updated = len(result.data or [])
        logger.info(f"Marked {updated} notification(s) read for member {member_id}")
        return updated
