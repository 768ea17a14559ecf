import logging
from fastapi import APIRouter, Depends
from smb_connect.database.supabase_client import get_supabase
from smb_connect.core.dependencies import get_current_member_id, require_member_id
from smb_connect.core.errors import TransientFetchFailure
from smb_connect.modules.notifications.schemas import NotificationListResponse, MarkReadResponse
from smb_connect.modules.notifications.service import NotificationFeed
from supabase import Client
from typing import Optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_feed(supabase: Client = Depends(get_supabase)) -> NotificationFeed:
    return NotificationFeed(supabase)


def _unread_count_or_zero(feed: NotificationFeed, member_id: str) -> int:
    try:
        return feed.get_unread_count(member_id)
    except TransientFetchFailure as e:
        logger.error(f"Unread notification count unavailable for member {member_id}: {e.detail}")
        return 0


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: Optional[int] = None,
    offset: int = 0,
    unread_only: bool = False,
    member_id: Optional[str] = Depends(get_current_member_id),
    feed: NotificationFeed = Depends(get_notification_feed)
):
    """Newest-first notifications plus the unread badge count"""
    if not member_id:
        return NotificationListResponse()
    try:
        notifications = feed.list(member_id, limit=limit, offset=offset, unread_only=unread_only)
    except TransientFetchFailure as e:
        logger.error(f"Notifications unavailable for member {member_id}: {e.detail}")
        notifications = []
    return NotificationListResponse(
        notifications=notifications,
        unread_count=_unread_count_or_zero(feed, member_id),
    )


@router.post("/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    member_id: str = Depends(require_member_id),
    feed: NotificationFeed = Depends(get_notification_feed)
):
    """Mark all of the member's unread notifications read"""
    updated = feed.mark_all_read(member_id)
    return MarkReadResponse(updated=updated, unread_count=_unread_count_or_zero(feed, member_id))


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
async def mark_read(
    notification_id: str,
    member_id: str = Depends(require_member_id),
    feed: NotificationFeed = Depends(get_notification_feed)
):
    """Mark one notification read"""
    feed.mark_read(notification_id, member_id)
    return MarkReadResponse(updated=1, unread_count=_unread_count_or_zero(feed, member_id))
