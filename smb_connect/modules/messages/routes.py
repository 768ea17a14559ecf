import logging
from fastapi import APIRouter, Depends
from smb_connect.database.supabase_client import get_supabase
from smb_connect.core.dependencies import get_current_member_id, require_member_id
from smb_connect.core.errors import TransientFetchFailure
from smb_connect.modules.messages.schemas import UnreadCountResponse, UnreadBreakdownResponse, ChatReadResponse
from smb_connect.modules.messages.service import UnreadCountAggregator
from supabase import Client
from typing import Optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


def get_unread_aggregator(supabase: Client = Depends(get_supabase)) -> UnreadCountAggregator:
    return UnreadCountAggregator(supabase)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    member_id: Optional[str] = Depends(get_current_member_id),
    service: UnreadCountAggregator = Depends(get_unread_aggregator)
):
    """Total unread messages across the member's chats (0 without a member profile)"""
    if not member_id:
        return UnreadCountResponse(unread_count=0)
    try:
        return UnreadCountResponse(unread_count=service.get_unread_count(member_id))
    except TransientFetchFailure as e:
        logger.error(f"Unread count unavailable for member {member_id}: {e.detail}")
        return UnreadCountResponse(unread_count=0)


@router.get("/unread", response_model=UnreadBreakdownResponse)
async def get_unread_breakdown(
    member_id: Optional[str] = Depends(get_current_member_id),
    service: UnreadCountAggregator = Depends(get_unread_aggregator)
):
    """Unread messages per chat"""
    if not member_id:
        return UnreadBreakdownResponse()
    try:
        chats = service.get_unread_by_chat(member_id)
    except TransientFetchFailure as e:
        logger.error(f"Unread breakdown unavailable for member {member_id}: {e.detail}")
        return UnreadBreakdownResponse()
    return UnreadBreakdownResponse(
        unread_count=sum(c.unread_count for c in chats),
        chats=chats,
    )


@router.post("/chats/{chat_id}/read", response_model=ChatReadResponse)
async def mark_chat_read(
    chat_id: str,
    member_id: str = Depends(require_member_id),
    service: UnreadCountAggregator = Depends(get_unread_aggregator)
):
    """Mark everything in the chat as read for the current member"""
    return service.mark_chat_read(chat_id, member_id)
