import logging
from datetime import datetime, timezone
from pydantic import ValidationError
from supabase import Client
from typing import List, Optional

from smb_connect.core.errors import MutationFailure, NotAChatParticipant, TransientFetchFailure
from smb_connect.modules.messages.schemas import ChatParticipant, ChatUnread, ChatReadResponse

logger = logging.getLogger(__name__)


class UnreadCountAggregator:
    """
    Unread chat messages for a member, recomputed from scratch on every call.

    A message is unread when another member sent it strictly after the
    member's cutoff for that chat (last_read_at, else joined_at).
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_unread_count(self, member_id: str) -> int:
        return sum(chat.unread_count for chat in self.get_unread_by_chat(member_id))

    def get_unread_by_chat(self, member_id: str) -> List[ChatUnread]:
        participants = self._get_participants(member_id)
        breakdown = []
        for participant in participants:
            cutoff = participant.cutoff()
            if cutoff is None:
                # Malformed row: cutoff falls back to now, nothing can be newer
                logger.warning(f"Chat participant row without timestamps: chat={participant.chat_id} member={member_id}")
                breakdown.append(ChatUnread(chat_id=participant.chat_id, unread_count=0))
                continue
            count = self._count_unread_in_chat(participant.chat_id, member_id, cutoff)
            breakdown.append(ChatUnread(chat_id=participant.chat_id, unread_count=count))
        return breakdown

    def mark_chat_read(self, chat_id: str, member_id: str, read_at: Optional[datetime] = None) -> ChatReadResponse:
        """Advance the member's last_read_at for chat_id."""
        read_at = read_at or datetime.now(timezone.utc)
        try:
            result = self.supabase.table("chat_participants")\
                .update({"last_read_at": read_at.isoformat()})\
                .eq("chat_id", chat_id)\
                .eq("member_id", member_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error marking chat {chat_id} read for member {member_id}: {e}")
            raise MutationFailure(f"Failed to mark chat as read: {e}") from e
        if not result.data:
            raise NotAChatParticipant("Not a participant of this chat")
        return ChatReadResponse(chat_id=chat_id, last_read_at=read_at)

    def _get_participants(self, member_id: str) -> List[ChatParticipant]:
        try:
            result = self.supabase.table("chat_participants")\
                .select("chat_id, member_id, last_read_at, joined_at")\
                .eq("member_id", member_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching chat participants for member {member_id}: {e}")
            raise TransientFetchFailure(f"Failed to load chats: {e}") from e
        try:
            return [ChatParticipant(**row) for row in result.data or []]
        except ValidationError as e:
            logger.error(f"Unreadable chat participant row for member {member_id}: {e}")
            raise TransientFetchFailure(f"Failed to read chats: {e.error_count()} invalid field(s)") from e

    def _count_unread_in_chat(self, chat_id: str, member_id: str, cutoff: datetime) -> int:
        try:
            result = self.supabase.table("messages")\
                .select("id", count="exact", head=True)\
                .eq("chat_id", chat_id)\
                .neq("sender_id", member_id)\
                .gt("created_at", cutoff.isoformat())\
                .execute()
        except Exception as e:
            logger.error(f"Error counting unread messages in chat {chat_id}: {e}")
            raise TransientFetchFailure(f"Failed to count unread messages: {e}") from e
        return result.count or 0
