from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ChatParticipant(BaseModel):
    chat_id: str
    member_id: str
    last_read_at: Optional[datetime] = None
    joined_at: Optional[datetime] = None

    def cutoff(self) -> Optional[datetime]:
        """Timestamp after which messages in this chat are unread for the member."""
        return self.last_read_at or self.joined_at


class ChatUnread(BaseModel):
    chat_id: str
    unread_count: int = Field(ge=0)


class UnreadCountResponse(BaseModel):
    unread_count: int = 0


class UnreadBreakdownResponse(BaseModel):
    unread_count: int = 0
    chats: List[ChatUnread] = []


class ChatReadResponse(BaseModel):
    chat_id: str
    last_read_at: datetime
